"""Article and internal link models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trendpipe.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from trendpipe.models.topic import BlogTopic


# "review" and "archived" are valid stored values with no transition into them yet.
ArticleStatus = Literal["draft", "review", "published", "archived"]

ARTICLE_DRAFT: ArticleStatus = "draft"
ARTICLE_REVIEW: ArticleStatus = "review"
ARTICLE_PUBLISHED: ArticleStatus = "published"
ARTICLE_ARCHIVED: ArticleStatus = "archived"

LinkKind = Literal["related", "contextual"]


class Article(Base, UUIDMixin, TimestampMixin):
    """Long-form article generated from a topic or ad hoc."""

    __tablename__ = "articles"

    # Not unique: one-article-per-topic is enforced by the topic state machine only.
    topic_id: Mapped[str | None] = mapped_column(
        String(32),
        ForeignKey("blog_topics.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(500), nullable=False, unique=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    seo_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    seo_description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(30), default=ARTICLE_DRAFT, nullable=False, index=True)

    # SEO targeting
    primary_keyword: Mapped[str | None] = mapped_column(String(500), nullable=True)
    keywords: Mapped[list[str]] = mapped_column(JSONB, default=list, nullable=False)
    cluster_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    word_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reading_time: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    meta_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    last_refreshed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    topic: Mapped[BlogTopic | None] = relationship("BlogTopic", back_populates="articles")
    links_out: Mapped[list[InternalLink]] = relationship(
        "InternalLink",
        back_populates="from_article",
        foreign_keys="InternalLink.from_article_id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Article {self.slug} status={self.status}>"


class InternalLink(Base, UUIDMixin, TimestampMixin):
    """Directed internal link between two articles."""

    __tablename__ = "internal_links"
    __table_args__ = (
        UniqueConstraint(
            "from_article_id",
            "to_article_id",
            name="uq_internal_links_from_to",
        ),
    )

    from_article_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    to_article_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("articles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    anchor_text: Mapped[str] = mapped_column(String(255), nullable=False)
    link_type: Mapped[str] = mapped_column(String(30), default="related", nullable=False)

    from_article: Mapped[Article] = relationship(
        "Article",
        back_populates="links_out",
        foreign_keys=[from_article_id],
    )
    to_article: Mapped[Article] = relationship("Article", foreign_keys=[to_article_id])

    def __repr__(self) -> str:
        return f"<InternalLink {self.from_article_id} -> {self.to_article_id}>"
