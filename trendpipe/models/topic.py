"""Blog topic model and its review state machine."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from trendpipe.models.base import Base, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from trendpipe.models.content import Article


TopicStatus = Literal["pending", "approved", "rejected", "generated"]

TOPIC_PENDING: TopicStatus = "pending"
TOPIC_APPROVED: TopicStatus = "approved"
TOPIC_REJECTED: TopicStatus = "rejected"
TOPIC_GENERATED: TopicStatus = "generated"

# pending -> approved -> generated; pending -> rejected. Terminal states map to nothing.
TOPIC_TRANSITIONS: dict[str, frozenset[str]] = {
    TOPIC_PENDING: frozenset({TOPIC_APPROVED, TOPIC_REJECTED}),
    TOPIC_APPROVED: frozenset({TOPIC_GENERATED}),
    TOPIC_REJECTED: frozenset(),
    TOPIC_GENERATED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    """Return True when the topic state machine allows ``current -> target``."""
    return target in TOPIC_TRANSITIONS.get(current, frozenset())


class BlogTopic(Base, UUIDMixin, TimestampMixin):
    """Topic idea awaiting review, scouted from headlines or entered manually."""

    __tablename__ = "blog_topics"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    angle: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(2000), nullable=True, unique=True)
    source_headline: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=TOPIC_PENDING, nullable=False, index=True)

    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    articles: Mapped[list[Article]] = relationship("Article", back_populates="topic")

    def __repr__(self) -> str:
        return f"<BlogTopic {self.title} status={self.status}>"
