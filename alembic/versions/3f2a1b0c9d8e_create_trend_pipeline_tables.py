"""create trend pipeline tables

Revision ID: 3f2a1b0c9d8e
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a1b0c9d8e"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_and_timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.String(length=32), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "trend_keywords",
        sa.Column("keyword", sa.String(length=255), nullable=False),
        sa.Column("relevance_score", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("discovery_source", sa.String(length=50), nullable=True),
        sa.Column("usage_count", sa.Integer(), nullable=False),
        *_id_and_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_trend_keywords"),
    )
    op.create_index(op.f("ix_trend_keywords_keyword"), "trend_keywords", ["keyword"], unique=True)
    op.create_index(op.f("ix_trend_keywords_is_active"), "trend_keywords", ["is_active"], unique=False)

    op.create_table(
        "trend_sources",
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("url", sa.String(length=2000), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("articles_found", sa.Integer(), nullable=False),
        sa.Column("articles_used", sa.Integer(), nullable=False),
        *_id_and_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_trend_sources"),
    )
    op.create_index(op.f("ix_trend_sources_url"), "trend_sources", ["url"], unique=True)
    op.create_index(op.f("ix_trend_sources_is_active"), "trend_sources", ["is_active"], unique=False)

    op.create_table(
        "blog_topics",
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("angle", sa.Text(), nullable=True),
        sa.Column("source_url", sa.String(length=2000), nullable=True),
        sa.Column("source_headline", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_reason", sa.Text(), nullable=True),
        *_id_and_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_blog_topics"),
        sa.UniqueConstraint("source_url", name="uq_blog_topics_source_url"),
    )
    op.create_index(op.f("ix_blog_topics_status"), "blog_topics", ["status"], unique=False)

    op.create_table(
        "articles",
        sa.Column("topic_id", sa.String(length=32), nullable=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("slug", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("seo_title", sa.String(length=255), nullable=True),
        sa.Column("seo_description", sa.String(length=500), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("primary_keyword", sa.String(length=500), nullable=True),
        sa.Column("keywords", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("cluster_name", sa.String(length=255), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=False),
        sa.Column("reading_time", sa.Integer(), nullable=False),
        sa.Column("meta_score", sa.Float(), nullable=True),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_refreshed_at", sa.DateTime(timezone=True), nullable=True),
        *_id_and_timestamps(),
        sa.ForeignKeyConstraint(["topic_id"], ["blog_topics.id"], ondelete="SET NULL", name="fk_articles_topic_id_blog_topics"),
        sa.PrimaryKeyConstraint("id", name="pk_articles"),
    )
    op.create_index(op.f("ix_articles_slug"), "articles", ["slug"], unique=True)
    op.create_index(op.f("ix_articles_topic_id"), "articles", ["topic_id"], unique=False)
    op.create_index(op.f("ix_articles_status"), "articles", ["status"], unique=False)
    op.create_index(op.f("ix_articles_published_at"), "articles", ["published_at"], unique=False)

    op.create_table(
        "internal_links",
        sa.Column("from_article_id", sa.String(length=32), nullable=False),
        sa.Column("to_article_id", sa.String(length=32), nullable=False),
        sa.Column("anchor_text", sa.String(length=255), nullable=False),
        sa.Column("link_type", sa.String(length=30), nullable=False),
        *_id_and_timestamps(),
        sa.ForeignKeyConstraint(["from_article_id"], ["articles.id"], ondelete="CASCADE", name="fk_internal_links_from_article_id_articles"),
        sa.ForeignKeyConstraint(["to_article_id"], ["articles.id"], ondelete="CASCADE", name="fk_internal_links_to_article_id_articles"),
        sa.PrimaryKeyConstraint("id", name="pk_internal_links"),
        sa.UniqueConstraint("from_article_id", "to_article_id", name="uq_internal_links_from_to"),
    )
    op.create_index(op.f("ix_internal_links_from_article_id"), "internal_links", ["from_article_id"], unique=False)
    op.create_index(op.f("ix_internal_links_to_article_id"), "internal_links", ["to_article_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_internal_links_to_article_id"), table_name="internal_links")
    op.drop_index(op.f("ix_internal_links_from_article_id"), table_name="internal_links")
    op.drop_table("internal_links")
    op.drop_index(op.f("ix_articles_published_at"), table_name="articles")
    op.drop_index(op.f("ix_articles_status"), table_name="articles")
    op.drop_index(op.f("ix_articles_topic_id"), table_name="articles")
    op.drop_index(op.f("ix_articles_slug"), table_name="articles")
    op.drop_table("articles")
    op.drop_index(op.f("ix_blog_topics_status"), table_name="blog_topics")
    op.drop_table("blog_topics")
    op.drop_index(op.f("ix_trend_sources_is_active"), table_name="trend_sources")
    op.drop_index(op.f("ix_trend_sources_url"), table_name="trend_sources")
    op.drop_table("trend_sources")
    op.drop_index(op.f("ix_trend_keywords_is_active"), table_name="trend_keywords")
    op.drop_index(op.f("ix_trend_keywords_keyword"), table_name="trend_keywords")
    op.drop_table("trend_keywords")
