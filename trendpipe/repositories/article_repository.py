"""SQLAlchemy article and internal link store."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from trendpipe.models.base import generate_id
from trendpipe.models.content import ARTICLE_PUBLISHED, Article, InternalLink


class ArticleRepository:
    """Article reads/writes plus the ``internal_links`` upsert."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, article_id: str) -> Article | None:
        return await self.session.get(Article, article_id)

    async def slug_exists(self, slug: str) -> bool:
        result = await self.session.execute(select(Article.id).where(Article.slug == slug).limit(1))
        return result.scalar_one_or_none() is not None

    async def add(self, fields: dict[str, Any]) -> Article:
        article = Article(**fields)
        async with self.session.begin_nested():
            self.session.add(article)
            await self.session.flush()
        return article

    async def save(self, article: Article) -> None:
        await self.session.flush()

    async def count_published_covering(self, keyword: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Article)
            .where(
                Article.status == ARTICLE_PUBLISHED,
                or_(
                    func.lower(Article.primary_keyword) == keyword.lower(),
                    Article.keywords.contains([keyword]),
                ),
            )
        )
        return int(result.scalar_one())

    async def linked_target_ids(self, from_article_id: str) -> set[str]:
        result = await self.session.execute(
            select(InternalLink.to_article_id).where(InternalLink.from_article_id == from_article_id)
        )
        return set(result.scalars().all())

    async def related_published(
        self,
        article: Article,
        exclude_ids: set[str],
        limit: int,
    ) -> Sequence[Article]:
        conditions = []
        if article.primary_keyword:
            conditions.append(func.lower(Article.primary_keyword) == article.primary_keyword.lower())
        if article.cluster_name:
            conditions.append(Article.cluster_name == article.cluster_name)
        if article.keywords:
            conditions.extend(Article.keywords.contains([kw]) for kw in article.keywords[:3])

        stmt = select(Article).where(Article.status == ARTICLE_PUBLISHED)
        if exclude_ids:
            stmt = stmt.where(Article.id.not_in(list(exclude_ids)))
        if conditions:
            stmt = stmt.where(or_(*conditions))
        stmt = stmt.order_by(Article.published_at.desc().nulls_last()).limit(limit)

        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def stale_published(self, cutoff: datetime, limit: int) -> Sequence[Article]:
        result = await self.session.execute(
            select(Article)
            .where(
                Article.status == ARTICLE_PUBLISHED,
                Article.published_at < cutoff,
                or_(Article.last_refreshed_at.is_(None), Article.last_refreshed_at < cutoff),
            )
            .order_by(Article.published_at.asc())
            .limit(limit)
        )
        return result.scalars().all()

    async def upsert_link(self, from_article_id: str, to_article_id: str, anchor_text: str, link_type: str) -> None:
        stmt = insert(InternalLink).values(
            id=generate_id(),
            from_article_id=from_article_id,
            to_article_id=to_article_id,
            anchor_text=anchor_text,
            link_type=link_type,
        )
        await self.session.execute(
            stmt.on_conflict_do_update(
                constraint="uq_internal_links_from_to",
                set_={
                    "anchor_text": stmt.excluded.anchor_text,
                    "link_type": stmt.excluded.link_type,
                    "updated_at": func.now(),
                },
            )
        )

    async def count_published(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Article).where(Article.status == ARTICLE_PUBLISHED)
        )
        return int(result.scalar_one())

    async def average_published_meta_score(self) -> float | None:
        result = await self.session.execute(
            select(func.avg(Article.meta_score)).where(
                Article.status == ARTICLE_PUBLISHED,
                Article.meta_score.is_not(None),
            )
        )
        value = result.scalar_one_or_none()
        return float(value) if value is not None else None

    async def count_links(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(InternalLink))
        return int(result.scalar_one())
