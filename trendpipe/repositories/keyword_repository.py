"""SQLAlchemy keyword store."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from trendpipe.models.base import generate_id
from trendpipe.models.keyword import TrendKeyword

logger = logging.getLogger(__name__)


class KeywordRepository:
    """Keyword reads and idempotent writes against ``trend_keywords``."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def upsert(self, keyword: str, relevance_score: float, discovery_source: str | None) -> None:
        stmt = insert(TrendKeyword).values(
            id=generate_id(),
            keyword=keyword,
            relevance_score=relevance_score,
            is_active=True,
            discovery_source=discovery_source or "discovery",
            usage_count=0,
        )
        update_values = {
            "relevance_score": stmt.excluded.relevance_score,
            "updated_at": func.now(),
        }
        if discovery_source:
            update_values["discovery_source"] = stmt.excluded.discovery_source
        # Savepoint so one failed row leaves the surrounding transaction usable
        async with self.session.begin_nested():
            await self.session.execute(
                stmt.on_conflict_do_update(index_elements=[TrendKeyword.keyword], set_=update_values)
            )

    async def insert_if_missing(self, keyword: str, relevance_score: float, discovery_source: str) -> bool:
        stmt = (
            insert(TrendKeyword)
            .values(
                id=generate_id(),
                keyword=keyword,
                relevance_score=relevance_score,
                is_active=True,
                discovery_source=discovery_source,
                usage_count=0,
            )
            .on_conflict_do_nothing(index_elements=[TrendKeyword.keyword])
            .returning(TrendKeyword.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def count_active(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(TrendKeyword).where(TrendKeyword.is_active.is_(True))
        )
        return int(result.scalar_one())

    async def least_valuable_active(self, limit: int) -> Sequence[TrendKeyword]:
        if limit <= 0:
            return []
        result = await self.session.execute(
            select(TrendKeyword)
            .where(TrendKeyword.is_active.is_(True))
            .order_by(TrendKeyword.usage_count.asc(), TrendKeyword.updated_at.asc())
            .limit(limit)
        )
        return result.scalars().all()

    async def stale_unused(self, updated_before: datetime, limit: int) -> Sequence[TrendKeyword]:
        result = await self.session.execute(
            select(TrendKeyword)
            .where(
                TrendKeyword.is_active.is_(True),
                TrendKeyword.usage_count == 0,
                TrendKeyword.updated_at < updated_before,
            )
            .order_by(TrendKeyword.updated_at.asc())
            .limit(limit)
        )
        return result.scalars().all()

    async def top_active(self, limit: int) -> Sequence[TrendKeyword]:
        result = await self.session.execute(
            select(TrendKeyword)
            .where(TrendKeyword.is_active.is_(True))
            .order_by(TrendKeyword.relevance_score.desc())
            .limit(limit)
        )
        return result.scalars().all()

    async def deactivate(self, keyword_ids: Sequence[str]) -> int:
        if not keyword_ids:
            return 0
        # Leave updated_at untouched so the staleness window is not reset
        result = await self.session.execute(
            update(TrendKeyword)
            .where(TrendKeyword.id.in_(list(keyword_ids)), TrendKeyword.is_active.is_(True))
            .values(is_active=False, updated_at=TrendKeyword.updated_at)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    async def increment_usage(self, keyword: str, amount: int = 1) -> bool:
        async with self.session.begin_nested():
            result = await self.session.execute(
                update(TrendKeyword)
                .where(TrendKeyword.keyword == keyword)
                .values(usage_count=TrendKeyword.usage_count + amount)
                .execution_options(synchronize_session=False)
            )
        return bool(result.rowcount)
