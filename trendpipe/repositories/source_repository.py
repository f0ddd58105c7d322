"""SQLAlchemy trend source store."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from trendpipe.models.source import TrendSource

_UPDATABLE_FIELDS = frozenset({"name", "kind", "url", "is_active", "priority"})


class SourceRepository:
    """Source reads and counter updates against ``trend_sources``."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_active(self) -> Sequence[TrendSource]:
        result = await self.session.execute(
            select(TrendSource)
            .where(TrendSource.is_active.is_(True))
            .order_by(TrendSource.priority.desc(), TrendSource.created_at.asc())
        )
        return result.scalars().all()

    async def get(self, source_id: str) -> TrendSource | None:
        return await self.session.get(TrendSource, source_id)

    async def get_by_url(self, url: str) -> TrendSource | None:
        result = await self.session.execute(select(TrendSource).where(TrendSource.url == url))
        return result.scalar_one_or_none()

    async def add(self, *, name: str, kind: str, url: str, is_active: bool, priority: int) -> TrendSource:
        source = TrendSource(
            name=name,
            kind=kind,
            url=url,
            is_active=is_active,
            priority=priority,
            articles_found=0,
            articles_used=0,
        )
        self.session.add(source)
        await self.session.flush()
        return source

    async def update(self, source: TrendSource, changes: dict[str, Any]) -> None:
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update source fields: {sorted(unknown)}")
        for key, value in changes.items():
            setattr(source, key, value)
        await self.session.flush()

    async def increment_stats(self, url: str, found: int, used: int | None) -> bool:
        values: dict[str, Any] = {"articles_found": TrendSource.articles_found + found}
        if used is not None:
            values["articles_used"] = TrendSource.articles_used + used
        async with self.session.begin_nested():
            result = await self.session.execute(
                update(TrendSource)
                .where(TrendSource.url == url)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        return bool(result.rowcount)

    async def active_with_min_found(self, min_found: int) -> Sequence[TrendSource]:
        result = await self.session.execute(
            select(TrendSource).where(
                TrendSource.is_active.is_(True),
                TrendSource.articles_found >= min_found,
            )
        )
        return result.scalars().all()

    async def deactivate(self, source_ids: Sequence[str]) -> int:
        if not source_ids:
            return 0
        result = await self.session.execute(
            update(TrendSource)
            .where(TrendSource.id.in_(list(source_ids)))
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    async def count_active(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(TrendSource).where(TrendSource.is_active.is_(True))
        )
        return int(result.scalar_one())
