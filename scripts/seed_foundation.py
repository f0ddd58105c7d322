"""Seed the default niche keywords and feed sources (safe to re-run)."""

from __future__ import annotations

import asyncio

from trendpipe.config import settings
from trendpipe.core.database import close_db, get_session_context
from trendpipe.core.logging import setup_logging
from trendpipe.repositories.keyword_repository import KeywordRepository
from trendpipe.repositories.source_repository import SourceRepository
from trendpipe.services.foundation_seed import SeedResult, seed_foundation


async def _seed() -> SeedResult:
    try:
        async with get_session_context() as session:
            return await seed_foundation(
                KeywordRepository(session),
                SourceRepository(session),
                settings.niche_keywords,
                settings.default_feed_urls,
            )
    finally:
        await close_db()


def main() -> int:
    setup_logging()
    result = asyncio.run(_seed())
    print(
        f"Seeded keywords: {result.keywords_created} new, {result.keywords_existing} existing; "
        f"sources: {result.sources_created} new, {result.sources_existing} existing"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
