"""Idempotent seeding of default niche keywords and feed sources."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from urllib.parse import parse_qs, urlparse

from trendpipe.repositories.contracts import KeywordStore, SourceStore
from trendpipe.services.scoring import is_admissible_keyword, normalize_keyword

logger = logging.getLogger(__name__)

SEED_RELEVANCE = 0.8
SEED_SOURCE = "seed"


@dataclass
class SeedResult:
    keywords_created: int = 0
    keywords_existing: int = 0
    sources_created: int = 0
    sources_existing: int = 0


def feed_name(url: str) -> str:
    """Readable source name for a feed URL."""
    parsed = urlparse(url)
    if parsed.netloc.endswith("news.google.com"):
        query = parse_qs(parsed.query).get("q", [""])[0]
        return f"Google News ({query})" if query else "Google News"
    return parsed.netloc or url


async def seed_foundation(
    keywords: KeywordStore,
    sources: SourceStore,
    niche_keywords: Sequence[str],
    feed_urls: Sequence[str],
) -> SeedResult:
    """Insert missing default keywords and feed sources; existing rows are left alone."""
    result = SeedResult()

    for raw in niche_keywords:
        if not is_admissible_keyword(raw):
            continue
        if await keywords.insert_if_missing(normalize_keyword(raw), SEED_RELEVANCE, SEED_SOURCE):
            result.keywords_created += 1
        else:
            result.keywords_existing += 1

    for url in dict.fromkeys(u.strip() for u in feed_urls if u.strip()):
        if await sources.get_by_url(url) is not None:
            result.sources_existing += 1
            continue
        await sources.add(name=feed_name(url), kind="feed", url=url, is_active=True, priority=10)
        result.sources_created += 1

    logger.info(
        "Foundation seeded",
        extra={
            "keywords_created": result.keywords_created,
            "keywords_existing": result.keywords_existing,
            "sources_created": result.sources_created,
            "sources_existing": result.sources_existing,
        },
    )
    return result
