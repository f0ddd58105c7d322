"""Source registry: fetch targets, yield accounting, and underperformer pruning."""

import logging
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

from trendpipe.config import Settings, settings
from trendpipe.core.exceptions import SourceNotFoundError
from trendpipe.repositories.contracts import KeywordStore, SourceStore

logger = logging.getLogger(__name__)

GOOGLE_NEWS_RSS_BASE = "https://news.google.com/rss/search"


def google_news_feed_url(keyword: str) -> str:
    """Build a Google News RSS search URL for a keyword."""
    query = quote(keyword, safe="")
    return f"{GOOGLE_NEWS_RSS_BASE}?q={query}&hl=en-US&gl=US&ceid=US:en"


@dataclass(frozen=True)
class SourceRegistryConfig:
    """Tunables for fetch-target assembly and pruning."""

    include_dynamic_feeds: bool = True
    dynamic_keyword_limit: int = 10
    min_articles_seen: int = 20
    min_success_rate: float = 0.1

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "SourceRegistryConfig":
        cfg = source or settings
        return cls(dynamic_keyword_limit=cfg.dynamic_feed_keyword_limit)


@dataclass
class FetchPlan:
    """Ordered feed URLs to fetch, with the keyword behind each dynamic URL."""

    urls: list[str] = field(default_factory=list)
    keyword_by_url: dict[str, str] = field(default_factory=dict)


class SourceRegistry:
    """Owns configured sources and tracks how productive each one is."""

    def __init__(
        self,
        sources: SourceStore,
        keywords: KeywordStore,
        config: SourceRegistryConfig | None = None,
    ) -> None:
        self.sources = sources
        self.keywords = keywords
        self.config = config or SourceRegistryConfig()

    async def get_fetch_targets(
        self,
        *,
        include_dynamic: bool | None = None,
        dynamic_keyword_limit: int | None = None,
    ) -> FetchPlan:
        """Static active sources first, then dynamic keyword feeds, deduplicated by URL."""
        include = self.config.include_dynamic_feeds if include_dynamic is None else include_dynamic
        limit = self.config.dynamic_keyword_limit if dynamic_keyword_limit is None else dynamic_keyword_limit

        plan = FetchPlan()
        for source in await self.sources.list_active():
            if source.url not in plan.urls:
                plan.urls.append(source.url)

        if include and limit > 0:
            for kw in await self.keywords.top_active(limit):
                url = google_news_feed_url(kw.keyword)
                if url in plan.urls:
                    continue
                plan.urls.append(url)
                plan.keyword_by_url[url] = kw.keyword

        logger.info(
            "Fetch targets assembled",
            extra={"total": len(plan.urls), "dynamic": len(plan.keyword_by_url)},
        )
        return plan

    async def record_yield(self, source_url: str, found: int, used: int | None = None) -> bool:
        """Add to a source's counters; unknown URLs are ignored."""
        recorded = await self.sources.increment_stats(source_url, found, used)
        if not recorded:
            logger.debug("Yield for unregistered source ignored", extra={"source_url": source_url})
        return recorded

    async def deactivate_underperformers(
        self,
        min_articles_seen: int | None = None,
        min_success_rate: float | None = None,
    ) -> int:
        """Deactivate active sources whose used/found rate is below the minimum.

        Sources that have seen fewer than ``min_articles_seen`` articles are
        never touched.
        """
        threshold = self.config.min_articles_seen if min_articles_seen is None else min_articles_seen
        min_rate = self.config.min_success_rate if min_success_rate is None else min_success_rate

        to_deactivate = []
        for source in await self.sources.active_with_min_found(threshold):
            if source.articles_found < threshold:
                continue
            rate = source.articles_used / source.articles_found if source.articles_found > 0 else 0.0
            if rate < min_rate:
                to_deactivate.append(source)

        if not to_deactivate:
            return 0

        deactivated = await self.sources.deactivate([s.id for s in to_deactivate])
        logger.info(
            "Deactivated underperforming sources",
            extra={
                "count": deactivated,
                "urls": [s.url for s in to_deactivate],
                "min_success_rate": min_rate,
            },
        )
        return deactivated

    # Administration

    async def add_source(
        self,
        *,
        name: str,
        kind: str,
        url: str,
        is_active: bool = True,
        priority: int = 0,
    ) -> str:
        """Register a source; an existing URL returns the existing id."""
        if kind not in {"feed", "api", "social"}:
            raise ValueError(f"Unknown source kind: {kind}")
        existing = await self.sources.get_by_url(url)
        if existing is not None:
            logger.info("Source already registered", extra={"url": url, "source_id": existing.id})
            return existing.id

        source = await self.sources.add(name=name, kind=kind, url=url, is_active=is_active, priority=priority)
        logger.info("Source added", extra={"url": url, "source_id": source.id, "kind": kind})
        return source.id

    async def update_source(self, source_id: str, **changes: Any) -> None:
        source = await self.sources.get(source_id)
        if source is None:
            raise SourceNotFoundError(source_id)
        await self.sources.update(source, changes)

    async def list_active_sources(self) -> list[Any]:
        return list(await self.sources.list_active())
