"""Store operations the pipeline services depend on.

Services take these protocols rather than a session so unit tests can pass
in-memory fakes. The SQLAlchemy implementations live beside this module.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from trendpipe.models.content import Article
from trendpipe.models.keyword import TrendKeyword
from trendpipe.models.source import TrendSource
from trendpipe.models.topic import BlogTopic


class KeywordStore(Protocol):
    async def upsert(self, keyword: str, relevance_score: float, discovery_source: str | None) -> None:
        """Create with usage_count 0, or update score/source and refresh updated_at."""
        ...

    async def insert_if_missing(self, keyword: str, relevance_score: float, discovery_source: str) -> bool:
        ...

    async def count_active(self) -> int:
        ...

    async def least_valuable_active(self, limit: int) -> Sequence[TrendKeyword]:
        """Active keywords ordered by (usage_count asc, updated_at asc)."""
        ...

    async def stale_unused(self, updated_before: datetime, limit: int) -> Sequence[TrendKeyword]:
        ...

    async def top_active(self, limit: int) -> Sequence[TrendKeyword]:
        """Active keywords ordered by relevance desc."""
        ...

    async def deactivate(self, keyword_ids: Sequence[str]) -> int:
        ...

    async def increment_usage(self, keyword: str, amount: int = 1) -> bool:
        ...


class SourceStore(Protocol):
    async def list_active(self) -> Sequence[TrendSource]:
        """Active sources ordered by priority desc."""
        ...

    async def get(self, source_id: str) -> TrendSource | None:
        ...

    async def get_by_url(self, url: str) -> TrendSource | None:
        ...

    async def add(self, *, name: str, kind: str, url: str, is_active: bool, priority: int) -> TrendSource:
        ...

    async def update(self, source: TrendSource, changes: dict[str, Any]) -> None:
        ...

    async def increment_stats(self, url: str, found: int, used: int | None) -> bool:
        """Add to the counters of the source with ``url``; False when unknown."""
        ...

    async def active_with_min_found(self, min_found: int) -> Sequence[TrendSource]:
        ...

    async def deactivate(self, source_ids: Sequence[str]) -> int:
        ...

    async def count_active(self) -> int:
        ...


class TopicStore(Protocol):
    async def get(self, topic_id: str) -> BlogTopic | None:
        ...

    async def source_url_exists(self, source_url: str) -> bool:
        ...

    async def add(
        self,
        *,
        title: str,
        angle: str | None,
        source_url: str | None,
        source_headline: str | None,
    ) -> BlogTopic | None:
        """Insert a pending topic; None when a unique key already exists."""
        ...

    async def save(self, topic: BlogTopic) -> None:
        ...


class ArticleStore(Protocol):
    async def get(self, article_id: str) -> Article | None:
        ...

    async def slug_exists(self, slug: str) -> bool:
        ...

    async def add(self, fields: dict[str, Any]) -> Article:
        ...

    async def save(self, article: Article) -> None:
        ...

    async def count_published_covering(self, keyword: str) -> int:
        """Published articles whose primary keyword equals ``keyword`` (case-insensitive) or whose keywords contain it."""
        ...

    async def linked_target_ids(self, from_article_id: str) -> set[str]:
        ...

    async def related_published(
        self,
        article: Article,
        exclude_ids: set[str],
        limit: int,
    ) -> Sequence[Article]:
        """Published articles sharing primary keyword, cluster, or any of the first three keywords; newest first."""
        ...

    async def stale_published(self, cutoff: datetime, limit: int) -> Sequence[Article]:
        ...

    async def upsert_link(self, from_article_id: str, to_article_id: str, anchor_text: str, link_type: str) -> None:
        ...

    async def count_published(self) -> int:
        ...

    async def average_published_meta_score(self) -> float | None:
        ...

    async def count_links(self) -> int:
        ...
