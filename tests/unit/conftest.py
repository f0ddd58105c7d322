"""In-memory stand-ins for the stores, completion service, and feed fetcher."""

from __future__ import annotations

import itertools
import json
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

import pytest

from trendpipe.config import NicheProfile
from trendpipe.core.exceptions import CompletionError
from trendpipe.integrations.feeds import FeedItem, FeedResult

BASE_TIME = datetime(2026, 6, 1, tzinfo=timezone.utc)

_ids = itertools.count(1)


def next_id(prefix: str) -> str:
    return f"{prefix}{next(_ids)}"


class FakeCompletion:
    """Returns queued replies in order; an Exception instance in the queue is raised."""

    def __init__(self, replies: Sequence[Any] = ()) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def queue(self, reply: Any) -> None:
        self.replies.append(reply)

    async def complete(self, messages, *, want_strict_json: bool = False) -> str:
        self.calls.append({"messages": list(messages), "want_strict_json": want_strict_json})
        if not self.replies:
            raise CompletionError("no reply queued")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict | list):
            return json.dumps(reply)
        return reply


class FakeKeywordStore:
    def __init__(self) -> None:
        self.rows: dict[str, SimpleNamespace] = {}
        self.clock: Callable[[], datetime] = lambda: BASE_TIME

    def seed(
        self,
        keyword: str,
        *,
        relevance_score: float = 0.7,
        usage_count: int = 0,
        updated_at: datetime | None = None,
        is_active: bool = True,
        discovery_source: str = "seed",
    ) -> SimpleNamespace:
        row = SimpleNamespace(
            id=next_id("kw"),
            keyword=keyword,
            relevance_score=relevance_score,
            usage_count=usage_count,
            updated_at=updated_at or BASE_TIME,
            is_active=is_active,
            discovery_source=discovery_source,
        )
        self.rows[keyword] = row
        return row

    def active(self) -> list[SimpleNamespace]:
        return [r for r in self.rows.values() if r.is_active]

    async def upsert(self, keyword, relevance_score, discovery_source):
        row = self.rows.get(keyword)
        if row is None:
            self.seed(
                keyword,
                relevance_score=relevance_score,
                discovery_source=discovery_source or "discovery",
                updated_at=self.clock(),
            )
            return
        row.relevance_score = relevance_score
        if discovery_source:
            row.discovery_source = discovery_source
        row.updated_at = self.clock()

    async def insert_if_missing(self, keyword, relevance_score, discovery_source):
        if keyword in self.rows:
            return False
        self.seed(keyword, relevance_score=relevance_score, discovery_source=discovery_source)
        return True

    async def count_active(self):
        return len(self.active())

    async def least_valuable_active(self, limit):
        ordered = sorted(self.active(), key=lambda r: (r.usage_count, r.updated_at))
        return ordered[: max(limit, 0)]

    async def stale_unused(self, updated_before, limit):
        stale = [r for r in self.active() if r.usage_count == 0 and r.updated_at < updated_before]
        return sorted(stale, key=lambda r: r.updated_at)[:limit]

    async def top_active(self, limit):
        return sorted(self.active(), key=lambda r: r.relevance_score, reverse=True)[:limit]

    async def deactivate(self, keyword_ids):
        count = 0
        for row in self.rows.values():
            if row.id in keyword_ids and row.is_active:
                row.is_active = False
                count += 1
        return count

    async def increment_usage(self, keyword, amount=1):
        row = self.rows.get(keyword)
        if row is None:
            return False
        row.usage_count += amount
        return True


class FakeSourceStore:
    def __init__(self) -> None:
        self.rows: list[SimpleNamespace] = []

    def seed(
        self,
        url: str,
        *,
        name: str = "feed",
        kind: str = "feed",
        is_active: bool = True,
        priority: int = 0,
        articles_found: int = 0,
        articles_used: int = 0,
    ) -> SimpleNamespace:
        row = SimpleNamespace(
            id=next_id("src"),
            name=name,
            kind=kind,
            url=url,
            is_active=is_active,
            priority=priority,
            articles_found=articles_found,
            articles_used=articles_used,
        )
        self.rows.append(row)
        return row

    async def list_active(self):
        return sorted((r for r in self.rows if r.is_active), key=lambda r: -r.priority)

    async def get(self, source_id):
        return next((r for r in self.rows if r.id == source_id), None)

    async def get_by_url(self, url):
        return next((r for r in self.rows if r.url == url), None)

    async def add(self, *, name, kind, url, is_active, priority):
        return self.seed(url, name=name, kind=kind, is_active=is_active, priority=priority)

    async def update(self, source, changes):
        for key, value in changes.items():
            setattr(source, key, value)

    async def increment_stats(self, url, found, used):
        row = await self.get_by_url(url)
        if row is None:
            return False
        row.articles_found += found
        if used is not None:
            row.articles_used += used
        return True

    async def active_with_min_found(self, min_found):
        return [r for r in self.rows if r.is_active and r.articles_found >= min_found]

    async def deactivate(self, source_ids):
        count = 0
        for row in self.rows:
            if row.id in source_ids and row.is_active:
                row.is_active = False
                count += 1
        return count

    async def count_active(self):
        return sum(1 for r in self.rows if r.is_active)


class FakeTopicStore:
    def __init__(self) -> None:
        self.rows: dict[str, SimpleNamespace] = {}
        self.saves = 0

    def seed(self, *, title: str = "Topic", status: str = "pending", source_url: str | None = None, angle=None):
        row = SimpleNamespace(
            id=next_id("topic"),
            title=title,
            angle=angle,
            source_url=source_url,
            source_headline=None,
            status=status,
            approved_by=None,
            approved_at=None,
            rejected_reason=None,
        )
        self.rows[row.id] = row
        return row

    async def get(self, topic_id):
        return self.rows.get(topic_id)

    async def source_url_exists(self, source_url):
        return any(r.source_url == source_url for r in self.rows.values())

    async def add(self, *, title, angle, source_url, source_headline):
        if source_url and await self.source_url_exists(source_url):
            return None
        row = self.seed(title=title, source_url=source_url, angle=angle)
        row.source_headline = source_headline
        return row

    async def save(self, topic):
        self.saves += 1


class FakeArticleStore:
    def __init__(self) -> None:
        self.rows: dict[str, SimpleNamespace] = {}
        self.links: dict[tuple[str, str], SimpleNamespace] = {}

    def seed(
        self,
        *,
        title: str = "Article",
        slug: str | None = None,
        status: str = "published",
        primary_keyword: str | None = None,
        keywords: Sequence[str] = (),
        cluster_name: str | None = None,
        published_at: datetime | None = None,
        last_refreshed_at: datetime | None = None,
        content: str = "Body text",
        meta_score: float | None = None,
    ) -> SimpleNamespace:
        article_id = next_id("art")
        row = SimpleNamespace(
            id=article_id,
            topic_id=None,
            title=title,
            slug=slug or f"slug-{article_id}",
            content=content,
            status=status,
            primary_keyword=primary_keyword,
            keywords=list(keywords),
            cluster_name=cluster_name,
            word_count=len(content.split()),
            reading_time=1,
            meta_score=meta_score,
            published_at=published_at,
            last_refreshed_at=last_refreshed_at,
        )
        self.rows[article_id] = row
        return row

    def published(self) -> list[SimpleNamespace]:
        return [a for a in self.rows.values() if a.status == "published"]

    async def get(self, article_id):
        return self.rows.get(article_id)

    async def slug_exists(self, slug):
        return any(a.slug == slug for a in self.rows.values())

    async def add(self, fields):
        article_id = next_id("art")
        row = SimpleNamespace(
            id=article_id,
            cluster_name=None,
            published_at=None,
            last_refreshed_at=None,
            **fields,
        )
        self.rows[article_id] = row
        return row

    async def save(self, article):
        return None

    async def count_published_covering(self, keyword):
        needle = keyword.lower()
        return sum(
            1
            for a in self.published()
            if (a.primary_keyword or "").lower() == needle or keyword in a.keywords
        )

    async def linked_target_ids(self, from_article_id):
        return {to for (frm, to) in self.links if frm == from_article_id}

    async def related_published(self, article, exclude_ids, limit):
        first_keywords = set(article.keywords[:3])

        def related(candidate) -> bool:
            if article.primary_keyword and (candidate.primary_keyword or "").lower() == article.primary_keyword.lower():
                return True
            if article.cluster_name and candidate.cluster_name == article.cluster_name:
                return True
            return bool(first_keywords & set(candidate.keywords))

        has_conditions = bool(article.primary_keyword or article.cluster_name or article.keywords)
        matches = [
            a
            for a in self.published()
            if a.id not in exclude_ids and (related(a) or not has_conditions)
        ]
        matches.sort(key=lambda a: a.published_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
        return matches[:limit]

    async def stale_published(self, cutoff, limit):
        stale = [
            a
            for a in self.published()
            if a.published_at is not None
            and a.published_at < cutoff
            and (a.last_refreshed_at is None or a.last_refreshed_at < cutoff)
        ]
        return sorted(stale, key=lambda a: a.published_at)[:limit]

    async def upsert_link(self, from_article_id, to_article_id, anchor_text, link_type):
        self.links[(from_article_id, to_article_id)] = SimpleNamespace(
            anchor_text=anchor_text,
            link_type=link_type,
        )

    async def count_published(self):
        return len(self.published())

    async def average_published_meta_score(self):
        scores = [a.meta_score for a in self.published() if a.meta_score is not None]
        return sum(scores) / len(scores) if scores else None

    async def count_links(self):
        return len(self.links)


class FakeFetcher:
    """Serves canned feed results keyed by URL; unknown URLs return an error result."""

    def __init__(self, feeds: dict[str, list[tuple[str, str]] | Exception] | None = None) -> None:
        self.feeds = feeds or {}
        self.requested: list[list[str]] = []

    async def fetch_all(self, feed_urls):
        self.requested.append(list(feed_urls))
        results = []
        for url in feed_urls:
            payload = self.feeds.get(url)
            if payload is None:
                results.append(FeedResult(feed_url=url, error="HTTP error: 404"))
            elif isinstance(payload, Exception):
                results.append(FeedResult(feed_url=url, error=str(payload)))
            else:
                items = [FeedItem(title=t, link=l, feed_url=url) for t, l in payload][:20]
                results.append(FeedResult(feed_url=url, items=items))
        return results


@pytest.fixture
def niche() -> NicheProfile:
    return NicheProfile(
        product_name="Inbox0",
        description="an AI email assistant for executives",
        keywords=("email productivity", "inbox zero", "time management"),
    )


@pytest.fixture
def keyword_store() -> FakeKeywordStore:
    return FakeKeywordStore()


@pytest.fixture
def source_store() -> FakeSourceStore:
    return FakeSourceStore()


@pytest.fixture
def topic_store() -> FakeTopicStore:
    return FakeTopicStore()


@pytest.fixture
def article_store() -> FakeArticleStore:
    return FakeArticleStore()


@pytest.fixture
def make_completion() -> Callable[..., FakeCompletion]:
    return lambda *replies: FakeCompletion(replies)


@pytest.fixture
def make_fetcher() -> Callable[..., FakeFetcher]:
    return lambda feeds=None: FakeFetcher(feeds)


@pytest.fixture
def days_ago() -> Callable[[int], datetime]:
    return lambda days: BASE_TIME - timedelta(days=days)


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME
