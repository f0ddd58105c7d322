"""RSS/Atom feed fetching with per-feed timeout and failure isolation."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import feedparser
import httpx

from trendpipe.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedItem:
    """A headline candidate pulled from a feed."""

    title: str
    link: str
    feed_url: str


@dataclass
class FeedResult:
    """Outcome of fetching one feed."""

    feed_url: str
    items: list[FeedItem] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class FeedFetcher:
    """Fetch and parse feeds concurrently.

    Each feed is fetched with its own timeout; a failing feed yields a
    ``FeedResult`` with ``error`` set instead of raising.
    """

    MAX_ITEMS_PER_FEED = 20

    def __init__(
        self,
        timeout: float | None = None,
        user_agent: str | None = None,
        max_items: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout or settings.feed_timeout_seconds
        self.user_agent = user_agent or settings.http_user_agent
        self.max_items = max_items or self.MAX_ITEMS_PER_FEED
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers={
                "User-Agent": self.user_agent,
                "Accept": "application/rss+xml, application/xml, text/xml, */*",
            },
            follow_redirects=True,
            transport=self._transport,
        )

    def parse(self, feed_url: str, body: str | bytes) -> list[FeedItem]:
        """Parse a feed body, keeping the first well-formed items (title and link present)."""
        parsed = feedparser.parse(body)
        items: list[FeedItem] = []
        for entry in parsed.entries:
            item = _entry_to_item(entry, feed_url)
            if item is None:
                continue
            items.append(item)
            if len(items) >= self.max_items:
                break
        return items

    async def fetch(self, client: httpx.AsyncClient, feed_url: str) -> FeedResult:
        """Fetch and parse a single feed."""
        try:
            response = await client.get(feed_url)
            response.raise_for_status()
        except httpx.TimeoutException:
            logger.warning("Feed fetch timed out", extra={"feed_url": feed_url, "timeout_s": self.timeout})
            return FeedResult(feed_url=feed_url, error=f"Timeout after {self.timeout}s")
        except httpx.HTTPError as e:
            logger.warning("Feed fetch failed", extra={"feed_url": feed_url, "error": str(e)})
            return FeedResult(feed_url=feed_url, error=f"HTTP error: {e}")

        items = self.parse(feed_url, response.content)
        logger.info("Feed fetched", extra={"feed_url": feed_url, "items": len(items)})
        return FeedResult(feed_url=feed_url, items=items)

    async def fetch_all(self, feed_urls: Sequence[str]) -> list[FeedResult]:
        """Fetch all feeds concurrently; results keep the order of ``feed_urls``."""
        if not feed_urls:
            return []

        async with self._client() as client:
            outcomes = await asyncio.gather(
                *(self.fetch(client, url) for url in feed_urls),
                return_exceptions=True,
            )

        results: list[FeedResult] = []
        for url, outcome in zip(feed_urls, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Feed parse raised", extra={"feed_url": url, "error": repr(outcome)})
                results.append(FeedResult(feed_url=url, error=f"Unexpected error: {outcome}"))
            else:
                results.append(outcome)
        return results


def _entry_to_item(entry: Any, feed_url: str) -> FeedItem | None:
    title = (entry.get("title") or "").strip()
    link = (entry.get("link") or "").strip()
    if not title or not link:
        return None
    return FeedItem(title=title, link=link, feed_url=feed_url)
