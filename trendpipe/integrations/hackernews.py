"""Hacker News Firebase API client."""

import asyncio
import logging
from typing import Any

import httpx

from trendpipe.core.exceptions import ExternalAPIError

logger = logging.getLogger(__name__)


class HackerNewsClient:
    """Reads top stories from the public Hacker News API."""

    BASE_URL = "https://hacker-news.firebaseio.com/v0"

    def __init__(
        self,
        timeout: float = 5.0,
        item_timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self.item_timeout = item_timeout
        self._transport = transport

    async def top_stories(self, limit: int = 30) -> list[dict[str, Any]]:
        """Return up to ``limit`` top story items; unreadable items are skipped."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(f"{self.BASE_URL}/topstories.json")
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise ExternalAPIError("HackerNews", str(e)) from e

            ids = response.json()[:limit]
            items = await asyncio.gather(*(self._item(client, story_id) for story_id in ids))
        return [item for item in items if item]

    async def _item(self, client: httpx.AsyncClient, story_id: int) -> dict[str, Any] | None:
        try:
            response = await client.get(
                f"{self.BASE_URL}/item/{story_id}.json",
                timeout=self.item_timeout,
            )
        except httpx.HTTPError as e:
            logger.debug("HN item fetch failed", extra={"story_id": story_id, "error": str(e)})
            return None
        if response.status_code != 200:
            return None
        return response.json() or None
