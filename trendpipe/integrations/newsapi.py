"""NewsAPI client used for keyword discovery and difficulty estimates."""

import logging
from typing import Any

import httpx

from trendpipe.config import settings
from trendpipe.core.exceptions import APIKeyMissingError, ExternalAPIError, RateLimitExceededError

logger = logging.getLogger(__name__)


class NewsAPIClient:
    """Minimal async client for the NewsAPI ``everything`` endpoint."""

    BASE_URL = "https://newsapi.org/v2"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.news_api_key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        if not self.api_key:
            raise APIKeyMissingError("NewsAPI")

    async def __aenter__(self) -> "NewsAPIClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"X-Api-Key": self.api_key or ""},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Client must be used as async context manager")
        return self._client

    async def everything(self, query: str, page_size: int = 10) -> dict[str, Any] | None:
        """Search articles; returns ``None`` for non-OK responses."""
        params = {"q": query, "language": "en", "pageSize": page_size}
        try:
            response = await self.client.get(f"{self.BASE_URL}/everything", params=params)
        except httpx.HTTPError as e:
            logger.warning("NewsAPI HTTP error", extra={"query": query, "error": str(e)})
            raise ExternalAPIError("NewsAPI", str(e)) from e

        if response.status_code == 429:
            logger.warning("NewsAPI rate limit hit", extra={"query": query})
            raise RateLimitExceededError("NewsAPI")
        if response.status_code != 200:
            logger.info("NewsAPI non-OK response", extra={"query": query, "status": response.status_code})
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("NewsAPI returned a non-JSON body", extra={"query": query})
            raise ExternalAPIError("NewsAPI", "Response body is not JSON") from e
        if not isinstance(data, dict):
            raise ExternalAPIError("NewsAPI", f"Unexpected payload type: {type(data).__name__}")
        return data

    async def article_titles(self, query: str, page_size: int = 10) -> list[str]:
        """Return non-empty article titles for a query."""
        data = await self.everything(query, page_size=page_size)
        if not data:
            return []
        return [a["title"] for a in data.get("articles") or [] if a.get("title")]

    async def total_results(self, query: str) -> int | None:
        """Return the ``totalResults`` count for a query, or ``None`` if unavailable."""
        data = await self.everything(query, page_size=1)
        if data is None:
            return None
        return int(data.get("totalResults") or 0)


def difficulty_from_total_results(total: int) -> float:
    """Map a result count to a 0-1 difficulty: few articles is easy, many is hard."""
    if total <= 10:
        return 0.2
    if total <= 100:
        return 0.4
    if total <= 1000:
        return 0.6
    if total <= 10000:
        return 0.8
    return 0.95
