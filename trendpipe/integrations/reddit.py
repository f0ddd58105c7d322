"""Reddit API client (application-only OAuth)."""

import logging
from typing import Any

import httpx

from trendpipe.config import settings
from trendpipe.core.exceptions import APIKeyMissingError, ExternalAPIError

logger = logging.getLogger(__name__)


class RedditClient:
    """Fetches hot posts from subreddits using client-credentials auth."""

    AUTH_URL = "https://www.reddit.com/api/v1/access_token"
    API_URL = "https://oauth.reddit.com"

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        timeout: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.client_id = client_id or settings.reddit_client_id
        self.client_secret = client_secret or settings.reddit_client_secret
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._token: str | None = None

        if not self.client_id or not self.client_secret:
            raise APIKeyMissingError("Reddit")

    async def __aenter__(self) -> "RedditClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers={"User-Agent": settings.http_user_agent},
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

    async def authenticate(self) -> str | None:
        """Obtain an application-only bearer token."""
        try:
            response = await self.client.post(
                self.AUTH_URL,
                data={"grant_type": "client_credentials"},
                auth=(self.client_id or "", self.client_secret or ""),
            )
        except httpx.HTTPError as e:
            raise ExternalAPIError("Reddit", str(e)) from e

        if response.status_code != 200:
            logger.warning("Reddit auth rejected", extra={"status": response.status_code})
            return None
        self._token = response.json().get("access_token")
        return self._token

    async def hot_posts(self, subreddit: str, limit: int = 25) -> list[dict[str, Any]]:
        """Return the ``data`` payload of each hot post in a subreddit."""
        if not self._token:
            raise RuntimeError("Call authenticate() first")
        try:
            response = await self.client.get(
                f"{self.API_URL}/r/{subreddit}/hot",
                params={"limit": limit},
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except httpx.HTTPError as e:
            raise ExternalAPIError("Reddit", str(e)) from e

        if response.status_code != 200:
            logger.info("Reddit listing skipped", extra={"subreddit": subreddit, "status": response.status_code})
            return []
        children = (response.json().get("data") or {}).get("children") or []
        return [c.get("data") or {} for c in children]
