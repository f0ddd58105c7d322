"""Keyword discovery adapters, one per external source kind.

Each adapter exposes ``name`` and ``fetch()``. A source that is not
configured returns an empty list; a source that fails as a whole raises
``ExternalAPIError`` and the discovery engine records it as an error.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol

from trendpipe.agents.keyword_agents import KeywordBrainstormAgent, KeywordBrainstormInput
from trendpipe.config import NicheProfile, settings
from trendpipe.integrations.hackernews import HackerNewsClient
from trendpipe.integrations.newsapi import NewsAPIClient
from trendpipe.integrations.reddit import RedditClient
from trendpipe.schemas.completion import Malformed
from trendpipe.services.scoring import normalize_keyword, title_terms

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveredKeyword:
    """A raw keyword string tagged with the source that surfaced it."""

    keyword: str
    discovery_source: str
    raw_score: float | None = None


class KeywordSourceAdapter(Protocol):
    """Capability interface for a keyword discovery source."""

    name: str

    async def fetch(self) -> list[DiscoveredKeyword]:
        ...


class NewsAPIKeywordSource:
    """Pulls title terms from recent NewsAPI articles for the niche queries."""

    name = "newsapi"
    DEFAULT_QUERIES = (
        "email productivity",
        "inbox zero",
        "email automation",
        "time management",
        "executive productivity",
    )

    def __init__(
        self,
        api_key: str | None = None,
        queries: Sequence[str] = DEFAULT_QUERIES,
        client_factory: Callable[[str], NewsAPIClient] | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.news_api_key
        self.queries = tuple(queries)[:5]
        self._client_factory = client_factory or (lambda key: NewsAPIClient(api_key=key))

    async def fetch(self) -> list[DiscoveredKeyword]:
        if not self.api_key:
            logger.debug("NewsAPI not configured, skipping keyword source")
            return []

        results: list[DiscoveredKeyword] = []
        async with self._client_factory(self.api_key) as client:
            for query in self.queries:
                for title in await client.article_titles(query, page_size=10):
                    results.extend(
                        DiscoveredKeyword(keyword=term, discovery_source=self.name)
                        for term in title_terms(title, min_word_length=4, max_words=5)
                    )
        return results


class RedditKeywordSource:
    """Pulls title terms from high-engagement hot posts in niche subreddits."""

    name = "reddit"
    DEFAULT_SUBREDDITS = ("productivity", "email", "GetMotivated", "entrepreneur")
    MIN_UPVOTES = 50

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        subreddits: Sequence[str] = DEFAULT_SUBREDDITS,
        client_factory: Callable[[str, str], RedditClient] | None = None,
    ) -> None:
        self.client_id = client_id if client_id is not None else settings.reddit_client_id
        self.client_secret = client_secret if client_secret is not None else settings.reddit_client_secret
        self.subreddits = tuple(subreddits)
        self._client_factory = client_factory or (
            lambda cid, secret: RedditClient(client_id=cid, client_secret=secret)
        )

    async def fetch(self) -> list[DiscoveredKeyword]:
        if not self.client_id or not self.client_secret:
            logger.debug("Reddit not configured, skipping keyword source")
            return []

        results: list[DiscoveredKeyword] = []
        async with self._client_factory(self.client_id, self.client_secret) as client:
            if not await client.authenticate():
                return []
            for subreddit in self.subreddits:
                for post in await client.hot_posts(subreddit, limit=25):
                    ups = int(post.get("ups") or 0)
                    if ups < self.MIN_UPVOTES:
                        continue
                    results.extend(
                        DiscoveredKeyword(keyword=term, discovery_source=self.name, raw_score=ups)
                        for term in title_terms(str(post.get("title") or ""), min_word_length=3, max_words=4)
                    )
        return results


class HackerNewsKeywordSource:
    """Pulls title terms from niche-related Hacker News top stories."""

    name = "hackernews"
    TOPIC_MARKERS = ("email", "productivity", "inbox", "automation", "management")

    def __init__(self, client: HackerNewsClient | None = None, story_limit: int = 30) -> None:
        self.client = client or HackerNewsClient()
        self.story_limit = story_limit

    async def fetch(self) -> list[DiscoveredKeyword]:
        results: list[DiscoveredKeyword] = []
        for item in await self.client.top_stories(limit=self.story_limit):
            title = str(item.get("title") or "")
            if not any(marker in title.lower() for marker in self.TOPIC_MARKERS):
                continue
            results.extend(
                DiscoveredKeyword(
                    keyword=term,
                    discovery_source=self.name,
                    raw_score=float(item.get("score") or 0),
                )
                for term in title_terms(title, min_word_length=3, max_words=5)
            )
        return results


class BrainstormKeywordSource:
    """Asks the completion service for emerging niche keywords."""

    name = "ai"

    def __init__(self, agent: KeywordBrainstormAgent, niche: NicheProfile) -> None:
        self.agent = agent
        self.niche = niche

    async def fetch(self) -> list[DiscoveredKeyword]:
        year = datetime.now(timezone.utc).year
        outcome = await self.agent.run(
            KeywordBrainstormInput(
                product_name=self.niche.product_name,
                product_description=self.niche.description,
                niche_keywords=list(self.niche.keywords),
                year_range=f"{year}-{year + 1}",
            )
        )
        if isinstance(outcome, Malformed):
            return []

        return [
            DiscoveredKeyword(keyword=normalize_keyword(k), discovery_source=self.name)
            for k in _keyword_strings(outcome.value)
        ]


def _keyword_strings(value: Any) -> list[str]:
    if isinstance(value, dict):
        value = value.get("keywords")
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if isinstance(item, str | int | float) and str(item).strip()]
