"""Pipeline orchestrator: runs each subsystem in isolation with its own session."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Any, Literal

from sqlalchemy.ext.asyncio import AsyncSession

from trendpipe.agents.content_agents import AnchorTextAgent, ContentRefreshAgent
from trendpipe.agents.headline_analyst import HeadlineAnalystAgent
from trendpipe.agents.keyword_agents import KeywordBrainstormAgent, KeywordScoringAgent
from trendpipe.config import NicheProfile, Settings, settings
from trendpipe.core.db_retry import run_with_transient_db_retry
from trendpipe.integrations.completion import CompletionService, PydanticAICompletionService
from trendpipe.integrations.feeds import FeedFetcher
from trendpipe.repositories.article_repository import ArticleRepository
from trendpipe.repositories.keyword_repository import KeywordRepository
from trendpipe.repositories.source_repository import SourceRepository
from trendpipe.repositories.topic_repository import TopicRepository
from trendpipe.services.content_intelligence import (
    ContentIntelligenceConfig,
    ContentIntelligenceService,
)
from trendpipe.services.keyword_discovery import DiscoveryConfig, KeywordDiscoveryEngine
from trendpipe.services.keyword_sources import (
    BrainstormKeywordSource,
    HackerNewsKeywordSource,
    KeywordSourceAdapter,
    NewsAPIKeywordSource,
    RedditKeywordSource,
)
from trendpipe.services.source_registry import SourceRegistry, SourceRegistryConfig
from trendpipe.services.topic_service import TopicService
from trendpipe.services.trend_scout import HeadlineScout, ScoutConfig

logger = logging.getLogger(__name__)

JobName = Literal["discovery", "sources", "scout", "refresh"]
ALL_JOBS: tuple[JobName, ...] = ("discovery", "sources", "scout", "refresh")

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass(frozen=True)
class JobOutcome:
    """Result of one pipeline job; failures are captured, never raised."""

    job: str
    ok: bool
    result: dict[str, Any] | None = None
    error: str | None = None
    duration_s: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "job": self.job,
            "ok": self.ok,
            "result": self.result,
            "error": self.error,
            "duration_s": self.duration_s,
        }


def _default_session_factory() -> AbstractAsyncContextManager[AsyncSession]:
    from trendpipe.core.database import get_session_context

    return get_session_context()


class PipelineOrchestrator:
    """Entry points the scheduler triggers.

    Jobs do not lock against each other; overlapping runs rely on the
    idempotent upserts and skip-on-duplicate inserts of the stores.
    """

    def __init__(
        self,
        *,
        session_factory: SessionFactory | None = None,
        completion: CompletionService | None = None,
        fetcher: FeedFetcher | None = None,
        app_settings: Settings | None = None,
    ) -> None:
        self.settings = app_settings or settings
        self._session_factory = session_factory or _default_session_factory
        self._completion = completion
        self.fetcher = fetcher or FeedFetcher(timeout=self.settings.feed_timeout_seconds)

    @property
    def completion(self) -> CompletionService:
        if self._completion is None:
            self._completion = PydanticAICompletionService()
        return self._completion

    async def run_keyword_discovery(self) -> JobOutcome:
        return await self._run("discovery", self._keyword_discovery)

    async def run_source_maintenance(self) -> JobOutcome:
        return await self._run("sources", self._source_maintenance, retry_transient=True)

    async def run_trend_scout(self) -> JobOutcome:
        return await self._run("scout", self._trend_scout)

    async def run_content_refresh(self) -> JobOutcome:
        return await self._run("refresh", self._content_refresh)

    async def run_job(self, job: JobName) -> JobOutcome:
        runners: dict[str, Callable[[], Awaitable[JobOutcome]]] = {
            "discovery": self.run_keyword_discovery,
            "sources": self.run_source_maintenance,
            "scout": self.run_trend_scout,
            "refresh": self.run_content_refresh,
        }
        if job not in runners:
            raise ValueError(f"Unknown pipeline job: {job}")
        return await runners[job]()

    async def run_all(self) -> list[JobOutcome]:
        """Run every job concurrently; one job's failure does not affect the others."""
        return list(await asyncio.gather(*(self.run_job(job) for job in ALL_JOBS)))

    async def _run(
        self,
        job: str,
        operation: Callable[[], Awaitable[dict[str, Any]]],
        *,
        retry_transient: bool = False,
    ) -> JobOutcome:
        t0 = time.perf_counter()
        logger.info("Pipeline job started", extra={"job": job})
        try:
            if retry_transient:
                result = await run_with_transient_db_retry(operation, operation_name=f"pipeline_{job}")
            else:
                result = await operation()
        except Exception as e:
            duration = round(time.perf_counter() - t0, 2)
            logger.exception("Pipeline job failed", extra={"job": job, "duration_s": duration})
            return JobOutcome(job=job, ok=False, error=f"{type(e).__name__}: {e}", duration_s=duration)

        duration = round(time.perf_counter() - t0, 2)
        logger.info("Pipeline job finished", extra={"job": job, "duration_s": duration, "result": result})
        return JobOutcome(job=job, ok=True, result=result, duration_s=duration)

    def keyword_adapters(self) -> list[KeywordSourceAdapter]:
        niche = NicheProfile.from_settings(self.settings)
        return [
            NewsAPIKeywordSource(api_key=self.settings.news_api_key or ""),
            RedditKeywordSource(
                client_id=self.settings.reddit_client_id or "",
                client_secret=self.settings.reddit_client_secret or "",
            ),
            HackerNewsKeywordSource(),
            BrainstormKeywordSource(KeywordBrainstormAgent(self.completion), niche),
        ]

    async def _keyword_discovery(self) -> dict[str, Any]:
        async with self._session_factory() as session:
            engine = KeywordDiscoveryEngine(
                adapters=self.keyword_adapters(),
                scorer=KeywordScoringAgent(self.completion),
                keywords=KeywordRepository(session),
                config=DiscoveryConfig.from_settings(self.settings),
            )
            return (await engine.run_discovery()).as_dict()

    async def _source_maintenance(self) -> dict[str, Any]:
        async with self._session_factory() as session:
            registry = SourceRegistry(
                SourceRepository(session),
                KeywordRepository(session),
                SourceRegistryConfig.from_settings(self.settings),
            )
            return {"deactivated": await registry.deactivate_underperformers()}

    async def _trend_scout(self) -> dict[str, Any]:
        async with self._session_factory() as session:
            keywords = KeywordRepository(session)
            registry = SourceRegistry(
                SourceRepository(session),
                keywords,
                SourceRegistryConfig.from_settings(self.settings),
            )
            scout = HeadlineScout(
                fetcher=self.fetcher,
                analyst=HeadlineAnalystAgent(self.completion),
                config=ScoutConfig.from_settings(self.settings),
            )
            topics = TopicService(TopicRepository(session))
            run = await topics.scout_and_persist(scout, registry=registry, keywords=keywords)
            return run.as_dict()

    async def _content_refresh(self) -> dict[str, Any]:
        async with self._session_factory() as session:
            intelligence = ContentIntelligenceService(
                articles=ArticleRepository(session),
                keywords=KeywordRepository(session),
                sources=SourceRepository(session),
                anchor_agent=AnchorTextAgent(self.completion),
                refresh_agent=ContentRefreshAgent(self.completion),
                config=ContentIntelligenceConfig.from_settings(self.settings),
            )
            batch = await intelligence.refresh_stale(limit=self.settings.content_refresh_batch_size)
            return batch.as_dict()
