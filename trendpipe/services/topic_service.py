"""Topic persistence and the pending/approved/rejected review workflow."""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from trendpipe.core.exceptions import InvalidTopicTransitionError, TopicNotFoundError
from trendpipe.models.topic import (
    TOPIC_APPROVED,
    TOPIC_PENDING,
    TOPIC_REJECTED,
    BlogTopic,
    can_transition,
)
from trendpipe.repositories.contracts import KeywordStore, TopicStore
from trendpipe.services.source_registry import SourceRegistry
from trendpipe.services.trend_scout import HeadlineScout, ScoutReport, TopicCandidate

logger = logging.getLogger(__name__)


@dataclass
class PersistResult:
    created: int = 0
    skipped: int = 0
    titles: list[str] = field(default_factory=list)


@dataclass
class ScoutRunResult:
    """Outcome of one scout-and-persist run."""

    feeds: int = 0
    items_fetched: int = 0
    candidates: int = 0
    created: int = 0
    skipped: int = 0
    titles: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "feeds": self.feeds,
            "items_fetched": self.items_fetched,
            "candidates": self.candidates,
            "created": self.created,
            "skipped": self.skipped,
            "titles": list(self.titles),
            "errors": list(self.errors),
        }


class TopicService:
    """Creates topics from scouted candidates and moves them through review."""

    def __init__(
        self,
        topics: TopicStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.topics = topics
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def persist_candidates(self, candidates: Sequence[TopicCandidate]) -> PersistResult:
        """Insert each candidate as a pending topic, skipping known source URLs."""
        result = PersistResult()
        seen_urls: set[str] = set()
        for candidate in candidates:
            url = candidate.source_url
            if url and (url in seen_urls or await self.topics.source_url_exists(url)):
                result.skipped += 1
                continue

            topic = await self.topics.add(
                title=candidate.title,
                angle=candidate.angle or None,
                source_url=url,
                source_headline=candidate.original_headline,
            )
            if topic is None:
                result.skipped += 1
                continue

            if url:
                seen_urls.add(url)
            result.created += 1
            result.titles.append(candidate.title)

        logger.info(
            "Persisted topic candidates",
            extra={"created": result.created, "skipped": result.skipped},
        )
        return result

    async def scout_and_persist(
        self,
        scout: HeadlineScout,
        registry: SourceRegistry | None = None,
        keywords: KeywordStore | None = None,
    ) -> ScoutRunResult:
        """Scout the registry's fetch targets, persist candidates, and record yields."""
        feed_urls: list[str] = []
        keyword_by_url: dict[str, str] = {}
        if registry is not None:
            plan = await registry.get_fetch_targets()
            feed_urls, keyword_by_url = plan.urls, plan.keyword_by_url

        report = await scout.find_candidates(feed_urls)
        persisted = await self.persist_candidates(report.candidates)

        run = ScoutRunResult(
            feeds=len(report.feed_results),
            items_fetched=report.items_fetched,
            candidates=len(report.candidates),
            created=persisted.created,
            skipped=persisted.skipped,
            titles=persisted.titles,
            errors=list(report.errors),
        )
        if registry is not None:
            await self._record_yields(report, registry, keyword_by_url, keywords, run.errors)
        return run

    async def _record_yields(
        self,
        report: ScoutReport,
        registry: SourceRegistry,
        keyword_by_url: dict[str, str],
        keywords: KeywordStore | None,
        errors: list[str],
    ) -> None:
        used_by_feed = report.candidates_by_feed()
        for feed_url, found in report.items_by_feed().items():
            try:
                await registry.record_yield(feed_url, found, used_by_feed.get(feed_url, 0))
                keyword = keyword_by_url.get(feed_url)
                if keywords is not None and keyword and found > 0:
                    await keywords.increment_usage(keyword)
            except Exception as e:
                logger.warning("Recording source yield failed", extra={"feed_url": feed_url, "error": str(e)})
                errors.append(f"yield {feed_url}: {e}")

    async def create_manual(self, title: str, angle: str | None = None) -> BlogTopic:
        title = title.strip()
        if not title:
            raise ValueError("Topic title is required")
        topic = await self.topics.add(title=title, angle=angle, source_url=None, source_headline=None)
        if topic is None:
            raise ValueError(f"Topic could not be created: {title}")
        return topic

    async def approve(self, topic_id: str, approved_by: str) -> BlogTopic:
        topic = await self._transition(topic_id, TOPIC_APPROVED)
        topic.approved_by = approved_by
        topic.approved_at = self._clock()
        await self.topics.save(topic)
        logger.info("Topic approved", extra={"topic_id": topic_id, "approved_by": approved_by})
        return topic

    async def reject(self, topic_id: str, reason: str | None = None) -> BlogTopic:
        topic = await self._transition(topic_id, TOPIC_REJECTED)
        topic.rejected_reason = reason
        await self.topics.save(topic)
        logger.info("Topic rejected", extra={"topic_id": topic_id, "reason": reason})
        return topic

    async def _transition(self, topic_id: str, target: str) -> BlogTopic:
        topic = await self.topics.get(topic_id)
        if topic is None:
            raise TopicNotFoundError(topic_id)
        if topic.status != TOPIC_PENDING or not can_transition(topic.status, target):
            raise InvalidTopicTransitionError(topic_id, topic.status, target)
        topic.status = target
        return topic
