"""Headline scout: turns feed headlines into reviewed topic candidates."""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from trendpipe.agents.headline_analyst import (
    HeadlineAnalystAgent,
    HeadlineAnalystInput,
    HeadlineInput,
)
from trendpipe.config import NicheProfile, Settings, settings
from trendpipe.integrations.feeds import FeedItem, FeedResult
from trendpipe.schemas.completion import Malformed
from trendpipe.services.scoring import matches_any

logger = logging.getLogger(__name__)


class FeedSource(Protocol):
    async def fetch_all(self, feed_urls: Sequence[str]) -> list[FeedResult]:
        ...


@dataclass(frozen=True)
class ScoutConfig:
    """Niche pre-filter and analyst thresholds for scouting."""

    niche: NicheProfile
    default_feed_urls: tuple[str, ...] = ()
    min_relevance: float = 7
    fallback_item_limit: int = 30

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "ScoutConfig":
        cfg = source or settings
        return cls(
            niche=NicheProfile.from_settings(cfg),
            default_feed_urls=tuple(cfg.default_feed_urls),
        )


@dataclass(frozen=True)
class TopicCandidate:
    """A story the analyst selected, ready to become a pending topic."""

    title: str
    angle: str
    original_headline: str
    source_url: str | None
    relevance_score: float
    feed_url: str | None = None


@dataclass
class ScoutReport:
    """Candidates plus the diagnostic trail of one scouting pass."""

    candidates: list[TopicCandidate] = field(default_factory=list)
    feed_results: list[FeedResult] = field(default_factory=list)
    items_fetched: int = 0
    items_analyzed: int = 0
    used_fallback: bool = False
    errors: list[str] = field(default_factory=list)

    def items_by_feed(self) -> dict[str, int]:
        return {r.feed_url: len(r.items) for r in self.feed_results}

    def candidates_by_feed(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for candidate in self.candidates:
            if candidate.feed_url:
                counts[candidate.feed_url] = counts.get(candidate.feed_url, 0) + 1
        return counts


class HeadlineScout:
    """Fetches feeds, pre-filters by niche keywords, and asks the analyst to pick stories."""

    def __init__(
        self,
        fetcher: FeedSource,
        analyst: HeadlineAnalystAgent,
        config: ScoutConfig,
    ) -> None:
        self.fetcher = fetcher
        self.analyst = analyst
        self.config = config

    async def find_candidates(self, feed_urls: Sequence[str] | None = None) -> ScoutReport:
        """Run one scouting pass. Never raises; failures land in ``report.errors``."""
        report = ScoutReport()
        t0 = time.perf_counter()
        try:
            await self._scout(report, list(feed_urls) if feed_urls else list(self.config.default_feed_urls))
        except Exception as e:
            logger.exception("Headline scouting failed", extra={"error": str(e)})
            report.candidates = []
            report.errors.append(f"scout: {e}")

        logger.info(
            "Headline scouting finished",
            extra={
                "feeds": len(report.feed_results),
                "items_fetched": report.items_fetched,
                "items_analyzed": report.items_analyzed,
                "used_fallback": report.used_fallback,
                "candidates": len(report.candidates),
                "errors": len(report.errors),
                "duration_s": round(time.perf_counter() - t0, 2),
            },
        )
        return report

    async def _scout(self, report: ScoutReport, feed_urls: list[str]) -> None:
        report.feed_results = await self.fetcher.fetch_all(feed_urls)

        all_items: list[FeedItem] = []
        for result in report.feed_results:
            if result.error:
                report.errors.append(f"{result.feed_url}: {result.error}")
            all_items.extend(result.items)
        report.items_fetched = len(all_items)

        if not all_items:
            logger.warning("No feed items fetched, skipping analysis", extra={"errors": report.errors})
            return

        to_analyze = self.prefilter(all_items)
        if not to_analyze:
            report.used_fallback = True
            to_analyze = all_items[: self.config.fallback_item_limit]
        report.items_analyzed = len(to_analyze)

        outcome = await self.analyst.run(
            HeadlineAnalystInput(
                product_name=self.config.niche.product_name,
                product_description=self.config.niche.description,
                niche_keywords=list(self.config.niche.keywords),
                headlines=[HeadlineInput(title=i.title, link=i.link) for i in to_analyze],
            )
        )
        if isinstance(outcome, Malformed):
            report.errors.append(f"analyst: {outcome.reason}")
            return

        report.candidates = self._to_candidates(outcome.value.relevant_stories, to_analyze)

    def prefilter(self, items: Sequence[FeedItem]) -> list[FeedItem]:
        """Keep items whose title mentions any niche keyword (case-insensitive)."""
        return [item for item in items if matches_any(item.title, self.config.niche.keywords)]

    def _to_candidates(self, stories, analyzed: Sequence[FeedItem]) -> list[TopicCandidate]:
        by_link = {item.link: item for item in analyzed}
        by_title = {item.title.strip().lower(): item for item in analyzed}

        candidates = []
        for story in stories:
            if story.relevance_score < self.config.min_relevance:
                continue
            item = by_link.get(story.source_url or "") or by_title.get(story.original_headline.strip().lower())
            source_url = story.source_url or (item.link if item else None)
            candidates.append(
                TopicCandidate(
                    title=story.blog_idea_title.strip(),
                    angle=story.angle.strip(),
                    original_headline=story.original_headline,
                    source_url=source_url,
                    relevance_score=story.relevance_score,
                    feed_url=item.feed_url if item else None,
                )
            )
        return candidates
