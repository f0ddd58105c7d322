"""Keyword discovery engine: fan out, consolidate, score, admit, and prune."""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from trendpipe.agents.keyword_agents import KeywordScoringAgent, KeywordScoringInput
from trendpipe.config import NicheProfile, Settings, settings
from trendpipe.core.exceptions import ExternalAPIError
from trendpipe.repositories.contracts import KeywordStore
from trendpipe.schemas.completion import Malformed
from trendpipe.services.keyword_sources import DiscoveredKeyword, KeywordSourceAdapter
from trendpipe.services.scoring import (
    clamp,
    coerce_score,
    is_admissible_keyword,
    normalize_keyword,
)

logger = logging.getLogger(__name__)

PERSIST_DISABLED_NOTICE = "ENABLE_DYNAMIC_KEYWORDS is not true; skipping persist"


@dataclass(frozen=True)
class DiscoveryConfig:
    """Admission and population limits for keyword discovery."""

    niche: NicheProfile
    min_relevance: float = 0.6
    max_active: int = 50
    persist_enabled: bool = False
    scoring_batch_limit: int = 80
    stale_after_days: int = 60
    stale_batch_limit: int = 20

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "DiscoveryConfig":
        cfg = source or settings
        return cls(
            niche=NicheProfile.from_settings(cfg),
            min_relevance=cfg.min_keyword_relevance_score,
            max_active=cfg.max_active_keywords,
            persist_enabled=cfg.enable_dynamic_keywords,
        )


@dataclass
class DiscoveryResult:
    """Counts and non-fatal errors from one discovery run."""

    discovered: int = 0
    scored: int = 0
    persisted: int = 0
    deactivated: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "discovered": self.discovered,
            "scored": self.scored,
            "persisted": self.persisted,
            "deactivated": self.deactivated,
            "errors": list(self.errors),
        }


class KeywordDiscoveryEngine:
    """Discovers keywords from independent sources and manages the active population."""

    def __init__(
        self,
        adapters: Sequence[KeywordSourceAdapter],
        scorer: KeywordScoringAgent,
        keywords: KeywordStore,
        config: DiscoveryConfig,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.adapters = list(adapters)
        self.scorer = scorer
        self.keywords = keywords
        self.config = config
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def run_discovery(self) -> DiscoveryResult:
        """Run one discovery pass and report what happened."""
        t0 = time.perf_counter()
        result = DiscoveryResult()

        discovered = await self._fetch_all(result.errors)
        result.discovered = len(discovered)

        by_keyword = self.consolidate(discovered)
        to_score = list(by_keyword)[: self.config.scoring_batch_limit]
        result.scored = len(to_score)

        scores = await self.score_keywords(to_score)
        passing = [k for k in to_score if self.admits(scores.get(k))]

        if not self.config.persist_enabled:
            result.errors.append(PERSIST_DISABLED_NOTICE)
            logger.info(
                "Keyword discovery dry run",
                extra={**result.as_dict(), "passing": len(passing)},
            )
            return result

        for keyword in passing:
            try:
                await self.keywords.upsert(
                    keyword,
                    scores[keyword],
                    by_keyword[keyword].discovery_source,
                )
                result.persisted += 1
            except Exception as e:
                logger.warning("Keyword upsert failed", extra={"keyword": keyword, "error": str(e)})
                result.errors.append(f"Upsert {keyword}: {e}")

        result.deactivated += await self.prune_over_capacity()
        result.deactivated += await self.prune_stale()

        logger.info(
            "Keyword discovery finished",
            extra={**result.as_dict(), "duration_s": round(time.perf_counter() - t0, 2)},
        )
        return result

    async def _fetch_all(self, errors: list[str]) -> list[DiscoveredKeyword]:
        outcomes = await asyncio.gather(
            *(adapter.fetch() for adapter in self.adapters),
            return_exceptions=True,
        )

        discovered: list[DiscoveredKeyword] = []
        for adapter, outcome in zip(self.adapters, outcomes):
            if isinstance(outcome, BaseException):
                message = outcome.message if isinstance(outcome, ExternalAPIError) else str(outcome)
                logger.warning(
                    "Keyword source failed",
                    extra={"source": adapter.name, "error": message},
                )
                errors.append(f"{adapter.name}: {message}")
                continue
            logger.debug("Keyword source fetched", extra={"source": adapter.name, "count": len(outcome)})
            discovered.extend(outcome)
        return discovered

    @staticmethod
    def consolidate(discovered: Sequence[DiscoveredKeyword]) -> dict[str, DiscoveredKeyword]:
        """Normalize, drop strings too short or too long to store, and dedupe keeping the first-seen source."""
        by_keyword: dict[str, DiscoveredKeyword] = {}
        for item in discovered:
            key = normalize_keyword(item.keyword)
            if not is_admissible_keyword(key) or key in by_keyword:
                continue
            by_keyword[key] = item
        return by_keyword

    def admits(self, score: float | None) -> bool:
        return score is not None and score >= self.config.min_relevance

    async def score_keywords(self, keywords: Sequence[str]) -> dict[str, float]:
        """Batch-score keywords in [0, 1]; an unusable reply scores nothing."""
        if not keywords:
            return {}

        outcome = await self.scorer.run(
            KeywordScoringInput(
                product_name=self.config.niche.product_name,
                product_description=self.config.niche.description,
                keywords=list(keywords),
            )
        )
        if isinstance(outcome, Malformed):
            return {}

        scores: dict[str, float] = {}
        for raw_key, raw_value in outcome.value.items():
            score = coerce_score(raw_value)
            if score is None:
                continue
            scores[normalize_keyword(str(raw_key))] = clamp(score, 0.0, 1.0)
        return scores

    async def prune_over_capacity(self) -> int:
        """Deactivate the least-used, stalest keywords above the active cap."""
        active = await self.keywords.count_active()
        surplus = active - self.config.max_active
        if surplus <= 0:
            return 0

        victims = await self.keywords.least_valuable_active(surplus)
        deactivated = await self.keywords.deactivate([kw.id for kw in victims[:surplus]])
        logger.info(
            "Deactivated keywords over capacity",
            extra={"active": active, "max_active": self.config.max_active, "deactivated": deactivated},
        )
        return deactivated

    async def prune_stale(self) -> int:
        """Deactivate unused keywords not updated within the staleness window."""
        cutoff = self._clock() - timedelta(days=self.config.stale_after_days)
        stale = await self.keywords.stale_unused(cutoff, self.config.stale_batch_limit)
        if not stale:
            return 0

        deactivated = await self.keywords.deactivate([kw.id for kw in stale])
        logger.info("Deactivated stale keywords", extra={"deactivated": deactivated})
        return deactivated
