"""Content intelligence: coverage gaps, internal links, staleness refresh, difficulty."""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone

import httpx

from trendpipe.agents.content_agents import (
    AnchorTextAgent,
    AnchorTextInput,
    ContentRefreshAgent,
    ContentRefreshInput,
)
from trendpipe.config import Settings, settings
from trendpipe.core.exceptions import TrendPipeError
from trendpipe.integrations.newsapi import NewsAPIClient, difficulty_from_total_results
from trendpipe.repositories.contracts import ArticleStore, KeywordStore, SourceStore
from trendpipe.schemas.completion import Malformed
from trendpipe.services.scoring import (
    OpportunityTier,
    clamp,
    count_words,
    opportunity_tier,
    reading_time_minutes,
)

logger = logging.getLogger(__name__)

DEFAULT_DIFFICULTY = 0.5
GAP_REASON = "No published post targets this keyword"


@dataclass(frozen=True)
class ContentIntelligenceConfig:
    """Feature flags and windows for content intelligence."""

    auto_internal_linking: bool = False
    content_refresh_enabled: bool = False
    stale_after_days: int = 182
    max_links_applied: int = 5
    link_candidate_slack: int = 5
    news_api_key: str | None = None

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "ContentIntelligenceConfig":
        cfg = source or settings
        return cls(
            auto_internal_linking=cfg.enable_auto_internal_linking,
            content_refresh_enabled=cfg.enable_content_refresh,
            news_api_key=cfg.news_api_key,
        )


@dataclass(frozen=True)
class ContentGap:
    keyword: str
    opportunity: OpportunityTier
    reason: str = GAP_REASON


@dataclass(frozen=True)
class LinkSuggestion:
    to_article_id: str
    to_slug: str
    to_title: str
    anchor_text: str
    link_type: str


@dataclass(frozen=True)
class RefreshResult:
    """Per-article refresh outcome; failures are values, not exceptions."""

    article_id: str
    success: bool
    word_count: int | None = None
    meta_score: float | None = None
    error: str | None = None


@dataclass
class RefreshBatchResult:
    attempted: int = 0
    refreshed: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    results: list[RefreshResult] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "refreshed": self.refreshed,
            "failed": self.failed,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class DashboardMetrics:
    active_keywords: int
    active_sources: int
    published_articles: int
    average_meta_score: float | None
    internal_links: int

    def as_dict(self) -> dict:
        return asdict(self)


class ContentIntelligenceService:
    """Read-mostly operations over articles and keywords.

    Every public method returns a structured value; completion failures fall
    back to defaults instead of raising.
    """

    def __init__(
        self,
        articles: ArticleStore,
        keywords: KeywordStore,
        sources: SourceStore | None = None,
        anchor_agent: AnchorTextAgent | None = None,
        refresh_agent: ContentRefreshAgent | None = None,
        config: ContentIntelligenceConfig | None = None,
        newsapi_factory: Callable[[str], NewsAPIClient] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.articles = articles
        self.keywords = keywords
        self.sources = sources
        self.anchor_agent = anchor_agent
        self.refresh_agent = refresh_agent
        self.config = config or ContentIntelligenceConfig()
        self._newsapi_factory = newsapi_factory or (lambda key: NewsAPIClient(api_key=key, timeout=5.0))
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # Gap detection

    async def content_gaps(self, limit: int = 20) -> list[ContentGap]:
        """Active keywords (highest relevance first) with no published coverage."""
        if limit <= 0:
            return []
        gaps: list[ContentGap] = []
        for kw in await self.keywords.top_active(limit * 2):
            if await self.articles.count_published_covering(kw.keyword) == 0:
                gaps.append(ContentGap(keyword=kw.keyword, opportunity=opportunity_tier(kw.relevance_score or 0.0)))
            if len(gaps) >= limit:
                break
        return gaps

    # Internal links

    async def suggest_internal_links(self, article_id: str, max_links: int = 5) -> list[LinkSuggestion]:
        """Suggest links from an article to related published articles."""
        article = await self.articles.get(article_id)
        if article is None or max_links <= 0:
            return []

        exclude = {article.id, *await self.articles.linked_target_ids(article.id)}
        related = await self.articles.related_published(
            article,
            exclude,
            max_links + self.config.link_candidate_slack,
        )
        targets = [a for a in related if a.id not in exclude][:max_links]
        if not targets:
            return []

        anchors = await self._anchor_texts(article.title, targets)
        if anchors is None:
            return [_suggestion(t, t.title, "related") for t in targets]
        return [_suggestion(t, anchors.get(t.id) or t.title, "contextual") for t in targets]

    async def _anchor_texts(self, source_title: str, targets: Sequence) -> dict[str, str] | None:
        if self.anchor_agent is None:
            return None
        outcome = await self.anchor_agent.run(
            AnchorTextInput(source_title=source_title, targets=[(t.id, t.title) for t in targets])
        )
        if isinstance(outcome, Malformed):
            return None
        return {
            str(key): value.strip()
            for key, value in outcome.value.items()
            if isinstance(value, str) and value.strip()
        }

    async def apply_internal_links(self, from_article_id: str, suggestions: Sequence[LinkSuggestion]) -> int:
        """Upsert link rows for suggestions when auto-linking is enabled."""
        if not self.config.auto_internal_linking:
            logger.debug("Auto internal linking disabled", extra={"article_id": from_article_id})
            return 0

        applied = 0
        for suggestion in list(suggestions)[: self.config.max_links_applied]:
            if suggestion.to_article_id == from_article_id:
                continue
            try:
                await self.articles.upsert_link(
                    from_article_id,
                    suggestion.to_article_id,
                    suggestion.anchor_text,
                    suggestion.link_type,
                )
                applied += 1
            except Exception as e:
                logger.warning(
                    "Internal link upsert failed",
                    extra={"from": from_article_id, "to": suggestion.to_article_id, "error": str(e)},
                )
        return applied

    # Staleness refresh

    async def stale_articles(self, limit: int = 2) -> list:
        cutoff = self._clock() - timedelta(days=self.config.stale_after_days)
        return list(await self.articles.stale_published(cutoff, limit))

    async def refresh_post(self, article_id: str) -> RefreshResult:
        """Regenerate one article's content. Never raises."""
        try:
            return await self._refresh_post(article_id)
        except Exception as e:
            logger.warning("Article refresh failed", extra={"article_id": article_id, "error": str(e)})
            return RefreshResult(article_id=article_id, success=False, error=str(e))

    async def _refresh_post(self, article_id: str) -> RefreshResult:
        article = await self.articles.get(article_id)
        if article is None:
            return RefreshResult(article_id=article_id, success=False, error="Article not found")
        if self.refresh_agent is None:
            return RefreshResult(article_id=article_id, success=False, error="Refresh agent not configured")

        now = self._clock()
        outcome = await self.refresh_agent.run(
            ContentRefreshInput(
                title=article.title,
                slug=article.slug,
                content=article.content,
                current_date=now.date().isoformat(),
            )
        )
        if isinstance(outcome, Malformed):
            return RefreshResult(article_id=article_id, success=False, error=f"Malformed refresh reply: {outcome.reason}")

        refreshed = outcome.value
        content = refreshed.content or article.content
        word_count = refreshed.word_count if refreshed.word_count is not None else count_words(content)
        meta_score = clamp(refreshed.meta_score, 0.0, 100.0) if refreshed.meta_score is not None else None

        article.content = content
        article.word_count = word_count
        article.reading_time = reading_time_minutes(word_count)
        if meta_score is not None:
            article.meta_score = meta_score
        article.last_refreshed_at = now
        await self.articles.save(article)

        logger.info(
            "Article refreshed",
            extra={"article_id": article_id, "word_count": word_count, "meta_score": meta_score},
        )
        return RefreshResult(article_id=article_id, success=True, word_count=word_count, meta_score=meta_score)

    async def refresh_stale(self, limit: int = 2) -> RefreshBatchResult:
        """Refresh the oldest stale articles; each failure is independent."""
        batch = RefreshBatchResult()
        if not self.config.content_refresh_enabled:
            batch.errors.append("ENABLE_CONTENT_REFRESH is not true; skipping refresh")
            return batch

        t0 = time.perf_counter()
        for article in await self.stale_articles(limit):
            batch.attempted += 1
            result = await self.refresh_post(article.id)
            batch.results.append(result)
            if result.success:
                batch.refreshed += 1
            else:
                batch.failed += 1
                batch.errors.append(f"{article.id}: {result.error}")

        logger.info(
            "Stale refresh finished",
            extra={**batch.as_dict(), "duration_s": round(time.perf_counter() - t0, 2)},
        )
        return batch

    # Difficulty and metrics

    async def estimate_difficulty(self, keyword: str) -> float:
        """Estimate keyword difficulty (0-1) from the size of the news corpus."""
        if not self.config.news_api_key:
            return DEFAULT_DIFFICULTY
        try:
            async with self._newsapi_factory(self.config.news_api_key) as client:
                total = await client.total_results(keyword)
        except (TrendPipeError, httpx.HTTPError, ValueError) as e:
            logger.info("Difficulty lookup failed", extra={"keyword": keyword, "error": str(e)})
            return DEFAULT_DIFFICULTY
        if total is None:
            return DEFAULT_DIFFICULTY
        return difficulty_from_total_results(total)

    async def dashboard_metrics(self) -> DashboardMetrics:
        return DashboardMetrics(
            active_keywords=await self.keywords.count_active(),
            active_sources=await self.sources.count_active() if self.sources is not None else 0,
            published_articles=await self.articles.count_published(),
            average_meta_score=await self.articles.average_published_meta_score(),
            internal_links=await self.articles.count_links(),
        )


def _suggestion(target, anchor_text: str, link_type: str) -> LinkSuggestion:
    return LinkSuggestion(
        to_article_id=target.id,
        to_slug=target.slug,
        to_title=target.title,
        anchor_text=anchor_text,
        link_type=link_type,
    )
