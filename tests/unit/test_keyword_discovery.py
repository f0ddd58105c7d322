"""Tests for the keyword discovery engine."""

from datetime import datetime, timedelta, timezone

import pytest

from trendpipe.agents.keyword_agents import KeywordScoringAgent
from trendpipe.core.exceptions import ExternalAPIError
from trendpipe.services.keyword_discovery import (
    PERSIST_DISABLED_NOTICE,
    DiscoveryConfig,
    KeywordDiscoveryEngine,
)
from trendpipe.services.keyword_sources import DiscoveredKeyword

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


class _Adapter:
    def __init__(self, name: str, keywords=(), error: Exception | None = None) -> None:
        self.name = name
        self.keywords = list(keywords)
        self.error = error
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.error:
            raise self.error
        return [DiscoveredKeyword(keyword=k, discovery_source=self.name) for k in self.keywords]


def _engine(niche, keyword_store, completion, adapters, **config):
    return KeywordDiscoveryEngine(
        adapters=adapters,
        scorer=KeywordScoringAgent(completion),
        keywords=keyword_store,
        config=DiscoveryConfig(niche=niche, **{"persist_enabled": True, **config}),
        clock=lambda: NOW,
    )


@pytest.mark.asyncio
async def test_failing_adapter_is_isolated(niche, keyword_store, make_completion) -> None:
    good = _Adapter("reddit", ["inbox zero"])
    bad = _Adapter("newsapi", error=ExternalAPIError("NewsAPI", "boom"))
    completion = make_completion({"inbox zero": 0.9})
    engine = _engine(niche, keyword_store, completion, [bad, good])

    result = await engine.run_discovery()

    assert good.calls == 1
    assert result.discovered == 1
    assert result.persisted == 1
    assert result.errors == ["newsapi: NewsAPI API error: boom"]
    assert keyword_store.rows["inbox zero"].discovery_source == "reddit"


@pytest.mark.asyncio
async def test_consolidation_normalizes_dedupes_and_drops_short(niche, keyword_store, make_completion) -> None:
    completion = make_completion({"inbox zero": 0.9, "email": 0.9})
    engine = _engine(
        niche,
        keyword_store,
        completion,
        [
            _Adapter("hackernews", ["  Inbox Zero ", "ab", "email"]),
            _Adapter("ai", ["inbox zero", "EMAIL"]),
        ],
    )

    result = await engine.run_discovery()

    assert result.discovered == 5
    assert result.scored == 2
    assert keyword_store.rows["inbox zero"].discovery_source == "hackernews"
    assert "ab" not in keyword_store.rows
    prompt = completion.calls[0]["messages"][-1].content
    assert "inbox zero\nemail" in prompt


@pytest.mark.asyncio
async def test_admission_threshold_is_inclusive(niche, keyword_store, make_completion) -> None:
    completion = make_completion({"exact match": 0.6, "just below": 0.6 - 1e-9, "way off": 0.1})
    engine = _engine(
        niche,
        keyword_store,
        completion,
        [_Adapter("ai", ["exact match", "just below", "way off"])],
        min_relevance=0.6,
    )

    result = await engine.run_discovery()

    assert result.persisted == 1
    assert set(keyword_store.rows) == {"exact match"}
    assert keyword_store.rows["exact match"].usage_count == 0


@pytest.mark.asyncio
async def test_scores_are_clamped_and_keys_normalized(niche, keyword_store, make_completion) -> None:
    completion = make_completion({" Inbox Zero ": 7, "email flow": "0.75", "junk": "n/a"})
    engine = _engine(niche, keyword_store, completion, [_Adapter("ai", ["inbox zero", "email flow", "junk"])])

    result = await engine.run_discovery()

    assert result.persisted == 2
    assert keyword_store.rows["inbox zero"].relevance_score == 1.0
    assert keyword_store.rows["email flow"].relevance_score == 0.75


@pytest.mark.asyncio
async def test_dry_run_reports_counts_without_writing(niche, keyword_store, make_completion) -> None:
    completion = make_completion({"inbox zero": 0.95})
    engine = _engine(
        niche,
        keyword_store,
        completion,
        [_Adapter("ai", ["inbox zero"])],
        persist_enabled=False,
    )

    result = await engine.run_discovery()

    assert (result.discovered, result.scored, result.persisted, result.deactivated) == (1, 1, 0, 0)
    assert PERSIST_DISABLED_NOTICE in result.errors
    assert keyword_store.rows == {}


@pytest.mark.asyncio
async def test_malformed_scoring_reply_admits_nothing(niche, keyword_store, make_completion) -> None:
    engine = _engine(niche, keyword_store, make_completion("I think they are all great"), [_Adapter("ai", ["inbox zero"])])

    result = await engine.run_discovery()

    assert result.scored == 1
    assert result.persisted == 0
    assert keyword_store.rows == {}


@pytest.mark.asyncio
async def test_scoring_batch_is_capped(niche, keyword_store, make_completion) -> None:
    keywords = [f"keyword {i:03d}" for i in range(95)]
    completion = make_completion({k: 0.9 for k in keywords})
    engine = _engine(niche, keyword_store, completion, [_Adapter("ai", keywords)], max_active=500)

    result = await engine.run_discovery()

    assert result.discovered == 95
    assert result.scored == 80
    assert result.persisted == 80
    assert result.persisted <= result.scored <= result.discovered


@pytest.mark.asyncio
async def test_capacity_pruning_removes_lowest_usage_then_oldest(niche, keyword_store, make_completion, days_ago) -> None:
    for i in range(5):
        keyword_store.seed(f"busy {i}", usage_count=10, updated_at=days_ago(1))
    oldest_unused = keyword_store.seed("oldest unused", usage_count=0, updated_at=days_ago(30))
    newer_unused = keyword_store.seed("newer unused", usage_count=0, updated_at=days_ago(2))
    used_once = keyword_store.seed("used once", usage_count=1, updated_at=days_ago(40))
    engine = _engine(niche, keyword_store, make_completion(), [_Adapter("ai", [])], max_active=6)

    result = await engine.run_discovery()

    assert result.deactivated == 2
    assert oldest_unused.is_active is False
    assert newer_unused.is_active is False
    assert used_once.is_active is True
    assert await keyword_store.count_active() == 6


@pytest.mark.asyncio
async def test_capacity_pruning_never_exceeds_surplus(niche, keyword_store, make_completion) -> None:
    for i in range(12):
        keyword_store.seed(f"kw {i}", usage_count=i)
    engine = _engine(niche, keyword_store, make_completion(), [], max_active=10)

    deactivated = await engine.prune_over_capacity()

    assert deactivated == 2
    assert await keyword_store.count_active() == 10


@pytest.mark.asyncio
async def test_stale_pruning_runs_when_nothing_discovered(niche, keyword_store, make_completion, days_ago) -> None:
    stale = keyword_store.seed("stale", usage_count=0, updated_at=NOW - timedelta(days=61))
    used = keyword_store.seed("used but old", usage_count=3, updated_at=days_ago(200))
    fresh = keyword_store.seed("fresh", usage_count=0, updated_at=days_ago(10))
    completion = make_completion()
    engine = _engine(niche, keyword_store, completion, [_Adapter("ai", [])])

    result = await engine.run_discovery()

    assert result.discovered == 0
    assert result.deactivated == 1
    assert stale.is_active is False
    assert used.is_active is True
    assert fresh.is_active is True
    assert completion.calls == []


@pytest.mark.asyncio
async def test_stale_pruning_is_limited_per_run(niche, keyword_store, make_completion, days_ago) -> None:
    for i in range(25):
        keyword_store.seed(f"stale {i}", usage_count=0, updated_at=days_ago(90 + i))
    engine = _engine(niche, keyword_store, make_completion(), [], max_active=100)

    assert await engine.prune_stale() == 20
    assert await keyword_store.count_active() == 5


@pytest.mark.asyncio
async def test_failed_upsert_skips_keyword_and_pruning_still_runs(
    niche, keyword_store, make_completion, days_ago
) -> None:
    for i in range(3):
        keyword_store.seed(f"older keyword {i}", updated_at=days_ago(5))
    real_upsert = keyword_store.upsert

    async def upsert(keyword, relevance_score, discovery_source):
        if keyword == "broken keyword":
            raise RuntimeError("value too long for type character varying(50)")
        await real_upsert(keyword, relevance_score, discovery_source)

    keyword_store.upsert = upsert
    completion = make_completion({"inbox zero": 0.9, "broken keyword": 0.9, "email triage": 0.8})
    engine = _engine(
        niche,
        keyword_store,
        completion,
        [_Adapter("ai", ["inbox zero", "broken keyword", "email triage"])],
        max_active=3,
    )

    result = await engine.run_discovery()

    assert result.persisted == 2
    assert result.errors == ["Upsert broken keyword: value too long for type character varying(50)"]
    assert result.deactivated == 2
    assert keyword_store.rows["inbox zero"].is_active
    assert keyword_store.rows["email triage"].is_active
    assert "broken keyword" not in keyword_store.rows


@pytest.mark.asyncio
async def test_keywords_too_long_to_store_are_dropped(niche, keyword_store, make_completion) -> None:
    too_long = "a" * 256
    completion = make_completion({"inbox zero": 0.9})
    engine = _engine(niche, keyword_store, completion, [_Adapter("ai", [too_long, "inbox zero"])])

    result = await engine.run_discovery()

    assert result.scored == 1
    assert set(keyword_store.rows) == {"inbox zero"}
    assert too_long not in completion.calls[0]["messages"][-1].content


@pytest.mark.asyncio
async def test_repeat_sighting_updates_score_and_keeps_usage(
    niche, keyword_store, make_completion, days_ago
) -> None:
    keyword_store.seed("inbox zero", relevance_score=0.65, usage_count=4, updated_at=days_ago(30))
    keyword_store.clock = lambda: NOW
    completion = make_completion({"inbox zero": 0.9})
    engine = _engine(niche, keyword_store, completion, [_Adapter("reddit", ["Inbox Zero"])])

    result = await engine.run_discovery()

    row = keyword_store.rows["inbox zero"]
    assert result.persisted == 1
    assert row.relevance_score == 0.9
    assert row.discovery_source == "reddit"
    assert row.usage_count == 4
    assert row.updated_at == NOW
    assert row.is_active
