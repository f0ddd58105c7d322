"""Tests for shared normalization and scoring helpers."""

import pytest

from trendpipe.services.scoring import (
    coerce_score,
    is_admissible_keyword,
    matches_any,
    normalize_keyword,
    opportunity_tier,
    reading_time_minutes,
    slugify,
    title_terms,
)


@pytest.mark.parametrize("raw", ["  Inbox Zero ", "EMAIL", "already normal", "\tTabs\n", ""])
def test_normalize_keyword_is_idempotent(raw: str) -> None:
    once = normalize_keyword(raw)

    assert normalize_keyword(once) == once
    assert once == once.strip().lower()


def test_short_keywords_are_not_admissible() -> None:
    assert is_admissible_keyword(" ab ") is False
    assert is_admissible_keyword("abc") is True
    assert is_admissible_keyword("k" * 255) is True
    assert is_admissible_keyword("k" * 256) is False


@pytest.mark.parametrize(
    ("relevance", "tier"),
    [(0.85, "high"), (0.8, "high"), (0.65, "medium"), (0.6, "medium"), (0.3, "low")],
)
def test_opportunity_tier_thresholds(relevance: float, tier: str) -> None:
    assert opportunity_tier(relevance) == tier


def test_title_terms_filters_by_length_and_cleans_punctuation() -> None:
    terms = title_terms("How CEOs tame email: inbox-zero, finally!", min_word_length=3, max_words=4)

    assert terms == ["ceos", "tame", "email", "inboxzero"]


def test_title_terms_respects_max_words() -> None:
    assert title_terms("alpha bravo charlie delta", min_word_length=4, max_words=2) == ["alpha", "bravo"]


def test_coerce_score_handles_loose_values() -> None:
    assert coerce_score(0.7) == 0.7
    assert coerce_score(" 0.4 ") == 0.4
    assert coerce_score("high") is None
    assert coerce_score(True) is None
    assert coerce_score(None) is None
    assert coerce_score(float("nan")) is None


def test_matches_any_is_case_insensitive() -> None:
    assert matches_any("New INBOX ZERO method", ["inbox zero"]) is True
    assert matches_any("Gardening tips", ["inbox zero", ""]) is False


def test_reading_time_is_at_least_one_minute() -> None:
    assert reading_time_minutes(0) == 1
    assert reading_time_minutes(201) == 2


def test_slugify_produces_kebab_case() -> None:
    assert slugify("  Inbox Zero: The 2026 Guide!  ") == "inbox-zero-the-2026-guide"
    assert slugify("!!!") == "article"
