"""Shared text normalization and scoring helpers for the pipeline."""

import math
import re
from collections.abc import Iterable
from typing import Literal

MIN_KEYWORD_LENGTH = 3
# trend_keywords.keyword column width
MAX_KEYWORD_LENGTH = 255
WORDS_PER_MINUTE = 200

OpportunityTier = Literal["high", "medium", "low"]

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def normalize_keyword(text: str) -> str:
    """Trim and lowercase keyword text (idempotent)."""
    return text.strip().lower()


def is_admissible_keyword(text: str) -> bool:
    """Whether normalized text is long enough to be scored and short enough to store."""
    return MIN_KEYWORD_LENGTH <= len(normalize_keyword(text)) <= MAX_KEYWORD_LENGTH


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def coerce_score(value: object) -> float | None:
    """Read a numeric score from a loosely typed completion value."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        score = float(value)
    elif isinstance(value, str):
        try:
            score = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(score):
        return None
    return score


def opportunity_tier(relevance: float) -> OpportunityTier:
    """Bucket a keyword relevance score into a coverage-gap opportunity tier."""
    if relevance >= 0.8:
        return "high"
    if relevance >= 0.6:
        return "medium"
    return "low"


def title_terms(title: str, *, min_word_length: int, max_words: int) -> list[str]:
    """Extract candidate single-word keywords from a headline.

    Words longer than ``min_word_length`` are taken in order (at most
    ``max_words``), stripped to ASCII alphanumerics, and kept when at least
    four characters remain.
    """
    words = [w for w in title.split() if len(w) > min_word_length]
    terms = []
    for word in words[:max_words]:
        cleaned = _NON_ALNUM_RE.sub("", word).lower()
        if len(cleaned) >= 4:
            terms.append(cleaned)
    return terms


def matches_any(text: str, needles: Iterable[str]) -> bool:
    """Case-insensitive substring match against any needle."""
    haystack = text.lower()
    return any(needle.lower() in haystack for needle in needles if needle)


def count_words(text: str) -> int:
    return len(text.split())


def reading_time_minutes(word_count: int) -> int:
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def slugify(value: str) -> str:
    slug = value.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")
    return slug or "article"
