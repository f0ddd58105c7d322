"""Trend keyword model (keyword discovery output)."""

from __future__ import annotations

from typing import Literal

from sqlalchemy import Boolean, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from trendpipe.models.base import Base, TimestampMixin, UUIDMixin

KeywordDiscoverySource = Literal["newsapi", "reddit", "hackernews", "ai", "seed", "discovery"]


class TrendKeyword(Base, UUIDMixin, TimestampMixin):
    """Normalized keyword with relevance score and usage accounting."""

    __tablename__ = "trend_keywords"

    # Lowercased, trimmed text; the upsert key
    keyword: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    relevance_score: Mapped[float] = mapped_column(Float, default=0.5, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    discovery_source: Mapped[str | None] = mapped_column(String(50), nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<TrendKeyword {self.keyword} score={self.relevance_score}>"
