"""Trend source model (configured fetch endpoints)."""

from __future__ import annotations

from typing import Literal

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from trendpipe.models.base import Base, TimestampMixin, UUIDMixin

SourceKind = Literal["feed", "api", "social"]


class TrendSource(Base, UUIDMixin, TimestampMixin):
    """A fetch endpoint with yield statistics."""

    __tablename__ = "trend_sources"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), default="feed", nullable=False)
    url: Mapped[str] = mapped_column(String(2000), nullable=False, unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    articles_found: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    articles_used: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<TrendSource {self.name} active={self.is_active}>"
