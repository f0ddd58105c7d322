"""SQLAlchemy blog topic store."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from trendpipe.models.topic import TOPIC_PENDING, BlogTopic

logger = logging.getLogger(__name__)


class TopicRepository:
    """Topic reads and skip-on-duplicate inserts against ``blog_topics``."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, topic_id: str) -> BlogTopic | None:
        return await self.session.get(BlogTopic, topic_id)

    async def source_url_exists(self, source_url: str) -> bool:
        result = await self.session.execute(
            select(BlogTopic.id).where(BlogTopic.source_url == source_url).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def add(
        self,
        *,
        title: str,
        angle: str | None,
        source_url: str | None,
        source_headline: str | None,
    ) -> BlogTopic | None:
        topic = BlogTopic(
            title=title,
            angle=angle,
            source_url=source_url,
            source_headline=source_headline,
            status=TOPIC_PENDING,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(topic)
                await self.session.flush()
        except IntegrityError:
            # A concurrent run inserted the same source_url
            logger.info("Skipping duplicate topic", extra={"source_url": source_url})
            return None
        return topic

    async def save(self, topic: BlogTopic) -> None:
        await self.session.flush()
