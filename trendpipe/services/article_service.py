"""Article generation from approved topics, plus publish/unpublish."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from trendpipe.agents.content_agents import ArticleDraft, ArticleWriterAgent, ArticleWriterInput
from trendpipe.config import NicheProfile
from trendpipe.core.exceptions import (
    ArticleGenerationError,
    ArticleNotFoundError,
    InvalidTopicTransitionError,
    SlugCollisionError,
    TopicNotFoundError,
)
from trendpipe.models.content import ARTICLE_DRAFT, ARTICLE_PUBLISHED, Article
from trendpipe.models.topic import TOPIC_APPROVED, TOPIC_GENERATED, BlogTopic
from trendpipe.repositories.contracts import ArticleStore, TopicStore
from trendpipe.schemas.completion import Malformed
from trendpipe.services.content_intelligence import ContentIntelligenceService
from trendpipe.services.scoring import clamp, count_words, reading_time_minutes, slugify

logger = logging.getLogger(__name__)

MAX_SLUG_SUFFIX = 100


class ArticleService:
    """Writes draft articles through the article writer agent."""

    def __init__(
        self,
        articles: ArticleStore,
        topics: TopicStore,
        writer: ArticleWriterAgent,
        niche: NicheProfile,
        intelligence: ContentIntelligenceService | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.articles = articles
        self.topics = topics
        self.writer = writer
        self.niche = niche
        self.intelligence = intelligence
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def generate_from_topic(self, topic_id: str) -> Article:
        """Generate a draft from an approved topic and mark the topic generated."""
        topic = await self.topics.get(topic_id)
        if topic is None:
            raise TopicNotFoundError(topic_id)
        if topic.status != TOPIC_APPROVED:
            raise InvalidTopicTransitionError(topic_id, topic.status, TOPIC_GENERATED)

        topic_text = topic.title if not topic.angle else f"{topic.title}. Angle: {topic.angle}"
        draft = await self._write(topic_text)
        article = await self._insert(draft, topic)

        topic.status = TOPIC_GENERATED
        await self.topics.save(topic)

        logger.info(
            "Article generated from topic",
            extra={"topic_id": topic_id, "article_id": article.id, "slug": article.slug},
        )
        await self._auto_link(article)
        return article

    async def generate_ad_hoc(self, topic_text: str) -> Article:
        """Generate a draft article for free-form topic text."""
        if not topic_text.strip():
            raise ValueError("Topic text is required")
        draft = await self._write(topic_text.strip())
        article = await self._insert(draft, None)
        logger.info("Ad hoc article generated", extra={"article_id": article.id, "slug": article.slug})
        await self._auto_link(article)
        return article

    async def publish(self, article_id: str) -> Article:
        article = await self._get(article_id)
        article.status = ARTICLE_PUBLISHED
        article.published_at = self._clock()
        await self.articles.save(article)
        logger.info("Article published", extra={"article_id": article_id})
        return article

    async def unpublish(self, article_id: str) -> Article:
        article = await self._get(article_id)
        article.status = ARTICLE_DRAFT
        article.published_at = None
        await self.articles.save(article)
        logger.info("Article unpublished", extra={"article_id": article_id})
        return article

    async def unique_slug(self, base_slug: str) -> str:
        """Return ``base_slug`` or the first free ``base_slug-N`` (N up to 100)."""
        if not await self.articles.slug_exists(base_slug):
            return base_slug
        for counter in range(1, MAX_SLUG_SUFFIX + 1):
            candidate = f"{base_slug}-{counter}"
            if not await self.articles.slug_exists(candidate):
                return candidate
        raise SlugCollisionError(base_slug)

    async def _get(self, article_id: str) -> Article:
        article = await self.articles.get(article_id)
        if article is None:
            raise ArticleNotFoundError(article_id)
        return article

    async def _write(self, topic_text: str) -> ArticleDraft:
        outcome = await self.writer.run(
            ArticleWriterInput(
                product_name=self.niche.product_name,
                product_description=self.niche.description,
                topic_text=topic_text,
            )
        )
        if isinstance(outcome, Malformed):
            raise ArticleGenerationError(
                f"Article writer returned no usable article ({outcome.reason})",
                details={"reason": outcome.reason, "detail": outcome.detail},
            )
        return outcome.value

    async def _insert(self, draft: ArticleDraft, topic: BlogTopic | None) -> Article:
        slug = await self.unique_slug(slugify(draft.slug))
        word_count = count_words(draft.content)
        keywords = [k.strip() for k in draft.keywords or [] if k and k.strip()]
        return await self.articles.add(
            {
                "topic_id": topic.id if topic is not None else None,
                "title": draft.title,
                "slug": slug,
                "content": draft.content,
                "seo_title": draft.seo_title or draft.title,
                "seo_description": draft.seo_description,
                "status": ARTICLE_DRAFT,
                "primary_keyword": draft.primary_keyword or (keywords[0] if keywords else None),
                "keywords": keywords,
                "word_count": word_count,
                "reading_time": reading_time_minutes(word_count),
                "meta_score": clamp(draft.meta_score, 0.0, 100.0) if draft.meta_score is not None else None,
            }
        )

    async def _auto_link(self, article: Article) -> None:
        if self.intelligence is None or not self.intelligence.config.auto_internal_linking:
            return
        try:
            suggestions = await self.intelligence.suggest_internal_links(article.id)
            applied = await self.intelligence.apply_internal_links(article.id, suggestions)
            logger.info("Auto internal links applied", extra={"article_id": article.id, "applied": applied})
        except Exception as e:
            logger.warning("Auto internal linking failed", extra={"article_id": article.id, "error": str(e)})
