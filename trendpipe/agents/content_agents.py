"""Agents for article writing, content refresh, and internal-link anchor text."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from trendpipe.agents.base_agent import BaseAgent

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class ArticleWriterInput(BaseModel):
    """Input for the article writer agent."""

    product_name: str
    product_description: str
    topic_text: str
    primary_keyword: str | None = None
    keywords: list[str] = Field(default_factory=list)
    cluster_name: str | None = None


class ArticleDraft(BaseModel):
    """Structured article returned by the writer."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, max_length=200)
    slug: str = Field(min_length=1, max_length=100, pattern=SLUG_PATTERN)
    content: str = Field(min_length=100)
    seo_title: str | None = Field(
        default=None,
        validation_alias=AliasChoices("seo_title", "seoTitle"),
    )
    seo_description: str | None = Field(
        default=None,
        validation_alias=AliasChoices("seo_description", "seoDescription"),
    )
    primary_keyword: str | None = Field(
        default=None,
        validation_alias=AliasChoices("primary_keyword", "primaryKeyword"),
    )
    keywords: list[str] | None = None
    meta_score: float | None = Field(
        default=None,
        validation_alias=AliasChoices("meta_score", "metaScore"),
    )


class ArticleWriterAgent(BaseAgent[ArticleWriterInput, ArticleDraft]):
    """Agent that writes a long-form SEO article for a topic."""

    @property
    def system_prompt(self) -> str:
        return """You are an expert SEO Content Writer. Write a comprehensive, engaging blog post about the given topic.

Return JSON with:
- title: compelling headline (max 100 chars)
- slug: URL-friendly kebab-case (max 60 chars, lowercase letters, numbers, hyphens only)
- content: full article in Markdown with H2/H3 headings, bullet points, actionable tips, and a short "Frequently Asked Questions" section with 2-3 Q&A pairs when relevant
- seo_title: meta title optimized for search (max 60 chars)
- seo_description: meta description with a call to action (max 160 chars)
- primary_keyword: (optional) main target keyword
- keywords: (optional) array of 3-5 related keywords
- meta_score: (optional) self-assessed SEO score 0-100"""

    @property
    def output_type(self) -> type[ArticleDraft]:
        return ArticleDraft

    def _build_prompt(self, input_data: ArticleWriterInput) -> str:
        parts = [
            f'Brand: "{input_data.product_name}", {input_data.product_description}.',
            f"Topic: {input_data.topic_text}",
        ]
        if input_data.primary_keyword or input_data.keywords:
            target = input_data.primary_keyword or input_data.keywords[0]
            parts.append(f"Target keyword: {target}. Related keywords: {', '.join(input_data.keywords)}.")
        if input_data.cluster_name:
            parts.append(f"Content cluster: {input_data.cluster_name}.")
        return "\n".join(parts)


class ContentRefreshInput(BaseModel):
    """Input for the content refresh agent."""

    title: str
    slug: str
    content: str
    current_date: str
    max_content_chars: int = 12000


class RefreshedContent(BaseModel):
    """Refreshed article body and self-assessed metrics."""

    model_config = ConfigDict(populate_by_name=True)

    content: str | None = None
    word_count: int | None = Field(
        default=None,
        validation_alias=AliasChoices("word_count", "wordCount"),
    )
    meta_score: float | None = Field(
        default=None,
        validation_alias=AliasChoices("meta_score", "metaScore"),
    )


class ContentRefreshAgent(BaseAgent[ContentRefreshInput, RefreshedContent]):
    """Agent that regenerates a stale article while preserving its structure."""

    @property
    def system_prompt(self) -> str:
        return (
            "You refresh published blog posts. Keep the same structure, headings, and slug. "
            "Update statistics, tool names, and trends to the current date. "
            'Return JSON: {"content": "full markdown content", "word_count": number, "meta_score": number (0-100)}.'
        )

    @property
    def output_type(self) -> type[RefreshedContent]:
        return RefreshedContent

    def _build_prompt(self, input_data: ContentRefreshInput) -> str:
        body = input_data.content[: input_data.max_content_chars]
        return (
            f"Current date: {input_data.current_date}\n"
            f"Post title: {input_data.title}\n"
            f"Slug (unchanged): {input_data.slug}\n\n"
            f"Current content:\n{body}"
        )


class AnchorTextInput(BaseModel):
    """Input for the anchor text agent."""

    source_title: str
    targets: list[tuple[str, str]] = Field(description="(article id, article title) pairs")


class AnchorTextAgent(BaseAgent[AnchorTextInput, dict[str, Any]]):
    """Agent that writes short anchor text for each internal link target."""

    @property
    def system_prompt(self) -> str:
        return "You write short, natural anchor text (2-6 words) for internal links between blog posts."

    @property
    def output_type(self) -> Any:
        return dict[str, Any]

    def _build_prompt(self, input_data: AnchorTextInput) -> str:
        listing = "\n".join(f"{article_id}: {title}" for article_id, title in input_data.targets)
        return (
            f'Our blog post is titled: "{input_data.source_title}". '
            "Suggest anchor text for linking to each of these related posts. "
            'Return a JSON object mapping post id to anchor text, e.g. {"id1": "anchor one", "id2": "anchor two"}.\n'
            f"Related posts (id: title):\n{listing}"
        )
