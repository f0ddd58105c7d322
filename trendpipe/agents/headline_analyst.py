"""Headline analyst agent: selects and re-titles niche-relevant news stories."""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from trendpipe.agents.base_agent import BaseAgent

logger = logging.getLogger(__name__)


class HeadlineInput(BaseModel):
    """A single headline offered to the analyst."""

    title: str
    link: str


class HeadlineAnalystInput(BaseModel):
    """Input for the headline analyst agent."""

    product_name: str
    product_description: str
    niche_keywords: list[str]
    headlines: list[HeadlineInput]


class ScoredStory(BaseModel):
    """A story the analyst judged relevant."""

    model_config = ConfigDict(populate_by_name=True)

    original_headline: str
    blog_idea_title: str = Field(min_length=1)
    angle: str = ""
    source_url: str | None = None
    relevance_score: float = Field(default=0.0, ge=0, le=10)


class HeadlineAnalystOutput(BaseModel):
    """Output from the headline analyst agent."""

    relevant_stories: list[ScoredStory] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _accept_array_and_drop_bad_items(cls, data: Any) -> Any:
        if isinstance(data, list):
            data = {"relevant_stories": data}
        if not isinstance(data, dict):
            return data
        stories = data.get("relevant_stories")
        if not isinstance(stories, list):
            # Let field validation reject non-array payloads
            return data

        kept: list[ScoredStory] = []
        for item in stories:
            try:
                kept.append(ScoredStory.model_validate(item))
            except ValidationError:
                logger.debug("Dropping malformed story from analyst reply", extra={"item": str(item)[:200]})
        return {**data, "relevant_stories": kept}


class HeadlineAnalystAgent(BaseAgent[HeadlineAnalystInput, HeadlineAnalystOutput]):
    """Agent that filters scouted headlines down to blog-worthy topic ideas."""

    MIN_RELEVANCE = 7

    @property
    def system_prompt(self) -> str:
        return f"""You are a Content Strategist deciding which news stories are worth a blog post.

**INCLUDE stories that offer:**
- High-value, actionable advice for the target audience
- Time-saving strategies, frameworks, and automation relevant to the product niche
- Trends that directly affect how the audience works in this niche

**EXPLICITLY REJECT these types of stories:**
- General software updates and consumer gadget reviews
- Coding tutorials or developer-focused content
- Generic startup funding news unless it concerns tools in the niche
- Politics, current events, or non-business news
- Generic tech industry news without actionable value for the audience

**Scoring Guidelines:**
- Rate each story's relevance_score from 1-10
- Only include stories with relevance_score >= {self.MIN_RELEVANCE}
- 7-8: relevant but not a perfect fit; 9-10: highly relevant

For each included story return an object with:
- "original_headline": the exact news title
- "source_url": the URL of the original article
- "blog_idea_title": a compelling, SEO-friendly blog title for our brand
- "angle": one sentence on how to frame the story for our audience
- "relevance_score": number from 1-10

Return JSON: {{"relevant_stories": [...]}}. If nothing qualifies return {{"relevant_stories": []}}."""

    @property
    def output_type(self) -> type[HeadlineAnalystOutput]:
        return HeadlineAnalystOutput

    def _build_prompt(self, input_data: HeadlineAnalystInput) -> str:
        headlines = "\n".join(f"- {h.title} | URL: {h.link}" for h in input_data.headlines)
        return (
            f'Product: "{input_data.product_name}", {input_data.product_description}.\n'
            f"Niche keywords: {', '.join(input_data.niche_keywords)}\n\n"
            f"Headlines:\n{headlines}"
        )
