"""Keyword brainstorming and batch relevance scoring agents."""

from typing import Any

from pydantic import BaseModel, Field

from trendpipe.agents.base_agent import BaseAgent


class KeywordBrainstormInput(BaseModel):
    """Input for the keyword brainstorm agent."""

    product_name: str
    product_description: str
    niche_keywords: list[str]
    year_range: str
    target_count: str = "15-20"


class KeywordBrainstormAgent(BaseAgent[KeywordBrainstormInput, list[str] | dict[str, Any]]):
    """Agent that proposes emerging search keywords for the niche."""

    @property
    def system_prompt(self) -> str:
        return (
            "You are a content strategist and SEO keyword researcher. "
            "You propose short search keywords or phrases (1-5 words) that real people type into a search engine."
        )

    @property
    def output_type(self) -> Any:
        return list[str] | dict[str, Any]

    def _build_prompt(self, input_data: KeywordBrainstormInput) -> str:
        return (
            f'Product: "{input_data.product_name}", {input_data.product_description}.\n'
            f"List {input_data.target_count} emerging search keywords or phrases the audience might search for "
            f"in {input_data.year_range} related to: {', '.join(input_data.niche_keywords)}.\n"
            'Return a JSON object {"keywords": ["keyword one", "keyword two"]}.'
        )


class KeywordScoringInput(BaseModel):
    """Input for the keyword scoring agent."""

    product_name: str
    product_description: str
    keywords: list[str] = Field(default_factory=list)


class KeywordScoringAgent(BaseAgent[KeywordScoringInput, dict[str, Any]]):
    """Agent that rates keyword relevance to the product on a 0.0-1.0 scale."""

    @property
    def system_prompt(self) -> str:
        return (
            "You rate how relevant search keywords are to a product's content marketing. "
            "Score 0.0 (irrelevant) to 1.0 (highly relevant)."
        )

    @property
    def output_type(self) -> Any:
        return dict[str, Any]

    def _build_prompt(self, input_data: KeywordScoringInput) -> str:
        listing = "\n".join(input_data.keywords)
        return (
            f'Rate each keyword\'s relevance to "{input_data.product_name}" '
            f"({input_data.product_description}).\n"
            'Return a JSON object mapping each keyword to a number, e.g. {"email productivity": 0.95, "crypto": 0.1}.\n'
            f"Keywords to score (one per line):\n{listing}"
        )
