"""Tests for completion parsing and the agent fallback contract."""

import pytest
from pydantic import BaseModel

from trendpipe.agents.headline_analyst import HeadlineAnalystOutput
from trendpipe.agents.keyword_agents import KeywordScoringAgent, KeywordScoringInput
from trendpipe.core.exceptions import CompletionError
from trendpipe.schemas.completion import Malformed, Parsed, parse_completion, strip_code_fence


class _Shape(BaseModel):
    name: str
    score: float


def test_parse_completion_accepts_fenced_json() -> None:
    outcome = parse_completion('```json\n{"name": "a", "score": 0.5}\n```', _Shape)

    assert isinstance(outcome, Parsed)
    assert outcome.value == _Shape(name="a", score=0.5)
    assert outcome.ok is True


@pytest.mark.parametrize(
    ("text", "reason"),
    [
        (None, "empty"),
        ("   ", "empty"),
        ("not json at all", "invalid_json"),
        ('{"name": "a"}', "invalid_shape"),
        ("[1, 2]", "invalid_shape"),
    ],
)
def test_parse_completion_reports_typed_failures(text: str | None, reason: str) -> None:
    outcome = parse_completion(text, _Shape)

    assert isinstance(outcome, Malformed)
    assert outcome.reason == reason
    assert outcome.ok is False


def test_strip_code_fence_leaves_plain_text() -> None:
    assert strip_code_fence('  {"a": 1} ') == '{"a": 1}'


def test_headline_output_accepts_bare_array_and_drops_bad_items() -> None:
    outcome = parse_completion(
        """[
            {"original_headline": "H1", "blog_idea_title": "Idea", "angle": "A", "relevance_score": 8},
            {"original_headline": "H2"},
            "nonsense"
        ]""",
        HeadlineAnalystOutput,
    )

    assert isinstance(outcome, Parsed)
    assert [s.original_headline for s in outcome.value.relevant_stories] == ["H1"]


def test_headline_output_rejects_non_array_stories() -> None:
    outcome = parse_completion('{"relevant_stories": "none"}', HeadlineAnalystOutput)

    assert isinstance(outcome, Malformed)
    assert outcome.reason == "invalid_shape"


@pytest.mark.asyncio
async def test_agent_run_turns_completion_error_into_malformed(make_completion) -> None:
    agent = KeywordScoringAgent(make_completion(CompletionError("upstream down")))

    outcome = await agent.run(
        KeywordScoringInput(product_name="Inbox0", product_description="email app", keywords=["inbox zero"])
    )

    assert isinstance(outcome, Malformed)
    assert outcome.reason == "completion_failed"
    assert "upstream down" in outcome.detail


@pytest.mark.asyncio
async def test_agent_run_sends_system_and_user_messages_with_strict_json(make_completion) -> None:
    completion = make_completion({"inbox zero": 0.9})
    agent = KeywordScoringAgent(completion)

    outcome = await agent.run(
        KeywordScoringInput(product_name="Inbox0", product_description="email app", keywords=["inbox zero"])
    )

    assert isinstance(outcome, Parsed)
    assert outcome.value == {"inbox zero": 0.9}
    call = completion.calls[0]
    assert call["want_strict_json"] is True
    assert [m.role for m in call["messages"]] == ["system", "user"]
    assert "inbox zero" in call["messages"][1].content
