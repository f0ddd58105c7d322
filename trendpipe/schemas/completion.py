"""Completion-service message and response parsing schemas."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

T = TypeVar("T")

MessageRole = Literal["system", "user", "assistant"]

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class ChatMessage(BaseModel):
    """Role-tagged message submitted to the completion service."""

    role: MessageRole
    content: str


@dataclass(frozen=True)
class Parsed(Generic[T]):
    """Completion text that parsed and validated against the expected shape."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Malformed:
    """Completion text that could not be used.

    ``reason`` is one of ``completion_failed``, ``empty``, ``invalid_json`` or
    ``invalid_shape``.
    """

    reason: str
    detail: str = ""
    raw: str | None = None

    @property
    def ok(self) -> bool:
        return False


CompletionOutcome = Parsed[T] | Malformed


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence, if present."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def load_json(text: str | None) -> Parsed[Any] | Malformed:
    """Decode completion text as JSON without validating its shape."""
    if text is None or not text.strip():
        return Malformed(reason="empty", raw=text)
    try:
        return Parsed(json.loads(strip_code_fence(text)))
    except json.JSONDecodeError as exc:
        return Malformed(reason="invalid_json", detail=str(exc), raw=text)


def parse_completion(text: str | None, shape: type[T] | Any) -> CompletionOutcome[T]:
    """Decode completion text and validate it against ``shape``.

    ``shape`` may be a pydantic model or any type ``TypeAdapter`` accepts,
    e.g. ``dict[str, float]``.
    """
    loaded = load_json(text)
    if isinstance(loaded, Malformed):
        return loaded
    try:
        value = TypeAdapter(shape).validate_python(loaded.value)
    except ValidationError as exc:
        return Malformed(
            reason="invalid_shape",
            detail=f"{exc.error_count()} validation error(s)",
            raw=text,
        )
    return Parsed(value)
