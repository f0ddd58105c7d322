"""Language-model completion client.

The pipeline only needs one capability from the model provider: submit a list
of role-tagged messages and receive text back. Callers parse the text
themselves (see ``trendpipe.schemas.completion``).
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Protocol

from pydantic_ai import Agent
from pydantic_ai.settings import ModelSettings

from trendpipe.config import settings
from trendpipe.core.exceptions import CompletionError
from trendpipe.schemas.completion import ChatMessage

logger = logging.getLogger(__name__)

STRICT_JSON_INSTRUCTION = (
    "Respond with a single valid JSON value only. "
    "Do not wrap it in markdown and do not add any commentary."
)


class CompletionService(Protocol):
    """Capability interface for the completion service."""

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        want_strict_json: bool = False,
    ) -> str:
        """Return the model's text reply for ``messages``."""
        ...


def _split_messages(messages: Sequence[ChatMessage]) -> tuple[list[str], str]:
    system_parts: list[str] = []
    prompt_parts: list[str] = []
    for msg in messages:
        if msg.role == "system":
            system_parts.append(msg.content)
        elif msg.role == "assistant":
            prompt_parts.append(f"Assistant: {msg.content}")
        else:
            prompt_parts.append(msg.content)
    return system_parts, "\n\n".join(prompt_parts) or "Continue."


class PydanticAICompletionService:
    """Completion service backed by a text-output Pydantic AI agent."""

    def __init__(
        self,
        model: str | None = None,
        timeout_seconds: float | None = None,
        max_retries: int | None = None,
        max_tokens: int | None = None,
        temperature: float = 0.4,
    ) -> None:
        self.model = model or settings.get_model()
        self.timeout_seconds = timeout_seconds or settings.llm_timeout_seconds
        self.max_retries = settings.llm_max_retries if max_retries is None else max_retries
        self.max_tokens = max_tokens or settings.llm_max_tokens
        self.temperature = temperature

        logger.info(
            "Completion service initialized",
            extra={
                "model": self.model,
                "timeout_s": self.timeout_seconds,
                "temperature": self.temperature,
            },
        )

    def _build_agent(self, system_parts: list[str]) -> Agent[None, str]:
        return Agent(
            model=self.model,
            output_type=str,
            system_prompt=tuple(system_parts),
            retries=self.max_retries,
        )

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        *,
        want_strict_json: bool = False,
    ) -> str:
        system_parts, prompt = _split_messages(messages)
        if want_strict_json:
            system_parts.append(STRICT_JSON_INSTRUCTION)

        agent = self._build_agent(system_parts)
        model_settings = ModelSettings(
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout=self.timeout_seconds,
        )

        t0 = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                agent.run(prompt, model_settings=model_settings),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            logger.warning(
                "Completion timed out",
                extra={"model": self.model, "timeout_s": self.timeout_seconds},
            )
            raise CompletionError(f"Completion timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            logger.warning(
                "Completion request failed",
                extra={"model": self.model, "error": str(e)},
            )
            raise CompletionError(f"Completion request failed: {e}") from e

        output = result.output or ""
        logger.info(
            "Completion finished",
            extra={
                "model": self.model,
                "duration_s": round(time.perf_counter() - t0, 2),
                "prompt_length": len(prompt),
                "output_length": len(output),
                "strict_json": want_strict_json,
            },
        )
        return output
