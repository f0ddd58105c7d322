"""Base class for completion-backed prompt agents."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from trendpipe.core.exceptions import CompletionError
from trendpipe.integrations.completion import CompletionService
from trendpipe.schemas.completion import (
    ChatMessage,
    CompletionOutcome,
    Malformed,
    parse_completion,
)

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseAgent(ABC, Generic[InputT, OutputT]):
    """Abstract base class for prompt agents.

    Each agent should:
    1. Define the system_prompt property
    2. Define the output_type property (a pydantic model or a typing shape)
    3. Implement _build_prompt to construct the user prompt

    ``run`` never raises: completion failures and unusable replies come back
    as ``Malformed`` so every call site handles the fallback explicitly.
    """

    want_strict_json: bool = True

    def __init__(self, completion: CompletionService) -> None:
        self.completion = completion

    @property
    @abstractmethod
    def system_prompt(self) -> str:
        """System prompt for the agent."""
        pass

    @property
    @abstractmethod
    def output_type(self) -> Any:
        """Expected shape of the parsed reply."""
        pass

    @abstractmethod
    def _build_prompt(self, input_data: InputT) -> str:
        """Build the user prompt from input data."""
        pass

    def build_messages(self, input_data: InputT) -> list[ChatMessage]:
        """Assemble the role-tagged messages for one call."""
        messages = []
        if self.system_prompt:
            messages.append(ChatMessage(role="system", content=self.system_prompt))
        messages.append(ChatMessage(role="user", content=self._build_prompt(input_data)))
        return messages

    async def run(self, input_data: InputT) -> CompletionOutcome[OutputT]:
        """Run the agent and return the parsed reply or a typed failure."""
        agent_name = self.__class__.__name__
        messages = self.build_messages(input_data)

        t0 = time.perf_counter()
        try:
            raw = await self.completion.complete(
                messages,
                want_strict_json=self.want_strict_json,
            )
        except CompletionError as e:
            logger.warning(
                "Agent completion failed",
                extra={"agent": agent_name, "error": e.message},
            )
            return Malformed(reason="completion_failed", detail=e.message)
        except Exception as e:
            logger.warning(
                "Agent completion raised unexpectedly",
                extra={"agent": agent_name, "error": repr(e)},
            )
            return Malformed(reason="completion_failed", detail=str(e))

        outcome = parse_completion(raw, self.output_type)
        if isinstance(outcome, Malformed):
            logger.warning(
                "Agent reply was malformed",
                extra={
                    "agent": agent_name,
                    "reason": outcome.reason,
                    "detail": outcome.detail,
                    "raw_length": len(raw or ""),
                },
            )
        else:
            logger.info(
                "Agent run completed",
                extra={
                    "agent": agent_name,
                    "duration_s": round(time.perf_counter() - t0, 2),
                },
            )
        return outcome
