"""Retry transient database connection failures around pipeline jobs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError

logger = logging.getLogger(__name__)

_ResultT = TypeVar("_ResultT")

_DROPPED_CONNECTION_MARKERS = (
    "connection is closed",
    "connection was closed",
    "server closed the connection unexpectedly",
    "connection refused",
    "too many connections",
)


@dataclass(frozen=True)
class RetryPolicy:
    """Linear backoff: attempt ``n`` waits ``n * base_delay_seconds`` before the next try."""

    attempts: int = 3
    base_delay_seconds: float = 0.2

    def delay_after(self, attempt: int) -> float:
        return self.base_delay_seconds * attempt


def is_transient_connection_error(exc: BaseException) -> bool:
    """Whether a failure looks like an unreachable or dropped database connection."""
    if isinstance(exc, InterfaceError | OperationalError):
        return True
    if isinstance(exc, DBAPIError):
        return bool(exc.connection_invalidated)
    if isinstance(exc, ConnectionError | TimeoutError):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in _DROPPED_CONNECTION_MARKERS)


async def run_with_transient_db_retry(
    operation: Callable[[], Awaitable[_ResultT]],
    *,
    operation_name: str,
    policy: RetryPolicy | None = None,
) -> _ResultT:
    """Run ``operation``, retrying only when the failure is a transient connection error.

    Non-transient errors and the final failed attempt propagate unchanged.
    """
    policy = policy or RetryPolicy()
    if policy.attempts < 1:
        raise ValueError("attempts must be >= 1")

    attempt = 1
    while True:
        try:
            return await operation()
        except Exception as exc:
            if attempt >= policy.attempts or not is_transient_connection_error(exc):
                raise
            delay = policy.delay_after(attempt)
            logger.warning(
                "Transient database error, retrying",
                extra={
                    "operation": operation_name,
                    "attempt": attempt,
                    "max_attempts": policy.attempts,
                    "retry_in_s": delay,
                    "error": str(exc),
                },
            )
            await asyncio.sleep(delay)
            attempt += 1
