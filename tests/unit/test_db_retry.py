"""Tests for transient database retry classification and backoff."""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from trendpipe.core.db_retry import RetryPolicy, is_transient_connection_error, run_with_transient_db_retry

NO_WAIT = RetryPolicy(attempts=3, base_delay_seconds=0)


def test_classification() -> None:
    assert is_transient_connection_error(OperationalError("select 1", {}, Exception("gone")))
    assert is_transient_connection_error(ConnectionError("reset"))
    assert is_transient_connection_error(RuntimeError("server closed the connection unexpectedly"))
    assert not is_transient_connection_error(IntegrityError("insert", {}, Exception("duplicate key")))
    assert not is_transient_connection_error(ValueError("bad input"))


@pytest.mark.asyncio
async def test_retries_until_success() -> None:
    calls = []

    async def operation():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("connection refused")
        return "done"

    assert await run_with_transient_db_retry(operation, operation_name="test", policy=NO_WAIT) == "done"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_gives_up_after_last_attempt() -> None:
    calls = []

    async def operation():
        calls.append(1)
        raise ConnectionError("connection refused")

    with pytest.raises(ConnectionError):
        await run_with_transient_db_retry(operation, operation_name="test", policy=NO_WAIT)
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_non_transient_errors_are_not_retried() -> None:
    calls = []

    async def operation():
        calls.append(1)
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        await run_with_transient_db_retry(operation, operation_name="test", policy=NO_WAIT)
    assert len(calls) == 1


def test_linear_backoff() -> None:
    assert RetryPolicy(base_delay_seconds=0.5).delay_after(3) == 1.5
