"""Tests for bounded exponential-backoff retry."""

from __future__ import annotations

import httpx
import pytest

from librechat_client_mcp.config import RetryConfig
from librechat_client_mcp.errors import (
    NotFoundError,
    RateLimitedError,
    TransientRemoteError,
    ValidationError,
)
from librechat_client_mcp.retry import RetryPolicy, backoff_delay, is_transient, with_retry

from .conftest import FakeSleep


class Flaky:
    def __init__(self, failures: list[Exception], result: str = "ok") -> None:
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


def test_backoff_doubles_and_is_capped():
    assert [backoff_delay(i, 1.0, 8.0) for i in range(5)] == [1.0, 2.0, 4.0, 8.0, 8.0]


def test_transient_classification():
    request = httpx.Request("GET", "https://api.github.com/x")
    server_error = httpx.HTTPStatusError(
        "boom", request=request, response=httpx.Response(502, request=request)
    )
    client_error = httpx.HTTPStatusError(
        "nope", request=request, response=httpx.Response(404, request=request)
    )

    assert is_transient(TransientRemoteError())
    assert is_transient(httpx.ConnectError("refused"))
    assert is_transient(server_error)
    assert not is_transient(client_error)
    assert not is_transient(NotFoundError())
    assert not is_transient(RateLimitedError())
    assert not is_transient(ValueError("x"))


@pytest.mark.asyncio
async def test_recovers_after_transient_failures_with_growing_delays():
    sleep = FakeSleep()
    operation = Flaky([TransientRemoteError("503"), TransientRemoteError("502")])

    result = await with_retry(operation, sleep=sleep)

    assert result == "ok"
    assert operation.calls == 3
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts_with_last_error():
    sleep = FakeSleep()
    errors = [TransientRemoteError(f"attempt {i}") for i in range(4)]
    operation = Flaky(errors)

    with pytest.raises(TransientRemoteError) as exc_info:
        await with_retry(operation, max_attempts=4, sleep=sleep)

    assert exc_info.value.message == "attempt 3"
    assert operation.calls == 4
    assert sleep.delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [NotFoundError("gone"), RateLimitedError(), ValidationError("bad")],
)
async def test_non_transient_errors_are_not_retried(error):
    sleep = FakeSleep()
    operation = Flaky([error])

    with pytest.raises(type(error)):
        await with_retry(operation, sleep=sleep)

    assert operation.calls == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_policy_from_config_applies_bounds():
    sleep = FakeSleep()
    policy = RetryPolicy.from_config(RetryConfig(max_attempts=3, base_delay=0.5, max_delay=0.75))
    policy = RetryPolicy(
        max_attempts=policy.max_attempts,
        base_delay=policy.base_delay,
        max_delay=policy.max_delay,
        sleep=sleep,
    )
    operation = Flaky([TransientRemoteError(), TransientRemoteError(), TransientRemoteError()])

    with pytest.raises(TransientRemoteError):
        await policy.run(operation, description="test")

    assert operation.calls == 3
    assert sleep.delays == [0.5, 0.75]


@pytest.mark.asyncio
async def test_max_attempts_must_be_positive():
    with pytest.raises(ValueError):
        await with_retry(Flaky([]), max_attempts=0)
