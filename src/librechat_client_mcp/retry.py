"""Bounded exponential-backoff retry for remote calls.

Only transient failures are retried: 5xx responses and connection-level
faults. Everything else (not found, rate limited, validation) propagates on
the first attempt. When attempts run out the last error is raised as is.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx
import structlog

from librechat_client_mcp.config import RetryConfig
from librechat_client_mcp.errors import TransientRemoteError

logger = structlog.get_logger()

T = TypeVar("T")


def is_transient(exc: BaseException) -> bool:
    """Check whether an exception is worth another attempt."""
    if isinstance(exc, (TransientRemoteError, httpx.TransportError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    # attempt is the zero-based index of the attempt that just failed
    return min(base_delay * (2**attempt), max_delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 4,
    base_delay: float = 1.0,
    max_delay: float = 8.0,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    description: str | None = None,
) -> T:
    """Run ``operation`` until it succeeds or a non-transient error occurs.

    Args:
        operation: Zero-argument coroutine factory, invoked once per attempt
        max_attempts: Total attempts including the first one
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay, in seconds
        sleep: Awaitable sleep function (injectable for tests)
        description: Label for log events

    Returns:
        The first successful result.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as exc:
            if not is_transient(exc) or attempt == max_attempts - 1:
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "retry.transient_error",
                operation=description,
                attempt=attempt + 1,
                max_attempts=max_attempts,
                delay=delay,
                error=str(exc),
            )
            await sleep(delay)

    raise RuntimeError("retry attempt loop exhausted unexpectedly")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry settings bound into a reusable callable."""

    max_attempts: int = 4
    base_delay: float = 1.0
    max_delay: float = 8.0
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep

    @classmethod
    def from_config(cls, config: RetryConfig) -> RetryPolicy:
        return cls(
            max_attempts=config.max_attempts,
            base_delay=config.base_delay,
            max_delay=config.max_delay,
        )

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        description: str | None = None,
    ) -> T:
        return await with_retry(
            operation,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            sleep=self.sleep,
            description=description,
        )
