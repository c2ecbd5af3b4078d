# src/execution/retry.py — v1
"""Retry policy with capped exponential backoff.

delay(attempt) = min(base * factor ** (attempt - 1), cap), attempts counted
from 1. With the defaults (base=1000ms, factor=2, cap=10000ms) attempts
1..5 wait 1000, 2000, 4000, 8000, 10000 ms.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

from stratagent.core.errors import is_retryable
from stratagent.execution.result import ExecutionResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_DELAY_MS = 1000.0
DEFAULT_MAX_DELAY_MS = 10000.0

Sleep = Callable[[float], Awaitable[None]]


def compute_backoff_ms(
    attempt: int,
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS,
    backoff_factor: float = 2.0,
) -> float:
    """Backoff delay before retry number ``attempt`` (1-based)."""
    if attempt < 1:
        raise ValueError("attempt must be >= 1")
    return min(base_delay_ms * (backoff_factor ** (attempt - 1)), max_delay_ms)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry and how long to wait between attempts."""

    max_retries: int = 3
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS
    max_delay_ms: float = DEFAULT_MAX_DELAY_MS
    backoff_factor: float = 2.0
    jitter: bool = False
    retry_on: tuple[type[BaseException], ...] = ()

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("retry delays must be >= 0")

    def delay_for(self, attempt: int) -> float:
        delay = compute_backoff_ms(
            attempt, self.base_delay_ms, self.max_delay_ms, self.backoff_factor
        )
        if self.jitter:
            delay = min(delay * (0.5 + random.random()), self.max_delay_ms)  # noqa: S311
        return delay

    def should_attempt_retry(self, retry_number: int) -> bool:
        return retry_number <= self.max_retries

    def is_retryable(self, error: BaseException | None) -> bool:
        """Restrict to ``retry_on`` types when given, else use the error taxonomy."""
        if error is None:
            return False
        if self.retry_on:
            return isinstance(error, self.retry_on)
        return is_retryable(error)


NO_RETRY = RetryPolicy(max_retries=0)
CONSERVATIVE = RetryPolicy(max_retries=2, base_delay_ms=1000.0, max_delay_ms=5000.0)
AGGRESSIVE = RetryPolicy(max_retries=5, base_delay_ms=500.0, max_delay_ms=30000.0)


async def run_with_retry(
    attempt_fn: Callable[[int], Awaitable[ExecutionResult]],
    policy: RetryPolicy,
    label: str = "agent",
    sleep: Sleep = asyncio.sleep,
) -> tuple[ExecutionResult, int]:
    """Run ``attempt_fn`` until it succeeds or retries are exhausted.

    ``attempt_fn`` receives the 1-based attempt number and must return an
    ExecutionResult rather than raise. Failures without a retryable error
    are returned immediately.

    Returns:
        (last result, number of retries performed)
    """
    retries = 0
    while True:
        result = await attempt_fn(retries + 1)
        if result.is_success():
            return result, retries

        if not policy.is_retryable(result.error):
            return result, retries

        if not policy.should_attempt_retry(retries + 1):
            logger.warning(
                "'%s' failed after %d attempts: %s",
                label, retries + 1, result.error_message,
            )
            return result, retries

        retries += 1
        delay_ms = policy.delay_for(retries)
        logger.warning(
            "'%s' failed (attempt %d/%d): %s, retrying in %.0fms",
            label, retries, policy.max_retries + 1, result.error_message, delay_ms,
        )
        await sleep(delay_ms / 1000.0)
