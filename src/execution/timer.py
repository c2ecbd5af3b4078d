# src/execution/timer.py — v1
"""Race an awaitable against a timer without cancelling it.

If the timer wins, the caller gets ``timeout_error`` immediately and the
awaitable keeps running in the background as an abandoned task. Its
outcome is retrieved (and logged at debug level) when it finishes, so a
late fault never surfaces as "exception was never retrieved".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Strong references to abandoned tasks; the event loop only keeps weak ones.
_abandoned: set[asyncio.Task[Any]] = set()


def _reap(task: asyncio.Task[Any]) -> None:
    _abandoned.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned task %s finished with error: %r", task.get_name(), exc)


def abandoned_count() -> int:
    """Number of timed-out tasks still running."""
    return len(_abandoned)


async def race_timer(
    awaitable: Awaitable[T],
    timeout_ms: float,
    timeout_error: BaseException,
) -> T:
    """Await ``awaitable`` for at most ``timeout_ms``.

    Raises:
        timeout_error: If the timer fires first. The underlying task is
            not cancelled.
    """
    task = asyncio.ensure_future(awaitable)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000.0)
    except asyncio.CancelledError:
        # The caller itself was cancelled; pass it on to the work.
        task.cancel()
        raise

    if task in done:
        return task.result()

    _abandoned.add(task)
    task.add_done_callback(_reap)
    raise timeout_error
