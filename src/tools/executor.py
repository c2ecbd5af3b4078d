# src/tools/executor.py — v1
"""ToolExecutor — run model-requested tool calls with timeout and bounded
parallelism.

Single call: decode the JSON arguments (must be an object), dispatch via
the registry, optionally racing a timer. A dispatch that loses the race
is reported as timed out and left running. Every outcome, including decode
errors, unknown tools, raised faults and timeouts, becomes a
ToolCallResult; nothing is raised to the caller.

Batch policies:
  - sequential: one call at a time, stop after the first failure unless
    continue_on_error
  - parallel (default): chunks of max_parallel calls, each chunk a full
    barrier; unless continue_on_error, no further chunk is started once
    the just-completed chunk contains a failure. Calls already running in
    that chunk are not cancelled.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from stratagent.core.errors import ToolTimeoutError
from stratagent.execution.timer import race_timer
from stratagent.llm.models import ToolCall
from stratagent.tools.base_tool import ToolContext, ToolResult

if TYPE_CHECKING:
    from stratagent.config.settings import Settings
    from stratagent.execution.trace import ExecutionTrace
    from stratagent.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolExecutionConfig:
    """Batch / call execution options.

    Attributes:
        timeout_ms: Per-call timeout; None disables the timer.
        parallel: Run calls concurrently in chunks (default) or one by one.
        max_parallel: Chunk size; None puts every call in one chunk.
        continue_on_error: Keep dispatching after a failed call/chunk.
    """

    timeout_ms: float | None = None
    parallel: bool = True
    max_parallel: int | None = None
    continue_on_error: bool = False

    def __post_init__(self) -> None:
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0 when set")
        if self.max_parallel is not None and self.max_parallel < 1:
            raise ValueError("max_parallel must be >= 1 when set")

    @classmethod
    def from_settings(cls, settings: Settings) -> ToolExecutionConfig:
        return cls(
            timeout_ms=settings.tool_timeout_ms,
            parallel=settings.tool_parallel,
            max_parallel=settings.tool_max_parallel,
            continue_on_error=settings.tool_continue_on_error,
        )


class ToolCallResult(BaseModel):
    """Outcome of one ToolCall. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    call: ToolCall
    result: ToolResult
    duration_ms: float
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.result.success


class BatchExecutionResult(BaseModel):
    """Results of a batch plus totals. total_duration_ms is wall-clock."""

    model_config = ConfigDict(frozen=True)

    results: list[ToolCallResult] = Field(default_factory=list)
    total_duration_ms: float = 0.0
    success_count: int = 0
    failure_count: int = 0
    timeout_count: int = 0
    chunk_count: int = 0

    @property
    def all_succeeded(self) -> bool:
        return self.failure_count == 0


class BatchStats(BaseModel):
    success_rate: float = 0.0
    average_duration_ms: float = 0.0
    min_duration_ms: float = 0.0
    max_duration_ms: float = 0.0


class ToolExecutor:
    """Executes ToolCalls against a ToolRegistry.

    Args:
        registry: Tools available for dispatch.
        default_config: Used when a call site passes no config.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        default_config: ToolExecutionConfig | None = None,
    ) -> None:
        self._registry = registry
        self._default_config = default_config or ToolExecutionConfig()

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def execute_call(
        self,
        call: ToolCall,
        context: ToolContext,
        config: ToolExecutionConfig | None = None,
        trace: ExecutionTrace | None = None,
    ) -> ToolCallResult:
        config = config or self._default_config
        start = time.monotonic()
        timed_out = False
        try:
            params = _decode_arguments(call.arguments)
            result = await self._dispatch(call.name, params, context, config.timeout_ms)
        except ToolTimeoutError as exc:
            timed_out = True
            result = ToolResult.fail(str(exc))
        except Exception as exc:
            result = ToolResult.fail(str(exc) or type(exc).__name__)

        duration_ms = (time.monotonic() - start) * 1000.0
        if not result.success:
            logger.warning(
                "Tool call %s (%s) failed after %.1fms: %s",
                call.name, call.id, duration_ms, result.error,
            )
        call_result = ToolCallResult(
            call=call, result=result, duration_ms=duration_ms, timed_out=timed_out
        )
        if trace is not None and not trace.is_completed:
            trace.record_step(
                call.name,
                step_type="tool",
                duration_ms=duration_ms,
                error=result.error,
                call_id=call.id,
                timed_out=timed_out,
            )
        return call_result

    async def execute_batch(
        self,
        calls: list[ToolCall],
        context: ToolContext,
        config: ToolExecutionConfig | None = None,
        trace: ExecutionTrace | None = None,
    ) -> BatchExecutionResult:
        config = config or self._default_config
        start = time.monotonic()

        if config.parallel:
            results, chunks = await self._execute_chunked(calls, context, config, trace)
        else:
            results = await self._execute_sequential(calls, context, config, trace)
            chunks = len(results)

        total_duration_ms = (time.monotonic() - start) * 1000.0
        successes = sum(1 for r in results if r.success)
        batch = BatchExecutionResult(
            results=results,
            total_duration_ms=total_duration_ms,
            success_count=successes,
            failure_count=len(results) - successes,
            timeout_count=sum(1 for r in results if r.timed_out),
            chunk_count=chunks,
        )
        logger.debug(
            "Tool batch: %d/%d calls run, %d ok, %d failed, %d timed out in %.1fms",
            len(results), len(calls), batch.success_count, batch.failure_count,
            batch.timeout_count, total_duration_ms,
        )
        return batch

    async def _execute_chunked(
        self,
        calls: list[ToolCall],
        context: ToolContext,
        config: ToolExecutionConfig,
        trace: ExecutionTrace | None,
    ) -> tuple[list[ToolCallResult], int]:
        size = config.max_parallel or max(len(calls), 1)
        results: list[ToolCallResult] = []
        chunks = 0
        for offset in range(0, len(calls), size):
            chunk = calls[offset:offset + size]
            chunks += 1
            chunk_results = await asyncio.gather(
                *(self.execute_call(call, context, config, trace) for call in chunk)
            )
            results.extend(chunk_results)
            if not config.continue_on_error and any(not r.success for r in chunk_results):
                break
        return results, chunks

    async def _execute_sequential(
        self,
        calls: list[ToolCall],
        context: ToolContext,
        config: ToolExecutionConfig,
        trace: ExecutionTrace | None,
    ) -> list[ToolCallResult]:
        results: list[ToolCallResult] = []
        for call in calls:
            result = await self.execute_call(call, context, config, trace)
            results.append(result)
            if not config.continue_on_error and not result.success:
                break
        return results

    async def _dispatch(
        self,
        name: str,
        params: dict[str, Any],
        context: ToolContext,
        timeout_ms: float | None,
    ) -> ToolResult:
        if not timeout_ms:
            return await self._registry.execute(name, params, context)
        return await race_timer(
            self._registry.execute(name, params, context),
            timeout_ms,
            ToolTimeoutError(timeout_ms),
        )

    # ------------------------------------------------------------------
    # Pure helpers
    # ------------------------------------------------------------------

    @staticmethod
    def format_results(results: list[ToolCallResult]) -> str:
        """Render results as one line per call for feeding back to a model."""
        lines = []
        for r in results:
            if r.success:
                lines.append(f"✓ {r.call.name}: {json.dumps(r.result.data, default=str)}")
            else:
                lines.append(f"✗ {r.call.name}: {r.result.error}")
        return "\n".join(lines)

    @staticmethod
    def get_stats(batch: BatchExecutionResult) -> BatchStats:
        durations = [r.duration_ms for r in batch.results]
        if not durations:
            return BatchStats()
        return BatchStats(
            success_rate=batch.success_count / len(durations),
            average_duration_ms=sum(durations) / len(durations),
            min_duration_ms=min(durations),
            max_duration_ms=max(durations),
        )


def _decode_arguments(arguments: str) -> dict[str, Any]:
    try:
        params = json.loads(arguments) if arguments.strip() else {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid tool arguments: {exc.msg}") from exc
    if not isinstance(params, dict):
        raise ValueError(
            f"Tool arguments must be a JSON object, got {type(params).__name__}"
        )
    return params
