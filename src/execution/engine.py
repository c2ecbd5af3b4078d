# src/execution/engine.py — v1
"""ExecutionEngine — run exactly one agent against one input.

Responsibilities:
  - invoke lifecycle hooks (injected lifecycle + the agent's own hooks)
  - race the agent body against an optional per-attempt timeout
  - classify the outcome: domain ExecutionResults pass through unchanged,
    plain values become Successes, raised faults become Failures
  - optional engine-level retry (off unless ExecutionConfig.retry is set)

Faults raised by agent bodies never escape the engine.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from stratagent.core.errors import AgentTimeoutError
from stratagent.core.models import ExecutionMetadata
from stratagent.execution.config import ExecutionConfig
from stratagent.execution.lifecycle import AgentLifecycle
from stratagent.execution.result import ExecutionResult
from stratagent.execution.retry import Sleep, run_with_retry
from stratagent.execution.timer import race_timer

if TYPE_CHECKING:
    from stratagent.agents.base_agent import BaseAgent
    from stratagent.core.context import AgentContext

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = ExecutionConfig()


class ExecutionEngine:
    """Runs agents with lifecycle hooks, timeout and optional retry.

    Args:
        lifecycle: Hooks invoked around every attempt (default: no-op).
        sleep: Awaitable sleep used for retry backoff (injectable for tests).
    """

    def __init__(
        self,
        lifecycle: AgentLifecycle | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._lifecycle = lifecycle or AgentLifecycle()
        self._sleep = sleep

    @property
    def lifecycle(self) -> AgentLifecycle:
        return self._lifecycle

    async def execute(
        self,
        agent: BaseAgent[Any, Any],
        input: Any,
        context: AgentContext,
        config: ExecutionConfig | None = None,
    ) -> ExecutionResult[Any]:
        """Execute ``agent`` once (or under config.retry) and wrap the outcome."""
        config = config or _DEFAULT_CONFIG

        if config.retry is None:
            return await self._execute_once(agent, input, context, config)

        result, retries = await run_with_retry(
            lambda attempt: self._execute_once(agent, input, context, config),
            config.retry,
            label=agent.name,
            sleep=self._sleep,
        )
        if result.is_success() and retries:
            noun = "retry" if retries == 1 else "retries"
            result = result.with_warnings(f"Succeeded after {retries} {noun}")
        return result

    async def _execute_once(
        self,
        agent: BaseAgent[Any, Any],
        input: Any,
        context: AgentContext,
        config: ExecutionConfig,
    ) -> ExecutionResult[Any]:
        start = time.monotonic()
        try:
            await self._lifecycle.before_execute(agent, input, context)
            await agent.before_execute(input, context)
            outcome = await self._invoke(agent, input, context, config.timeout_ms)
        except Exception as exc:
            duration_ms = (time.monotonic() - start) * 1000.0
            logger.debug("Agent '%s' raised after %.1fms: %s", agent.name, duration_ms, exc)
            await self._notify_error(agent, exc, context)
            return ExecutionResult.failure(
                exc,
                ExecutionMetadata.create(
                    agent.model_name, duration_ms=duration_ms, stage="execution"
                ),
            )

        duration_ms = (time.monotonic() - start) * 1000.0
        if isinstance(outcome, ExecutionResult):
            result = outcome
        else:
            result = ExecutionResult.success(
                outcome,
                ExecutionMetadata.create(
                    agent.model_name, duration_ms=duration_ms, stage="execution"
                ),
            )
        return await self._notify_after(agent, result, context)

    async def _invoke(
        self,
        agent: BaseAgent[Any, Any],
        input: Any,
        context: AgentContext,
        timeout_ms: float | None,
    ) -> Any:
        if not timeout_ms:
            return await agent.execute(input, context)
        return await race_timer(
            agent.execute(input, context), timeout_ms, AgentTimeoutError(timeout_ms)
        )

    async def _notify_after(
        self,
        agent: BaseAgent[Any, Any],
        result: ExecutionResult[Any],
        context: AgentContext,
    ) -> ExecutionResult[Any]:
        try:
            await self._lifecycle.after_execute(agent, result, context)
        except Exception:
            logger.exception("After hook failed for %s", agent.name)
        try:
            extra = await agent.after_execute(result, context)
        except Exception:
            logger.exception("Agent after_execute hook failed for %s", agent.name)
            extra = None
        if extra:
            result = result.with_warnings(*extra)
        return result

    async def _notify_error(
        self,
        agent: BaseAgent[Any, Any],
        error: BaseException,
        context: AgentContext,
    ) -> None:
        try:
            await self._lifecycle.on_error(agent, error, context)
        except Exception:
            logger.exception("Error hook failed for %s", agent.name)
        try:
            await agent.on_error(error, context)
        except Exception:
            logger.exception("Agent on_error hook failed for %s", agent.name)
