# src/execution/lifecycle.py — v1
"""Lifecycle hooks injected into the ExecutionEngine.

Order per attempt:
  1. before_execute: a raise aborts the attempt (reported as a Failure)
  2. agent.execute()
  3. after_execute: on a returned result; a raise is logged and ignored
     on_error: on a raised fault; a raise is logged and ignored
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from stratagent.agents.base_agent import BaseAgent
    from stratagent.core.context import AgentContext
    from stratagent.execution.result import ExecutionResult

logger = logging.getLogger(__name__)


class AgentLifecycle:
    """No-op lifecycle. Subclass and override the hooks you need."""

    async def before_execute(
        self, agent: BaseAgent, input: Any, context: AgentContext
    ) -> None:
        return None

    async def after_execute(
        self, agent: BaseAgent, result: ExecutionResult, context: AgentContext
    ) -> None:
        return None

    async def on_error(
        self, agent: BaseAgent, error: BaseException, context: AgentContext
    ) -> None:
        return None


NoOpLifecycle = AgentLifecycle


class LoggingLifecycle(AgentLifecycle):
    """Logs every lifecycle event through the package logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    async def before_execute(self, agent, input, context) -> None:
        self._log.info(
            "Before execute: %s (agent_id=%s, session=%s)",
            agent.name, agent.identity.value, context.session_id,
        )

    async def after_execute(self, agent, result, context) -> None:
        self._log.info(
            "After execute: %s success=%s warnings=%d",
            agent.name, result.is_success(), len(result.warnings),
        )

    async def on_error(self, agent, error, context) -> None:
        self._log.error(
            "Error in %s (session=%s): %s",
            agent.name, context.session_id, error,
        )


class CompositeLifecycle(AgentLifecycle):
    """Runs several lifecycles in order.

    before_execute propagates the first failure; after_execute and on_error
    keep going when one of the lifecycles raises.
    """

    def __init__(self, lifecycles: list[AgentLifecycle]) -> None:
        self._lifecycles = list(lifecycles)

    async def before_execute(self, agent, input, context) -> None:
        for lifecycle in self._lifecycles:
            await lifecycle.before_execute(agent, input, context)

    async def after_execute(self, agent, result, context) -> None:
        for lifecycle in self._lifecycles:
            try:
                await lifecycle.after_execute(agent, result, context)
            except Exception:
                logger.exception("Lifecycle after_execute failed for %s", agent.name)

    async def on_error(self, agent, error, context) -> None:
        for lifecycle in self._lifecycles:
            try:
                await lifecycle.on_error(agent, error, context)
            except Exception:
                logger.exception("Lifecycle on_error failed for %s", agent.name)
