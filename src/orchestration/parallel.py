# src/orchestration/parallel.py — v1
"""ParallelExecutor — run independent (agent, input) tasks concurrently.

All tasks are dispatched before any is awaited; results keep task order
regardless of completion order. No short-circuiting: every task yields a
result.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from stratagent.execution.engine import ExecutionEngine
from stratagent.execution.result import ExecutionResult, combine

if TYPE_CHECKING:
    from stratagent.agents.base_agent import BaseAgent
    from stratagent.core.context import AgentContext
    from stratagent.execution.config import ExecutionConfig

logger = logging.getLogger(__name__)

TIn = TypeVar("TIn")
TOut = TypeVar("TOut")


@dataclass(frozen=True)
class ParallelTask(Generic[TIn, TOut]):
    agent: BaseAgent[TIn, TOut]
    input: TIn


class ParallelExecutor:
    """Runs ParallelTasks through one ExecutionEngine."""

    def __init__(self, engine: ExecutionEngine | None = None) -> None:
        self._engine = engine or ExecutionEngine()

    async def run(
        self,
        tasks: list[ParallelTask[Any, Any]],
        context: AgentContext,
        config: ExecutionConfig | None = None,
    ) -> list[ExecutionResult[Any]]:
        if not tasks:
            return []
        logger.debug("Running %d agent tasks in parallel", len(tasks))
        results = await asyncio.gather(
            *(self._engine.execute(t.agent, t.input, context, config) for t in tasks)
        )
        return list(results)

    async def run_all_successful(
        self,
        tasks: list[ParallelTask[Any, Any]],
        context: AgentContext,
        config: ExecutionConfig | None = None,
    ) -> ExecutionResult[list[Any]]:
        """Run every task and combine; the first failure (by task order) wins."""
        return combine(await self.run(tasks, context, config))
