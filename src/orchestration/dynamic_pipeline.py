# src/orchestration/dynamic_pipeline.py — v1
"""DynamicPipeline — a pipeline whose stage list is composed at runtime.

Same execution semantics as the static Pipeline; stages can be added,
inserted, removed or cleared between runs. clone/concat copy the stage
list only; agent instances are shared.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, Iterable, TypeVar

from stratagent.execution.engine import ExecutionEngine
from stratagent.execution.result import ExecutionResult
from stratagent.orchestration.pipeline import run_stages

if TYPE_CHECKING:
    from stratagent.agents.base_agent import BaseAgent
    from stratagent.core.context import AgentContext
    from stratagent.execution.config import ExecutionConfig

T = TypeVar("T")
R = TypeVar("R")


class DynamicPipeline(Generic[T]):
    """Runtime-composed chain of same-typed agents."""

    def __init__(
        self,
        agents: Iterable[BaseAgent[T, T]] = (),
        engine: ExecutionEngine | None = None,
    ) -> None:
        self._agents: list[BaseAgent[T, T]] = list(agents)
        self._engine = engine or ExecutionEngine()

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def add(self, agent: BaseAgent[T, T]) -> DynamicPipeline[T]:
        self._agents.append(agent)
        return self

    def add_all(self, agents: Iterable[BaseAgent[T, T]]) -> DynamicPipeline[T]:
        self._agents.extend(agents)
        return self

    def insert_at(self, index: int, agent: BaseAgent[T, T]) -> DynamicPipeline[T]:
        """Insert before position ``index`` (0..len inclusive)."""
        if index < 0 or index > len(self._agents):
            raise IndexError(
                f"Index {index} out of bounds for pipeline of length {len(self._agents)}"
            )
        self._agents.insert(index, agent)
        return self

    def remove_at(self, index: int) -> BaseAgent[T, T]:
        if index < 0 or index >= len(self._agents):
            raise IndexError(
                f"Index {index} out of bounds for pipeline of length {len(self._agents)}"
            )
        return self._agents.pop(index)

    def clear(self) -> DynamicPipeline[T]:
        self._agents.clear()
        return self

    @property
    def agents(self) -> tuple[BaseAgent[T, T], ...]:
        return tuple(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    def is_empty(self) -> bool:
        return not self._agents

    def clone(self) -> DynamicPipeline[T]:
        return DynamicPipeline(self._agents, self._engine)

    def concat(self, other: DynamicPipeline[T]) -> DynamicPipeline[T]:
        """New pipeline running this one's stages, then ``other``'s."""
        return DynamicPipeline(self._agents + list(other.agents), self._engine)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(
        self,
        input: T,
        context: AgentContext,
        config: ExecutionConfig | None = None,
    ) -> ExecutionResult[T]:
        return await run_stages(self._engine, list(self._agents), input, context, config)

    async def execute_and_transform(
        self,
        input: T,
        context: AgentContext,
        transform: Callable[[T], R | Awaitable[R]],
        config: ExecutionConfig | None = None,
    ) -> ExecutionResult[R]:
        """Run the pipeline then apply ``transform`` (sync or async) to the value.

        A raising transform yields a Failure; the pipeline is not re-run.
        """
        result = await self.execute(input, context, config)
        if result.is_failure():
            return ExecutionResult.failure(result.error, result.metadata)
        try:
            value = transform(result.value)  # type: ignore[arg-type]
            if inspect.isawaitable(value):
                value = await value
        except Exception as exc:
            return ExecutionResult.failure(exc, result.metadata)
        return ExecutionResult(
            ok=True,
            value=value,
            metadata=result.metadata,
            warnings=result.warnings,
            partial=result.partial,
        )

    def __repr__(self) -> str:
        names = ", ".join(a.name for a in self._agents)
        return f"DynamicPipeline([{names}])"
