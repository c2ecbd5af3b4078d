# src/orchestration/pipeline.py — v1
"""Static pipelines: chain agents where stage N's output feeds stage N+1.

    pipeline = Pipeline.of(extract).then(classify).then(summarize)
    result = await pipeline.execute(document, context)

Stages run through the engine without retry. A failing stage stops the
pipeline; its error is wrapped in an ExecutionFailure whose message names
the stage position and agent. Warnings from every completed stage are
accumulated on the final result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, Sequence, TypeVar

from stratagent.core.errors import ExecutionFailure
from stratagent.core.models import ExecutionMetadata
from stratagent.execution.engine import ExecutionEngine
from stratagent.execution.result import ExecutionResult
from stratagent.logging.context import log_context

if TYPE_CHECKING:
    from stratagent.agents.base_agent import BaseAgent
    from stratagent.core.context import AgentContext
    from stratagent.execution.config import ExecutionConfig
    from stratagent.execution.lifecycle import AgentLifecycle

logger = logging.getLogger(__name__)

A = TypeVar("A")
B = TypeVar("B")
C = TypeVar("C")

EMPTY_PIPELINE_WARNING = "Pipeline is empty, returning input unchanged"


def stage_failure_message(index: int, total: int, agent_name: str, message: str) -> str:
    return f"Pipeline failed at stage {index}/{total} ({agent_name}): {message}"


async def run_stages(
    engine: ExecutionEngine,
    agents: Sequence[BaseAgent[Any, Any]],
    input: Any,
    context: AgentContext,
    config: ExecutionConfig | None = None,
) -> ExecutionResult[Any]:
    """Run ``agents`` in order, feeding each value to the next stage."""
    if not agents:
        return ExecutionResult.success(
            input, ExecutionMetadata(stage="pipeline"), [EMPTY_PIPELINE_WARNING]
        )

    total = len(agents)
    current = input
    warnings: list[str] = []
    metadatas: list[ExecutionMetadata] = []
    partial = False

    for index, agent in enumerate(agents, start=1):
        with log_context(agent=agent.name, step=f"stage {index}/{total}"):
            result = await engine.execute(agent, current, context, config)

        if result.is_failure():
            message = stage_failure_message(index, total, agent.name, result.error_message or "")
            logger.warning(message)
            return ExecutionResult.failure(
                ExecutionFailure(message, cause=result.error),
                result.metadata.model_copy(update={"stage": f"pipeline:{index}"}),
            )

        current = result.value
        warnings.extend(result.warnings)
        metadatas.append(result.metadata)
        partial = partial or result.is_partial()

    metadata = ExecutionMetadata.merge(*metadatas).model_copy(update={"stage": "pipeline"})
    if partial and warnings:
        return ExecutionResult.partial_result(current, metadata, warnings)
    return ExecutionResult.success(current, metadata, warnings)


class PipelineBuilder(Generic[A, B]):
    """Immutable chain of stages from input type A to output type B.

    ``then`` returns a new builder, so a prefix can be shared between
    several pipelines.
    """

    def __init__(
        self,
        agents: Sequence[BaseAgent[Any, Any]],
        engine: ExecutionEngine | None = None,
    ) -> None:
        self._agents: tuple[BaseAgent[Any, Any], ...] = tuple(agents)
        self._engine = engine or ExecutionEngine()

    def then(self, agent: BaseAgent[B, C]) -> PipelineBuilder[A, C]:
        return PipelineBuilder(self._agents + (agent,), self._engine)

    @property
    def agents(self) -> tuple[BaseAgent[Any, Any], ...]:
        return self._agents

    def __len__(self) -> int:
        return len(self._agents)

    async def execute(
        self,
        input: A,
        context: AgentContext,
        config: ExecutionConfig | None = None,
    ) -> ExecutionResult[B]:
        return await run_stages(self._engine, self._agents, input, context, config)


class Pipeline:
    """Entry points for building static pipelines."""

    def __init__(self, engine: ExecutionEngine | None = None) -> None:
        self._engine = engine or ExecutionEngine()

    @classmethod
    def with_engine(cls, engine: ExecutionEngine) -> Pipeline:
        return cls(engine)

    @classmethod
    def with_lifecycle(cls, lifecycle: AgentLifecycle) -> Pipeline:
        return cls(ExecutionEngine(lifecycle))

    @staticmethod
    def of(*agents: BaseAgent[Any, Any]) -> PipelineBuilder[Any, Any]:
        return PipelineBuilder(agents)

    def pipe(self, first: BaseAgent[A, B]) -> PipelineBuilder[A, B]:
        return PipelineBuilder([first], self._engine)


async def pipe(
    *agents: BaseAgent[Any, Any],
    input: Any,
    context: AgentContext,
    engine: ExecutionEngine | None = None,
) -> ExecutionResult[Any]:
    """One-shot helper: run ``agents`` as a pipeline over ``input``."""
    return await run_stages(engine or ExecutionEngine(), agents, input, context)
