# src/agents/base_agent.py — v1
"""Standard agent interface.

An agent is a unit of work invoked with an input and an AgentContext. Its
body may call an LLM client and/or a ToolExecutor; the runtime treats the
body as a single opaque call that returns a value (or an ExecutionResult)
or raises.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, Iterable, TypeVar

from stratagent.core.models import AgentCapability, AgentIdentity
from stratagent.execution.result import ExecutionResult
from stratagent.tracking.cost_calculator import metadata_from_responses

if TYPE_CHECKING:
    from stratagent.core.context import AgentContext
    from stratagent.llm.models import LLMResponse

TInput = TypeVar("TInput")
TOutput = TypeVar("TOutput")


class BaseAgent(ABC, Generic[TInput, TOutput]):
    """Standard interface for all agents.

    Subclasses provide ``name``, ``version``, ``description`` and
    ``execute``. Identity defaults to the agent name; set ``agent_id`` on
    the class (or pass ``identity`` to ``set_identity``) for opaque ids.
    """

    agent_id: str | None = None
    _identity: AgentIdentity | None = None
    _bound_context: AgentContext | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique agent name (e.g., 'summarizer', 'triage')."""

    @property
    @abstractmethod
    def version(self) -> str:
        """Agent version (semver)."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this agent does."""

    @property
    def model_name(self) -> str:
        """Model identifier reported in failure metadata."""
        return "unknown"

    @property
    def capabilities(self) -> list[AgentCapability]:
        return []

    @abstractmethod
    async def execute(
        self, input: TInput, context: AgentContext
    ) -> TOutput | ExecutionResult[TOutput]:
        """Run the agent body.

        Returns either a plain value (wrapped as a Success by the engine)
        or a domain ExecutionResult, which is passed through unchanged.
        """

    # ------------------------------------------------------------------
    # Optional hooks (the engine calls them around execute)
    # ------------------------------------------------------------------

    async def before_execute(self, input: TInput, context: AgentContext) -> None:
        return None

    async def after_execute(
        self, result: ExecutionResult[TOutput], context: AgentContext
    ) -> Iterable[str] | None:
        """Return warnings to append to the result, or None."""
        return None

    async def on_error(self, error: BaseException, context: AgentContext) -> None:
        return None

    # ------------------------------------------------------------------
    # Identity & bound context
    # ------------------------------------------------------------------

    @property
    def identity(self) -> AgentIdentity:
        if self._identity is None:
            self._identity = AgentIdentity(
                value=self.agent_id or self.name,
                name=self.name,
                version=self.version,
            )
        return self._identity

    def set_identity(self, identity: AgentIdentity) -> None:
        self._identity = identity

    @property
    def bound_context(self) -> AgentContext | None:
        """Context set by the orchestrator before execution, if any."""
        return self._bound_context

    def bind_context(self, context: AgentContext | None) -> None:
        self._bound_context = context

    def has_capability(self, capability: AgentCapability) -> bool:
        return capability in self.capabilities

    def has_capabilities(self, capabilities: Iterable[AgentCapability]) -> bool:
        return all(c in self.capabilities for c in capabilities)

    def has_any_capability(self, capabilities: Iterable[AgentCapability]) -> bool:
        return any(c in self.capabilities for c in capabilities)

    # ------------------------------------------------------------------
    # Helpers for agent bodies
    # ------------------------------------------------------------------

    def result_from_responses(
        self,
        value: TOutput,
        responses: list[LLMResponse],
        warnings: Iterable[str] = (),
    ) -> ExecutionResult[TOutput]:
        """Wrap a value with usage/cost metadata computed from LLM responses."""
        metadata = metadata_from_responses(responses)
        if metadata.model == "unknown":
            metadata = metadata.model_copy(update={"model": self.model_name})
        return ExecutionResult.success(value, metadata, warnings)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, version={self.version!r})"
