# src/orchestration/delegation.py — v1
"""Delegation — pick an agent from a candidate list and run it.

Selectors decide *which* agent handles an input; Delegation runs the
chosen agent through the engine. AgentPool keeps a fixed set of agents
and spreads work over them round-robin.
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Iterable

from stratagent.core.errors import NoDelegateFoundError
from stratagent.execution.engine import ExecutionEngine

if TYPE_CHECKING:
    from stratagent.agents.base_agent import BaseAgent
    from stratagent.core.context import AgentContext
    from stratagent.core.models import AgentCapability
    from stratagent.execution.config import ExecutionConfig
    from stratagent.execution.result import ExecutionResult

logger = logging.getLogger(__name__)


class AgentSelector(ABC):
    """Strategy choosing one agent out of the candidates (or None)."""

    @abstractmethod
    def select(self, agents: list[BaseAgent[Any, Any]]) -> BaseAgent[Any, Any] | None:
        ...


class FirstAgentSelector(AgentSelector):
    def select(self, agents):
        return agents[0] if agents else None


class CapabilitySelector(AgentSelector):
    """First agent advertising ``capability``."""

    def __init__(self, capability: AgentCapability) -> None:
        self.capability = capability

    def select(self, agents):
        return next((a for a in agents if a.has_capability(self.capability)), None)


class MultiCapabilitySelector(AgentSelector):
    """First agent advertising every one of ``capabilities``."""

    def __init__(self, capabilities: Iterable[AgentCapability]) -> None:
        self.capabilities = list(capabilities)

    def select(self, agents):
        return next((a for a in agents if a.has_capabilities(self.capabilities)), None)


class AnyCapabilitySelector(AgentSelector):
    """First agent advertising at least one of ``capabilities``."""

    def __init__(self, capabilities: Iterable[AgentCapability]) -> None:
        self.capabilities = list(capabilities)

    def select(self, agents):
        return next((a for a in agents if a.has_any_capability(self.capabilities)), None)


class RoundRobinSelector(AgentSelector):
    """Cycles through the candidates on successive calls."""

    def __init__(self) -> None:
        self._index = 0

    def select(self, agents):
        if not agents:
            return None
        agent = agents[self._index % len(agents)]
        self._index += 1
        return agent

    def reset(self) -> None:
        self._index = 0


class RandomAgentSelector(AgentSelector):
    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()  # noqa: S311

    def select(self, agents):
        return self._rng.choice(agents) if agents else None


class PredicateSelector(AgentSelector):
    """First agent for which ``predicate`` returns True."""

    def __init__(self, predicate: Callable[[BaseAgent[Any, Any]], bool]) -> None:
        self.predicate = predicate

    def select(self, agents):
        return next((a for a in agents if self.predicate(a)), None)


class Delegation:
    """Selects a delegate and executes it through the engine."""

    def __init__(self, engine: ExecutionEngine | None = None) -> None:
        self._engine = engine or ExecutionEngine()

    async def delegate(
        self,
        agents: list[BaseAgent[Any, Any]],
        selector: AgentSelector,
        input: Any,
        context: AgentContext,
        config: ExecutionConfig | None = None,
    ) -> ExecutionResult[Any]:
        """Run the selected agent.

        Raises:
            NoDelegateFoundError: If the selector picked nothing.
        """
        agent = selector.select(agents)
        if agent is None:
            raise NoDelegateFoundError(
                f"No suitable agent found among {len(agents)} candidates "
                f"using {type(selector).__name__}"
            )
        logger.debug("Delegating to %s via %s", agent.name, type(selector).__name__)
        return await self._engine.execute(agent, input, context, config)

    async def try_delegate(
        self,
        agents: list[BaseAgent[Any, Any]],
        selector: AgentSelector,
        input: Any,
        context: AgentContext,
        config: ExecutionConfig | None = None,
    ) -> ExecutionResult[Any] | None:
        """Like delegate, but returns None when no agent is selected."""
        try:
            return await self.delegate(agents, selector, input, context, config)
        except NoDelegateFoundError:
            return None

    async def delegate_by_capability(self, agents, capability, input, context, config=None):
        return await self.delegate(agents, CapabilitySelector(capability), input, context, config)

    async def delegate_by_capabilities(self, agents, capabilities, input, context, config=None):
        return await self.delegate(
            agents, MultiCapabilitySelector(capabilities), input, context, config
        )

    async def delegate_by_any_capability(self, agents, capabilities, input, context, config=None):
        return await self.delegate(
            agents, AnyCapabilitySelector(capabilities), input, context, config
        )

    async def delegate_by_predicate(self, agents, predicate, input, context, config=None):
        return await self.delegate(agents, PredicateSelector(predicate), input, context, config)


class AgentPool:
    """Fixed set of interchangeable agents, served round-robin."""

    def __init__(
        self,
        agents: Iterable[BaseAgent[Any, Any]] = (),
        engine: ExecutionEngine | None = None,
    ) -> None:
        self._agents: list[BaseAgent[Any, Any]] = list(agents)
        self._delegation = Delegation(engine)
        self._round_robin = RoundRobinSelector()

    def add(self, agent: BaseAgent[Any, Any]) -> AgentPool:
        self._agents.append(agent)
        return self

    @property
    def agents(self) -> tuple[BaseAgent[Any, Any], ...]:
        return tuple(self._agents)

    def __len__(self) -> int:
        return len(self._agents)

    async def execute(
        self,
        input: Any,
        context: AgentContext,
        config: ExecutionConfig | None = None,
    ) -> ExecutionResult[Any]:
        return await self._delegation.delegate(
            self._agents, self._round_robin, input, context, config
        )

    async def execute_with(
        self,
        selector: AgentSelector,
        input: Any,
        context: AgentContext,
        config: ExecutionConfig | None = None,
    ) -> ExecutionResult[Any]:
        return await self._delegation.delegate(self._agents, selector, input, context, config)
