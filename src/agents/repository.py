# src/agents/repository.py — v1
"""Agent repository — backing store for the orchestrator's registry.

The orchestrator only needs lookup-by-identity. InMemoryAgentRepository
also keeps a capability index for delegation. Reads are lock-free dict
lookups; writes (save/delete) are rare and serialized by a lock.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

from stratagent.agents.base_agent import BaseAgent
from stratagent.core.models import AgentCapability, AgentIdentity

logger = logging.getLogger(__name__)


def _key(agent_id: AgentIdentity | str) -> str:
    return agent_id.value if isinstance(agent_id, AgentIdentity) else agent_id


class AgentRepository(ABC):
    """Storage interface for agents, keyed by identity value."""

    @abstractmethod
    def find_by_id(self, agent_id: AgentIdentity | str) -> BaseAgent[Any, Any] | None:
        """Return the agent registered under ``agent_id``, or None."""

    @abstractmethod
    def save(self, agent: BaseAgent[Any, Any]) -> None:
        """Register (or replace) an agent under its identity."""

    @abstractmethod
    def delete(self, agent_id: AgentIdentity | str) -> bool:
        """Remove an agent. Returns True if something was removed."""

    def exists(self, agent_id: AgentIdentity | str) -> bool:
        return self.find_by_id(agent_id) is not None

    @abstractmethod
    def find_all(self) -> list[BaseAgent[Any, Any]]:
        """Return every registered agent in registration order."""

    def find_by_capability(self, capability: AgentCapability) -> list[BaseAgent[Any, Any]]:
        return [a for a in self.find_all() if a.has_capability(capability)]


class InMemoryAgentRepository(AgentRepository):
    """Dict-backed repository with a capability index."""

    def __init__(self, agents: list[BaseAgent[Any, Any]] | None = None) -> None:
        self._agents: dict[str, BaseAgent[Any, Any]] = {}
        self._by_capability: dict[AgentCapability, set[str]] = {}
        self._lock = threading.Lock()
        for agent in agents or []:
            self.save(agent)

    def find_by_id(self, agent_id: AgentIdentity | str) -> BaseAgent[Any, Any] | None:
        return self._agents.get(_key(agent_id))

    def save(self, agent: BaseAgent[Any, Any]) -> None:
        key = agent.identity.value
        with self._lock:
            if key in self._agents:
                logger.warning("Overwriting existing agent: %s", key)
                self._unindex(key, self._agents[key])
            self._agents[key] = agent
            for capability in agent.capabilities:
                self._by_capability.setdefault(capability, set()).add(key)
        logger.debug("Registered agent %s v%s as %s", agent.name, agent.version, key)

    def delete(self, agent_id: AgentIdentity | str) -> bool:
        key = _key(agent_id)
        with self._lock:
            agent = self._agents.pop(key, None)
            if agent is None:
                return False
            self._unindex(key, agent)
        logger.debug("Unregistered agent %s", key)
        return True

    def find_all(self) -> list[BaseAgent[Any, Any]]:
        return list(self._agents.values())

    def find_by_capability(self, capability: AgentCapability) -> list[BaseAgent[Any, Any]]:
        keys = self._by_capability.get(capability, set())
        return [a for k, a in self._agents.items() if k in keys]

    def count(self) -> int:
        return len(self._agents)

    def clear(self) -> None:
        with self._lock:
            self._agents.clear()
            self._by_capability.clear()

    def _unindex(self, key: str, agent: BaseAgent[Any, Any]) -> None:
        for capability in agent.capabilities:
            keys = self._by_capability.get(capability)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._by_capability[capability]
