# tests/unit/agents/test_unit_agents.py — v1
"""Tests for agents/base_agent.py and agents/repository.py."""

from __future__ import annotations

import pytest

from stratagent.agents.base_agent import BaseAgent
from stratagent.agents.repository import InMemoryAgentRepository
from stratagent.core.models import AgentIdentity


class MinimalAgent(BaseAgent[str, str]):
    @property
    def name(self): return "minimal"
    @property
    def version(self): return "2.0.0"
    @property
    def description(self): return "Minimal agent"
    async def execute(self, input, context): return input  # noqa


class TestBaseAgent:
    def test_abstract(self):
        with pytest.raises(TypeError):
            BaseAgent()  # type: ignore[abstract]

    def test_identity_defaults_to_name(self):
        ident = MinimalAgent().identity
        assert ident.value == "minimal"
        assert ident.version == "2.0.0"

    def test_explicit_identity(self):
        agent = MinimalAgent()
        agent.set_identity(AgentIdentity(value="agent_x", name="minimal"))
        assert agent.identity.value == "agent_x"

    def test_identity_is_per_instance(self):
        a, b = MinimalAgent(), MinimalAgent()
        a.set_identity(AgentIdentity(value="only-a"))
        assert b.identity.value == "minimal"

    def test_bound_context(self, context):
        agent = MinimalAgent()
        assert agent.bound_context is None
        agent.bind_context(context)
        assert agent.bound_context is context

    def test_capabilities(self, make_agent):
        agent = make_agent("cap", capabilities=["search", "summarize"])
        assert agent.has_capability("search")
        assert agent.has_capabilities(["search", "summarize"])
        assert not agent.has_capabilities(["search", "translate"])
        assert agent.has_any_capability(["translate", "summarize"])
        assert not MinimalAgent().has_capability("search")

    def test_result_from_responses(self, sample_response):
        result = MinimalAgent().result_from_responses("done", [sample_response], ["note"])
        assert result.value == "done"
        assert result.metadata.model == "gpt-4o-mini"
        assert result.metadata.usage.total_tokens == 1500
        assert result.metadata.cost == pytest.approx(0.00045)
        assert result.warnings == ("note",)

    def test_repr(self):
        assert repr(MinimalAgent()) == "MinimalAgent(name='minimal', version='2.0.0')"


class TestInMemoryAgentRepository:
    def test_save_and_find(self, make_agent):
        repo = InMemoryAgentRepository()
        agent = make_agent("a")
        repo.save(agent)
        assert repo.find_by_id("a") is agent
        assert repo.find_by_id(AgentIdentity(value="a")) is agent
        assert repo.exists("a")
        assert repo.count() == 1

    def test_missing(self):
        assert InMemoryAgentRepository().find_by_id("nope") is None

    def test_delete(self, make_agent):
        repo = InMemoryAgentRepository([make_agent("a")])
        assert repo.delete("a") is True
        assert repo.delete("a") is False
        assert not repo.exists("a")

    def test_capability_index(self, make_agent):
        a = make_agent("a", capabilities=["search"])
        b = make_agent("b", capabilities=["search", "write"])
        repo = InMemoryAgentRepository([a, b])
        assert repo.find_by_capability("search") == [a, b]
        assert repo.find_by_capability("write") == [b]
        repo.delete("b")
        assert repo.find_by_capability("write") == []

    def test_overwrite_reindexes(self, make_agent):
        repo = InMemoryAgentRepository([make_agent("a", capabilities=["old"])])
        replacement = make_agent("a", capabilities=["new"])
        repo.save(replacement)
        assert repo.find_by_capability("old") == []
        assert repo.find_by_capability("new") == [replacement]
        assert repo.count() == 1

    def test_find_all_and_clear(self, make_agent):
        repo = InMemoryAgentRepository([make_agent("a"), make_agent("b")])
        assert [x.name for x in repo.find_all()] == ["a", "b"]
        repo.clear()
        assert repo.find_all() == []
