# tests/unit/orchestration/test_unit_orchestrator.py — v1
"""Tests for orchestration/orchestrator.py — AgentOrchestrator."""

from __future__ import annotations

import asyncio
import time
from unittest.mock import AsyncMock

import pytest

from stratagent.agents.base_agent import BaseAgent
from stratagent.agents.repository import InMemoryAgentRepository
from stratagent.audit.audit_log import InMemoryAuditLog
from stratagent.config.settings import load_settings
from stratagent.core.context import AgentContext
from stratagent.core.errors import (
    AgentNotFoundError,
    BudgetExceededError,
    DelegationError,
)
from stratagent.core.models import CostEntry
from stratagent.orchestration.orchestrator import AgentOrchestrator, OrchestratorOptions


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def build(audit_log, fake_sleep):
    def _build(*agents, **options) -> AgentOrchestrator:
        orch = AgentOrchestrator(
            InMemoryAgentRepository(),
            audit_log,
            options=OrchestratorOptions(**options),
            sleep=fake_sleep,
        )
        for agent in agents:
            orch.register_agent(agent)
        return orch

    return _build


class TestOptions:
    def test_from_settings(self):
        settings = load_settings(max_retries=5, audit_enabled=False, _env_file=None)
        options = OrchestratorOptions.from_settings(settings)
        assert options.max_retries == 5
        assert options.audit_enabled is False
        assert options.retry_policy.base_delay_ms == 1000

    def test_negative_retries(self):
        with pytest.raises(ValueError):
            OrchestratorOptions(max_retries=-1)


class TestRegistry:
    def test_register_unregister(self, build, make_agent):
        orch = build()
        agent = make_agent("a")
        assert orch.register_agent(agent).value == "a"
        assert orch.get_agent("a") is agent
        assert orch.list_agents() == [agent]
        assert orch.unregister_agent("a") is True
        assert orch.get_agent("a") is None
        assert orch.unregister_agent("a") is False


class TestExecuteAgent:
    @pytest.mark.asyncio
    async def test_success_with_trace_and_audit(self, build, make_agent, context, audit_log):
        orch = build(make_agent("upper", fn=str.upper))
        result = await orch.execute_agent("upper", "hi", context)

        assert result.is_success()
        assert result.value == "HI"
        assert result.trace is not None
        assert result.trace.is_completed
        assert result.trace.end_time >= result.trace.start_time

        records = audit_log.records
        assert len(records) == 1
        assert records[0].success is True
        assert records[0].agent_name == "upper"
        assert records[0].input == "hi"
        assert records[0].output == "HI"
        assert records[0].user_id == "user-1"
        assert records[0].session_id == "session-1"

    @pytest.mark.asyncio
    async def test_agent_not_found(self, build, context, audit_log):
        result = await build().execute_agent("ghost", "x", context)
        assert result.is_failure()
        assert isinstance(result.error, AgentNotFoundError)
        assert audit_log.records == []

    @pytest.mark.asyncio
    async def test_exhausted_budget_short_circuits(self, build, make_agent, audit_log):
        agent = make_agent("spy")
        orch = build(agent)
        ctx = AgentContext(session_id="s", budget=0.01)
        ctx.record_cost(CostEntry(cost=0.01))

        result = await orch.execute_agent("spy", "x", ctx)

        assert result.is_failure()
        assert isinstance(result.error, BudgetExceededError)
        assert agent.call_count == 0
        assert result.trace is not None and result.trace.is_completed
        assert len(audit_log.records) == 1
        assert audit_log.records[0].success is False

    @pytest.mark.asyncio
    async def test_budget_enforcement_off(self, build, make_agent):
        agent = make_agent("spy")
        ctx = AgentContext(session_id="s", budget=0.01)
        ctx.record_cost(CostEntry(cost=0.02))
        result = await build(agent, budget_enforcement=False).execute_agent("spy", "x", ctx)
        assert result.is_success()
        assert agent.call_count == 1

    @pytest.mark.asyncio
    async def test_cost_recorded_on_context(self, build, make_agent, context):
        orch = build(make_agent("paid", cost=0.25))
        await orch.execute_agent("paid", "x", context)
        assert context.total_cost == pytest.approx(0.25)
        assert context.costs[0].source == "paid"

    @pytest.mark.asyncio
    async def test_budget_exhausted_by_previous_call(self, build, make_agent):
        agent = make_agent("paid", cost=0.6)
        orch = build(agent)
        ctx = AgentContext(session_id="s", budget=1.0)
        assert (await orch.execute_agent("paid", "x", ctx)).is_success()
        assert (await orch.execute_agent("paid", "x", ctx)).is_success()
        third = await orch.execute_agent("paid", "x", ctx)
        assert isinstance(third.error, BudgetExceededError)
        assert agent.call_count == 2
        # overshoot bounded by the single execution that exhausted the budget
        assert ctx.total_cost - ctx.budget <= 0.6

    @pytest.mark.asyncio
    async def test_binds_context(self, build, make_agent, context):
        agent = make_agent("a")
        await build(agent).execute_agent("a", "x", context)
        assert agent.bound_context is context


class TestRetry:
    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, build, make_agent, context, recorded_sleeps, audit_log):
        agent = make_agent("flaky", fail_times=2)
        result = await build(agent).execute_agent("flaky", "x", context)
        assert result.is_success()
        assert agent.call_count == 3
        assert recorded_sleeps == [1.0, 2.0]
        assert len(audit_log.records) == 1
        assert result.trace.count_steps_by_type() == {"agent": 3}

    @pytest.mark.asyncio
    async def test_exhausted_surfaces_last_error(self, build, make_agent, context, recorded_sleeps, audit_log):
        agent = make_agent("broken", fail=True)
        result = await build(agent, max_retries=4).execute_agent("broken", "x", context)
        assert result.is_failure()
        assert str(result.error) == "broken failed"
        assert agent.call_count == 5
        assert recorded_sleeps == [1.0, 2.0, 4.0, 8.0]
        assert len(audit_log.records) == 1

    @pytest.mark.asyncio
    async def test_auto_retry_off(self, build, make_agent, context):
        agent = make_agent("broken", fail=True)
        await build(agent, auto_retry=False).execute_agent("broken", "x", context)
        assert agent.call_count == 1

    @pytest.mark.asyncio
    async def test_backoff_cap(self, build, make_agent, context, recorded_sleeps):
        agent = make_agent("broken", fail=True)
        await build(agent, max_retries=5).execute_agent("broken", "x", context)
        assert recorded_sleeps == [1.0, 2.0, 4.0, 8.0, 10.0]


class TestAudit:
    @pytest.mark.asyncio
    async def test_audit_disabled(self, build, make_agent, context, audit_log):
        await build(make_agent("a"), audit_enabled=False).execute_agent("a", "x", context)
        assert audit_log.records == []

    @pytest.mark.asyncio
    async def test_audit_failure_swallowed(self, make_agent, context):
        failing = AsyncMock()
        failing.log_execution = AsyncMock(side_effect=OSError("disk full"))
        orch = AgentOrchestrator(InMemoryAgentRepository([make_agent("a")]), failing)
        result = await orch.execute_agent("a", "x", context)
        assert result.is_success()
        failing.log_execution.assert_awaited_once()


class TestMultiAgent:
    @pytest.mark.asyncio
    async def test_sequential_feeds_values(self, build, make_agent, context):
        a = make_agent("a", fn=lambda x: x + 1)
        b = make_agent("b", fn=lambda x: x * 10)
        result = await build(auto_retry=False).execute_sequential([a, b], 1, context)
        assert result.value == 20

    @pytest.mark.asyncio
    async def test_sequential_stops_at_failure(self, build, make_agent, context):
        a, b, c = make_agent("a"), make_agent("b", fail=True), make_agent("c")
        result = await build(auto_retry=False).execute_sequential([a, b, c], "x", context)
        assert result.is_failure()
        assert c.call_count == 0

    @pytest.mark.asyncio
    async def test_sequential_empty(self, build, context):
        result = await build().execute_sequential([], "x", context)
        assert result.value == "x"
        assert len(result.warnings) == 1

    @pytest.mark.asyncio
    async def test_parallel_no_short_circuit(self, build, make_agent, context):
        a = make_agent("a", fail=True)
        b = make_agent("b", fn=str.upper)
        results = await build(auto_retry=False).execute_parallel([a, b], "x", context)
        assert len(results) == 2
        assert results[0].is_failure()
        assert results[1].is_success()
        assert results[1].value == "X"

    @pytest.mark.asyncio
    async def test_parallel_preserves_order(self, build, make_agent, context):
        slow = make_agent("slow", fn=lambda _: "slow", delay=0.05)
        fast = make_agent("fast", fn=lambda _: "fast")
        results = await build().execute_parallel([slow, fast], "x", context)
        assert [r.value for r in results] == ["slow", "fast"]

    @pytest.mark.asyncio
    async def test_delegate_uses_bound_context(self, build, make_agent, context):
        parent, child = make_agent("parent"), make_agent("child", fn=str.upper)
        parent.bind_context(context)
        result = await build().delegate_to_agent(parent, child, "hi")
        assert result.value == "HI"
        assert child.bound_context is context

    @pytest.mark.asyncio
    async def test_delegate_without_context_fails_fast(self, build, make_agent):
        child = make_agent("child")
        result = await build().delegate_to_agent(make_agent("parent"), child, "hi")
        assert result.is_failure()
        assert isinstance(result.error, DelegationError)
        assert child.call_count == 0

    @pytest.mark.asyncio
    async def test_sequential_single_agent(self, build, make_agent, context):
        result = await build().execute_sequential([make_agent("only", fn=str.upper)], "x", context)
        assert result.is_success()
        assert result.value == "X"
        assert result.trace is not None


class TestSharedBudget:
    @pytest.mark.asyncio
    async def test_parallel_overshoot_bounded_by_one_execution(self, build, make_agent):
        agents = [make_agent(f"a{i}", cost=0.6, delay=0.01) for i in range(3)]
        ctx = AgentContext(session_id="s", budget=1.0)

        results = await build(*agents, auto_retry=False).execute_parallel(agents, "x", ctx)

        assert [r.is_success() for r in results] == [True, True, False]
        assert isinstance(results[2].error, BudgetExceededError)
        assert agents[2].call_count == 0
        assert ctx.total_cost == pytest.approx(1.2)
        assert ctx.total_cost - ctx.budget <= 0.6

    @pytest.mark.asyncio
    async def test_parallel_without_budget_stays_concurrent(self, build, make_agent, context):
        agents = [make_agent(f"a{i}", delay=0.1) for i in range(3)]
        start = time.monotonic()
        results = await build(*agents).execute_parallel(agents, "x", context)
        assert all(r.is_success() for r in results)
        assert time.monotonic() - start < 0.25

    @pytest.mark.asyncio
    async def test_delegation_inside_budgeted_execution(self, build, make_agent):
        child = make_agent("child", fn=str.upper, cost=0.1)

        class Coordinator(BaseAgent[str, str]):
            orchestrator: AgentOrchestrator | None = None

            @property
            def name(self): return "coordinator"
            @property
            def version(self): return "1.0.0"
            @property
            def description(self): return "Delegates to the child agent"

            async def execute(self, input, context):
                delegated = await self.orchestrator.delegate_to_agent(self, child, input)
                return delegated.value + "!"

        coordinator = Coordinator()
        orch = build(coordinator, child)
        coordinator.orchestrator = orch
        ctx = AgentContext(session_id="s", budget=5.0)

        result = await asyncio.wait_for(orch.execute_agent("coordinator", "hi", ctx), 1.0)

        assert result.value == "HI!"
        assert ctx.total_cost == pytest.approx(0.1)
