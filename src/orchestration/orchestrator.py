# src/orchestration/orchestrator.py — v1
"""AgentOrchestrator — registry, budget, retry, audit and multi-agent dispatch.

execute_agent flow:
  1. look up the agent (miss → Failure(AgentNotFoundError), never retried)
  2. budget check (exhausted → Failure(BudgetExceededError), agent not
     invoked); steps 2-4 hold the context spend lock when a budget is set
  3. open a trace, bind the context, run the engine (optionally retried)
  4. record the result cost on the context
  5. seal the trace, attach it to the result, write one AuditRecord

Callers always receive an ExecutionResult; nothing raised by an agent
body or an audit sink escapes.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator

from stratagent.audit.models import AuditRecord, generate_execution_id
from stratagent.core.errors import (
    AgentNotFoundError,
    BudgetExceededError,
    DelegationError,
)
from stratagent.core.models import AgentIdentity, CostEntry, ExecutionMetadata
from stratagent.execution.config import ExecutionConfig
from stratagent.execution.engine import ExecutionEngine
from stratagent.execution.result import ExecutionResult
from stratagent.execution.retry import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    RetryPolicy,
    Sleep,
    run_with_retry,
)
from stratagent.execution.trace import ExecutionTrace
from stratagent.logging.context import log_context

if TYPE_CHECKING:
    from stratagent.agents.base_agent import BaseAgent
    from stratagent.agents.repository import AgentRepository
    from stratagent.audit.audit_log import BaseAuditLog
    from stratagent.config.settings import Settings
    from stratagent.core.context import AgentContext
    from stratagent.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# ids of the contexts whose spend lock the current task already holds
_held_budget_gates: ContextVar[frozenset[int]] = ContextVar(
    "stratagent_held_budget_gates", default=frozenset()
)


@dataclass(frozen=True)
class OrchestratorOptions:
    """Orchestrator behaviour switches.

    max_execution_time_ms is passed to the engine as the per-attempt timeout.
    """

    audit_enabled: bool = True
    budget_enforcement: bool = True
    auto_retry: bool = True
    max_retries: int = 3
    max_execution_time_ms: float | None = None
    retry_base_delay_ms: float = DEFAULT_BASE_DELAY_MS
    retry_max_delay_ms: float = DEFAULT_MAX_DELAY_MS

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")

    @classmethod
    def from_settings(cls, settings: Settings) -> OrchestratorOptions:
        return cls(
            audit_enabled=settings.audit_enabled,
            budget_enforcement=settings.budget_enforcement,
            auto_retry=settings.auto_retry,
            max_retries=settings.max_retries,
            max_execution_time_ms=settings.max_execution_time_ms,
            retry_base_delay_ms=settings.retry_base_delay_ms,
            retry_max_delay_ms=settings.retry_max_delay_ms,
        )

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay_ms=self.retry_base_delay_ms,
            max_delay_ms=self.retry_max_delay_ms,
        )


def _snapshot(value: Any) -> Any:
    """JSON-safe copy of an input/output for the audit record."""
    try:
        return json.loads(json.dumps(value, default=str))
    except (TypeError, ValueError):
        return repr(value)


class AgentOrchestrator:
    """Runs registered agents with budget enforcement, retry and audit.

    Args:
        repository: Agent store used as the registry.
        audit_log: Append-only sink; one record per execute_agent call.
        llm_client: Optional shared provider handed to agents that want it.
        options: Behaviour switches (defaults: audit, budget and retry on).
        engine: Engine used for every attempt (default: new ExecutionEngine).
        sleep: Awaitable sleep used for retry backoff (injectable for tests).
    """

    def __init__(
        self,
        repository: AgentRepository,
        audit_log: BaseAuditLog,
        llm_client: BaseLLMClient | None = None,
        options: OrchestratorOptions | None = None,
        engine: ExecutionEngine | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._repository = repository
        self._audit_log = audit_log
        self._llm_client = llm_client
        self._options = options or OrchestratorOptions()
        self._engine = engine or ExecutionEngine()
        self._sleep = sleep

    @property
    def options(self) -> OrchestratorOptions:
        return self._options

    @property
    def llm_client(self) -> BaseLLMClient | None:
        return self._llm_client

    @property
    def repository(self) -> AgentRepository:
        return self._repository

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_agent(self, agent: BaseAgent[Any, Any]) -> AgentIdentity:
        self._repository.save(agent)
        logger.info("Registered agent %s (%s)", agent.name, agent.identity.value)
        return agent.identity

    def unregister_agent(self, agent_id: AgentIdentity | str) -> bool:
        removed = self._repository.delete(agent_id)
        if removed:
            logger.info("Unregistered agent %s", agent_id)
        return removed

    def get_agent(self, agent_id: AgentIdentity | str) -> BaseAgent[Any, Any] | None:
        return self._repository.find_by_id(agent_id)

    def list_agents(self) -> list[BaseAgent[Any, Any]]:
        return self._repository.find_all()

    # ------------------------------------------------------------------
    # Single-agent execution
    # ------------------------------------------------------------------

    async def execute_agent(
        self,
        agent_id: AgentIdentity | str,
        input: Any,
        context: AgentContext,
    ) -> ExecutionResult[Any]:
        """Execute a registered agent. Never raises for agent faults."""
        agent = self._repository.find_by_id(agent_id)
        if agent is None:
            key = agent_id.value if isinstance(agent_id, AgentIdentity) else agent_id
            logger.warning("Agent not found: %s", key)
            return ExecutionResult.failure(
                AgentNotFoundError(key), ExecutionMetadata(stage="lookup")
            )
        return await self._run(agent, input, context)

    async def _run(
        self,
        agent: BaseAgent[Any, Any],
        input: Any,
        context: AgentContext,
    ) -> ExecutionResult[Any]:
        execution_id = generate_execution_id()
        with log_context(
            session_id=context.session_id,
            execution_id=execution_id,
            agent=agent.name,
        ):
            trace = ExecutionTrace.start(
                agent.identity.value,
                session_id=context.session_id,
                user_id=context.user_id,
                execution_id=execution_id,
            )

            async with self._budget_gate(context):
                if self._options.budget_enforcement and context.is_budget_exceeded():
                    logger.warning(
                        "Budget exhausted for session %s (spent %.4f of %s), skipping %s",
                        context.session_id, context.total_cost, context.budget, agent.name,
                    )
                    result: ExecutionResult[Any] = ExecutionResult.failure(
                        BudgetExceededError(
                            budget=context.budget, spent=context.total_cost
                        ),
                        ExecutionMetadata(
                            model=agent.model_name, duration_ms=0.0, stage="budget"
                        ),
                    )
                else:
                    agent.bind_context(context)
                    result = await self._execute_with_policy(agent, input, context, trace)
                    self._record_cost(agent, result, context)

            trace.complete()
            result = result.with_trace(trace)
            await self._audit(agent, input, result, context, trace, execution_id)

        logger.info(
            "Agent %s finished: success=%s duration=%.1fms",
            agent.name, result.is_success(), trace.duration_ms or 0.0,
        )
        return result

    async def _execute_with_policy(
        self,
        agent: BaseAgent[Any, Any],
        input: Any,
        context: AgentContext,
        trace: ExecutionTrace,
    ) -> ExecutionResult[Any]:
        config = ExecutionConfig(timeout_ms=self._options.max_execution_time_ms)

        async def attempt(number: int) -> ExecutionResult[Any]:
            result = await self._engine.execute(agent, input, context, config)
            trace.record_step(
                f"{agent.name}#attempt{number}",
                step_type="agent",
                duration_ms=result.metadata.duration_ms,
                error=result.error_message,
                cost=result.metadata.cost,
                total_tokens=result.metadata.usage.total_tokens if result.metadata.usage else None,
            )
            return result

        if not self._options.auto_retry or self._options.max_retries == 0:
            return await attempt(1)

        result, retries = await run_with_retry(
            attempt, self._options.retry_policy, label=agent.name, sleep=self._sleep
        )
        if retries:
            trace.metadata["retries"] = retries
        return result

    @asynccontextmanager
    async def _budget_gate(self, context: AgentContext) -> AsyncIterator[None]:
        """Hold the context's spend lock from budget check to cost recording.

        Executions sharing a budgeted context run one at a time, so spending
        can pass the budget by at most one execution's cost. Nested runs on
        a context already held by this task (delegation from inside an agent
        body) pass straight through.
        """
        held = _held_budget_gates.get()
        key = id(context)
        if not self._options.budget_enforcement or context.budget is None or key in held:
            yield
            return
        async with context.spend_lock:
            token = _held_budget_gates.set(held | {key})
            try:
                yield
            finally:
                _held_budget_gates.reset(token)

    def _record_cost(
        self,
        agent: BaseAgent[Any, Any],
        result: ExecutionResult[Any],
        context: AgentContext,
    ) -> None:
        cost = result.metadata.cost
        if not cost:
            return
        context.record_cost(
            CostEntry(
                cost=cost,
                model=result.metadata.model,
                usage=result.metadata.usage,
                source=agent.name,
            )
        )

    async def _audit(
        self,
        agent: BaseAgent[Any, Any],
        input: Any,
        result: ExecutionResult[Any],
        context: AgentContext,
        trace: ExecutionTrace,
        execution_id: str,
    ) -> None:
        if not self._options.audit_enabled:
            return
        try:
            record = AuditRecord(
                execution_id=execution_id,
                agent_id=agent.identity.value,
                agent_name=agent.name,
                agent_version=agent.version,
                session_id=context.session_id,
                user_id=context.user_id,
                input=_snapshot(input),
                output=_snapshot(result.value) if result.is_success() else None,
                success=result.is_success(),
                error=result.error_message,
                start_time=trace.start_time,
                end_time=trace.end_time or trace.start_time,
                duration_ms=trace.duration_ms or 0.0,
                cost=result.metadata.cost or 0.0,
                total_tokens=result.metadata.usage.total_tokens if result.metadata.usage else 0,
                trace=_snapshot(trace.to_dict()),
            )
            await self._audit_log.log_execution(record)
        except Exception:
            logger.exception("Failed to write audit record for %s", agent.name)

    # ------------------------------------------------------------------
    # Multi-agent execution
    # ------------------------------------------------------------------

    async def execute_sequential(
        self,
        agents: list[BaseAgent[Any, Any]],
        input: Any,
        context: AgentContext,
    ) -> ExecutionResult[Any]:
        """Feed each success's value to the next agent; stop at the first failure."""
        if not agents:
            return ExecutionResult.success(
                input, ExecutionMetadata(stage="sequential"),
                ["No agents to execute, returning input unchanged"],
            )

        last = await self._run(agents[0], input, context)
        warnings: list[str] = []
        for agent in agents[1:]:
            if last.is_failure():
                return last
            warnings.extend(last.warnings)
            last = await self._run(agent, last.value, context)
        if last.is_failure():
            return last
        warnings.extend(last.warnings)

        return ExecutionResult(
            ok=True,
            value=last.value,
            metadata=last.metadata,
            warnings=tuple(warnings),
            partial=last.partial,
            trace=last.trace,
        )

    async def execute_parallel(
        self,
        agents: list[BaseAgent[Any, Any]],
        input: Any,
        context: AgentContext,
    ) -> list[ExecutionResult[Any]]:
        """Fan out the same input; results keep the order of ``agents``.

        With budget enforcement on and a budget set on ``context``, the
        executions are serialized by the budget gate.
        """
        return list(
            await asyncio.gather(*(self._run(agent, input, context) for agent in agents))
        )

    async def delegate_to_agent(
        self,
        from_agent: BaseAgent[Any, Any],
        to_agent: BaseAgent[Any, Any],
        input: Any,
    ) -> ExecutionResult[Any]:
        """Run ``to_agent`` in the context bound to ``from_agent``."""
        context = from_agent.bound_context
        if context is None:
            return ExecutionResult.failure(
                DelegationError(
                    f"Agent {from_agent.name} has no bound context to delegate with"
                ),
                ExecutionMetadata(stage="delegation"),
            )
        logger.debug("Delegating from %s to %s", from_agent.name, to_agent.name)
        return await self._run(to_agent, input, context)
