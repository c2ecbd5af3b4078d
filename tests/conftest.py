# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a configurable stub agent, contexts, a recording sleep for retry
backoff and a mock LLM client. No network I/O.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from stratagent.agents.base_agent import BaseAgent
from stratagent.core.context import AgentContext
from stratagent.core.models import ExecutionMetadata, TokenUsage
from stratagent.execution.result import ExecutionResult
from stratagent.llm.models import LLMResponse
from stratagent.logging.context import clear_context


class StubAgent(BaseAgent[Any, Any]):
    """Agent whose behaviour is driven by constructor arguments.

    Args:
        agent_name: Name (and default identity).
        fn: Transform applied to the input (default: identity).
        fail: Raise RuntimeError on every call.
        fail_times: Raise on the first N calls, then behave normally.
        cost: When set, return an ExecutionResult carrying this cost.
        delay: Seconds to sleep before answering.
        capabilities: Advertised capability tags.
    """

    def __init__(
        self,
        agent_name: str,
        fn: Callable[[Any], Any] | None = None,
        fail: bool = False,
        fail_times: int = 0,
        cost: float | None = None,
        delay: float = 0.0,
        capabilities: list[str] | None = None,
        error: BaseException | None = None,
    ) -> None:
        self._name = agent_name
        self._fn = fn or (lambda x: x)
        self._fail = fail
        self._fail_times = fail_times
        self._cost = cost
        self._delay = delay
        self._capabilities = list(capabilities or [])
        self._error = error
        self.calls: list[Any] = []

    @property
    def name(self): return self._name
    @property
    def version(self): return "1.0.0"
    @property
    def description(self): return f"Stub {self._name}"
    @property
    def model_name(self): return "stub-model"
    @property
    def capabilities(self): return self._capabilities

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def execute(self, input, context):
        self.calls.append(input)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail or len(self.calls) <= self._fail_times:
            raise self._error or RuntimeError(f"{self._name} failed")
        value = self._fn(input)
        if self._cost is not None:
            return ExecutionResult.success(
                value,
                ExecutionMetadata(
                    model="stub-model",
                    cost=self._cost,
                    usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
                ),
            )
        return value


@pytest.fixture
def make_agent() -> type[StubAgent]:
    """The StubAgent class, for building agents inside tests."""
    return StubAgent


@pytest.fixture
def context() -> AgentContext:
    return AgentContext(session_id="session-1", user_id="user-1")


@pytest.fixture
def recorded_sleeps() -> list[float]:
    return []


@pytest.fixture
def fake_sleep(recorded_sleeps: list[float]):
    """Awaitable sleep that records the requested seconds and returns at once."""

    async def _sleep(seconds: float) -> None:
        recorded_sleeps.append(seconds)

    return _sleep


@pytest.fixture
def sample_response() -> LLMResponse:
    return LLMResponse(
        content="ok",
        input_tokens=1000,
        output_tokens=500,
        model="gpt-4o-mini",
        provider="openai",
        latency_ms=120,
    )


@pytest.fixture
def mock_llm_client(sample_response: LLMResponse) -> AsyncMock:
    client = AsyncMock()
    client.complete = AsyncMock(return_value=sample_response)
    client.provider_name = "mock"
    return client


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()
