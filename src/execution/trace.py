# src/execution/trace.py — v1
"""ExecutionTrace — timing and cost record of one orchestrated execution.

A trace is opened at dispatch, accumulates ordered sub-steps (LLM calls,
tool calls, agent attempts) and is sealed exactly once by complete().
After sealing it is attached read-only to the result.
"""

from __future__ import annotations

import random
import string
import time
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, PrivateAttr

from stratagent.core.errors import TraceAlreadyCompletedError

StepType = Literal["llm", "tool", "agent", "step"]


def generate_trace_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))  # noqa: S311
    return f"trace_{int(time.time() * 1000)}_{suffix}"


class TraceStep(BaseModel):
    """One recorded sub-step of an execution."""

    name: str
    type: StepType = "step"
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    duration_ms: float | None = None
    input: Any = None
    output: Any = None
    error: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def cost(self) -> float | None:
        value = self.metadata.get("cost")
        return float(value) if value is not None else None

    @property
    def total_tokens(self) -> int | None:
        value = self.metadata.get("total_tokens")
        return int(value) if value is not None else None


class ExecutionTrace(BaseModel):
    """Mutable execution record, sealed by complete()."""

    trace_id: str = Field(default_factory=generate_trace_id)
    agent_id: str
    session_id: str | None = None
    user_id: str | None = None
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    duration_ms: float | None = None
    steps: list[TraceStep] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    _started_at: float = PrivateAttr(default_factory=time.monotonic)

    @classmethod
    def start(
        cls,
        agent_id: str,
        session_id: str | None = None,
        user_id: str | None = None,
        **metadata: Any,
    ) -> ExecutionTrace:
        return cls(
            agent_id=agent_id,
            session_id=session_id,
            user_id=user_id,
            metadata=metadata,
        )

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None

    def add_step(self, step: TraceStep) -> None:
        if self.is_completed:
            raise TraceAlreadyCompletedError(
                f"Cannot add step '{step.name}' to completed trace {self.trace_id}"
            )
        self.steps.append(step)

    def record_step(
        self,
        name: str,
        step_type: StepType = "step",
        duration_ms: float | None = None,
        error: str | None = None,
        **metadata: Any,
    ) -> TraceStep:
        """Build and append a finished step ending now."""
        end = datetime.now(timezone.utc)
        start = end - timedelta(milliseconds=duration_ms) if duration_ms else end
        step = TraceStep(
            name=name,
            type=step_type,
            start_time=start,
            end_time=end,
            duration_ms=duration_ms,
            error=error,
            metadata=metadata,
        )
        self.add_step(step)
        return step

    def complete(self) -> None:
        """Seal the trace. End time is derived from a monotonic clock so it
        never precedes the start time.

        Raises:
            TraceAlreadyCompletedError: If the trace was already sealed.
        """
        if self.is_completed:
            raise TraceAlreadyCompletedError(f"Trace {self.trace_id} already completed")
        elapsed_ms = max(0.0, (time.monotonic() - self._started_at) * 1000.0)
        self.duration_ms = elapsed_ms
        self.end_time = self.start_time + timedelta(milliseconds=elapsed_ms)

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def total_cost(self) -> float:
        return sum(s.cost for s in self.steps if s.cost is not None)

    def total_tokens(self) -> int:
        return sum(s.total_tokens for s in self.steps if s.total_tokens is not None)

    def find_steps_by_type(self, step_type: StepType) -> list[TraceStep]:
        return [s for s in self.steps if s.type == step_type]

    def count_steps_by_type(self) -> dict[str, int]:
        return dict(Counter(s.type for s in self.steps))

    def to_dict(self) -> dict[str, Any]:
        data = self.model_dump()
        data["total_cost"] = self.total_cost()
        data["total_tokens"] = self.total_tokens()
        return data
