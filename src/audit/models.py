# src/audit/models.py — v1
"""Audit domain models: AuditRecord, ExecutionFilter, ExecutionStatistics."""

from __future__ import annotations

import random
import string
import time
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


def generate_execution_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))  # noqa: S311
    return f"exec_{int(time.time() * 1000)}_{suffix}"


class AuditRecord(BaseModel):
    """One row per orchestrated execution. Append-only."""

    execution_id: str = Field(default_factory=generate_execution_id)
    agent_id: str
    agent_name: str
    agent_version: str
    session_id: str
    user_id: str | None = None
    input: Any = None
    output: Any = None
    success: bool
    error: str | None = None
    start_time: datetime
    end_time: datetime
    duration_ms: float = 0.0
    cost: float = 0.0
    total_tokens: int = 0
    trace: dict[str, Any] | None = None


class ExecutionFilter(BaseModel):
    """Query filter over audit records. Unset fields match everything."""

    agent_id: str | None = None
    session_id: str | None = None
    user_id: str | None = None
    success: bool | None = None
    start_after: datetime | None = None
    start_before: datetime | None = None
    min_cost: float | None = None
    max_cost: float | None = None
    min_duration_ms: float | None = None
    max_duration_ms: float | None = None
    limit: int | None = None

    def matches(self, record: AuditRecord) -> bool:
        if self.agent_id is not None and record.agent_id != self.agent_id:
            return False
        if self.session_id is not None and record.session_id != self.session_id:
            return False
        if self.user_id is not None and record.user_id != self.user_id:
            return False
        if self.success is not None and record.success != self.success:
            return False
        if self.start_after is not None and record.start_time < self.start_after:
            return False
        if self.start_before is not None and record.start_time > self.start_before:
            return False
        if self.min_cost is not None and record.cost < self.min_cost:
            return False
        if self.max_cost is not None and record.cost > self.max_cost:
            return False
        if self.min_duration_ms is not None and record.duration_ms < self.min_duration_ms:
            return False
        if self.max_duration_ms is not None and record.duration_ms > self.max_duration_ms:
            return False
        return True


class ExecutionStatistics(BaseModel):
    """Aggregates over a set of audit records."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    average_duration_ms: float = 0.0
    total_cost: float = 0.0
    average_cost: float = 0.0

    @property
    def success_rate(self) -> float:
        if self.total_executions == 0:
            return 0.0
        return self.successful_executions / self.total_executions

    @classmethod
    def from_records(cls, records: list[AuditRecord]) -> ExecutionStatistics:
        total = len(records)
        if total == 0:
            return cls()
        successes = sum(1 for r in records if r.success)
        total_cost = sum(r.cost for r in records)
        return cls(
            total_executions=total,
            successful_executions=successes,
            failed_executions=total - successes,
            average_duration_ms=sum(r.duration_ms for r in records) / total,
            total_cost=total_cost,
            average_cost=total_cost / total,
        )
