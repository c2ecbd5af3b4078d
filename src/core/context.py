# src/core/context.py — v1
"""Per-invocation agent context: session, environment, messages, budget.

A context is owned by the caller and shared by reference across a
pipeline or delegation chain, so child agents observe the same budget.
Cost mutations are serialized through a lock; only the orchestrator
layer is expected to record costs.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Literal

from stratagent.core.errors import BudgetExceededError
from stratagent.core.models import CostEntry, TokenUsage
from stratagent.llm.models import Message

logger = logging.getLogger(__name__)

Environment = Literal["development", "staging", "production"]
_ENVIRONMENTS = ("development", "staging", "production")


class AgentContext:
    """Mutable execution context shared by every agent of one request.

    Args:
        session_id: Conversation / request session identifier.
        environment: Deployment environment tag.
        user_id: Optional end-user identifier (copied to audit records).
        metadata: Arbitrary caller metadata.
        budget: Optional spending limit in currency units (must be > 0).
        deadline_ms: Optional advisory deadline, relative to creation.
    """

    def __init__(
        self,
        session_id: str,
        environment: Environment = "development",
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        budget: float | None = None,
        deadline_ms: float | None = None,
    ) -> None:
        if environment not in _ENVIRONMENTS:
            raise ValueError(
                f"Invalid environment {environment!r}, expected one of {_ENVIRONMENTS}"
            )
        self.session_id = session_id
        self.environment = environment
        self.user_id = user_id
        self.metadata: dict[str, Any] = dict(metadata or {})
        self.timestamp = datetime.now(timezone.utc)
        self.deadline_ms = deadline_ms

        self._messages: list[Message] = []
        self._costs: list[CostEntry] = []
        self._budget: float | None = None
        self._start = time.monotonic()
        self._lock = threading.Lock()
        self._spend_lock: asyncio.Lock | None = None

        if budget is not None:
            self.set_budget(budget)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def add_message(self, message: Message) -> None:
        self._messages.append(message)

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def recent_messages(self, count: int) -> list[Message]:
        if count <= 0:
            return []
        return self._messages[-count:]

    def messages_by_role(self, role: str) -> list[Message]:
        return [m for m in self._messages if m.role == role]

    # ------------------------------------------------------------------
    # Budget
    # ------------------------------------------------------------------

    @property
    def budget(self) -> float | None:
        return self._budget

    def set_budget(self, budget: float) -> None:
        """Set the spending limit. Raises ValueError for non-positive values."""
        if budget <= 0:
            raise ValueError("Budget must be positive")
        with self._lock:
            self._budget = budget

    @property
    def costs(self) -> list[CostEntry]:
        return list(self._costs)

    @property
    def total_cost(self) -> float:
        with self._lock:
            return self._total_cost_locked()

    @property
    def total_tokens(self) -> int:
        with self._lock:
            return sum(c.usage.total_tokens for c in self._costs if c.usage)

    @property
    def remaining_budget(self) -> float | None:
        """Remaining budget clamped at zero, or None when no budget is set."""
        with self._lock:
            if self._budget is None:
                return None
            return max(0.0, self._budget - self._total_cost_locked())

    @property
    def spend_lock(self) -> asyncio.Lock:
        """Serializes budget-gated executions on this context."""
        if self._spend_lock is None:
            self._spend_lock = asyncio.Lock()
        return self._spend_lock

    def is_budget_exceeded(self) -> bool:
        with self._lock:
            if self._budget is None:
                return False
            return self._total_cost_locked() >= self._budget

    def can_afford(self, cost: float) -> bool:
        """True if spending ``cost`` keeps total spending within budget."""
        with self._lock:
            if self._budget is None:
                return True
            return self._total_cost_locked() + cost <= self._budget

    def record_cost(self, entry: CostEntry) -> None:
        """Append an already-incurred cost (no budget check)."""
        with self._lock:
            self._costs.append(entry)
        logger.debug(
            "Session %s recorded cost %.6f (%s)",
            self.session_id, entry.cost, entry.source or entry.model,
        )

    def debit(
        self,
        cost: float,
        model: str = "unknown",
        usage: TokenUsage | None = None,
        source: str = "",
    ) -> CostEntry:
        """Check-then-spend: refuse the debit once the budget is exhausted.

        The check happens before spending, so a single debit may overshoot
        the budget by at most its own cost.

        Raises:
            BudgetExceededError: If the budget was already exhausted.
        """
        if cost < 0:
            raise ValueError("Cost must be non-negative")
        entry = CostEntry(cost=cost, model=model, usage=usage, source=source)
        with self._lock:
            spent = self._total_cost_locked()
            if self._budget is not None and spent >= self._budget:
                raise BudgetExceededError(
                    f"Budget exhausted: spent {spent:.4f} of {self._budget:.4f}",
                    budget=self._budget,
                    spent=spent,
                )
            self._costs.append(entry)
        return entry

    def _total_cost_locked(self) -> float:
        return sum(c.cost for c in self._costs)

    # ------------------------------------------------------------------
    # Timing
    # ------------------------------------------------------------------

    @property
    def duration_ms(self) -> float:
        return (time.monotonic() - self._start) * 1000.0

    def is_past_deadline(self) -> bool:
        """Advisory: True once the optional deadline has elapsed."""
        if self.deadline_ms is None:
            return False
        return self.duration_ms >= self.deadline_ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "environment": self.environment,
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp.isoformat(),
            "budget": self._budget,
            "total_cost": self.total_cost,
            "message_count": len(self._messages),
        }

    def __repr__(self) -> str:
        return (
            f"AgentContext(session_id={self.session_id!r}, "
            f"environment={self.environment!r}, budget={self._budget!r})"
        )
