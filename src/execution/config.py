# src/execution/config.py — v1
"""ExecutionConfig — per-call knobs for the ExecutionEngine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from stratagent.execution.retry import RetryPolicy

MAX_TIMEOUT_MS = 600_000


@dataclass(frozen=True)
class ExecutionConfig:
    """Execution configuration.

    Attributes:
        timeout_ms: Per-attempt timeout; None disables the timer.
        retry: Engine-level retry policy; None runs exactly once.
        metadata: Free-form request metadata (request id, priority...).
    """

    timeout_ms: float | None = None
    retry: RetryPolicy | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def validate(self) -> list[str]:
        """Return validation errors (empty if valid)."""
        errors: list[str] = []
        if self.timeout_ms is not None and self.timeout_ms <= 0:
            errors.append("Timeout must be positive")
        if self.timeout_ms is not None and self.timeout_ms > MAX_TIMEOUT_MS:
            errors.append(f"Timeout cannot exceed 10 minutes ({MAX_TIMEOUT_MS}ms)")
        return errors

    def is_valid(self) -> bool:
        return not self.validate()

    def merge(self, **overrides: Any) -> ExecutionConfig:
        """Return a copy with overrides applied; metadata dicts are merged."""
        metadata = {**self.metadata, **overrides.pop("metadata", {})}
        return replace(self, metadata=metadata, **overrides)
