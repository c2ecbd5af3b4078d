# src/core/models.py — v1
"""Core value objects shared across execution, orchestration and audit.

AgentIdentity, TokenUsage, ExecutionMetadata, CostEntry.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Free-form capability tag advertised by an agent (e.g. "summarization").
AgentCapability = str


class AgentIdentity(BaseModel):
    """Opaque agent identifier plus human-readable name and version.

    Used as the registry key and for audit correlation.
    """

    model_config = ConfigDict(frozen=True)

    value: str
    name: str = ""
    version: str = "1.0.0"

    @classmethod
    def generate(cls, name: str, version: str = "1.0.0") -> AgentIdentity:
        """Create an identity with a fresh uuid4 value."""
        return cls(value=f"agent_{uuid.uuid4().hex}", name=name, version=version)

    def __str__(self) -> str:
        return self.value


class TokenUsage(BaseModel):
    """Token usage breakdown for one or more LLM calls."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def add(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class ExecutionMetadata(BaseModel):
    """Metadata attached to every ExecutionResult.

    Captures the model used, token usage, cost, duration and the stage
    in which the result was produced ("execution", "pipeline", ...).
    """

    model_config = ConfigDict(frozen=True)

    model: str = "unknown"
    usage: TokenUsage | None = None
    cost: float | None = None
    duration_ms: float | None = None
    stage: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def create(cls, model: str, **fields: Any) -> ExecutionMetadata:
        """Create metadata; unknown keyword fields land in ``extra``."""
        known = {k: v for k, v in fields.items() if k in cls.model_fields}
        extra = {k: v for k, v in fields.items() if k not in cls.model_fields}
        if extra:
            known["extra"] = {**known.get("extra", {}), **extra}
        return cls(model=model, **known)

    @staticmethod
    def merge(*metadatas: ExecutionMetadata) -> ExecutionMetadata:
        """Merge metadata left to right.

        Usage, cost and duration are summed; scalar fields from later
        entries override earlier ones.
        """
        if not metadatas:
            return ExecutionMetadata()

        model = "unknown"
        stage: str | None = None
        usage: TokenUsage | None = None
        cost = 0.0
        duration = 0.0
        extra: dict[str, Any] = {}

        for meta in metadatas:
            model = meta.model
            stage = meta.stage if meta.stage is not None else stage
            if meta.usage is not None:
                usage = meta.usage if usage is None else usage.add(meta.usage)
            cost += meta.cost or 0.0
            duration += meta.duration_ms or 0.0
            extra.update(meta.extra)

        return ExecutionMetadata(
            model=model,
            usage=usage,
            cost=cost,
            duration_ms=duration,
            stage=stage,
            extra=extra,
        )

    def summarize(self) -> dict[str, Any]:
        """Flat summary used in log lines and audit snapshots."""
        return {
            "model": self.model,
            "total_tokens": self.usage.total_tokens if self.usage else 0,
            "total_cost": self.cost or 0.0,
            "duration_ms": self.duration_ms or 0.0,
        }


class CostEntry(BaseModel):
    """One cost debit recorded against an AgentContext."""

    model_config = ConfigDict(frozen=True)

    cost: float
    model: str = "unknown"
    usage: TokenUsage | None = None
    source: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
