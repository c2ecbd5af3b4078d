# src/logging/context.py — v1
"""Contextual logging support — attach session, execution, agent and step
to every log record emitted while an orchestrated execution runs.

Values live in contextvars, so concurrent executions (asyncio tasks) each
see their own context.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

_session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_id", default=None
)
_execution_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "execution_id", default=None
)
_agent: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "agent", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)

_VARS: dict[str, contextvars.ContextVar[str | None]] = {
    "session_id": _session_id,
    "execution_id": _execution_id,
    "agent": _agent,
    "step": _step,
}


@dataclass(frozen=True)
class LogContext:
    """Immutable snapshot of current logging context."""

    session_id: str | None = None
    execution_id: str | None = None
    agent: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(**{name: var.get() for name, var in _VARS.items()})


def set_execution_context(session_id: str, execution_id: str | None = None) -> None:
    """Set request-level context (once per orchestrated execution)."""
    _session_id.set(session_id)
    _execution_id.set(execution_id)


def set_agent_context(agent: str, step: str | None = None) -> None:
    """Set agent-level context (per agent execution / pipeline stage)."""
    _agent.set(agent)
    _step.set(step)


@contextmanager
def log_context(**values: str | None) -> Iterator[LogContext]:
    """Temporarily override context fields, restoring them on exit.

    Usage:
        with log_context(agent="summarizer", step="stage 1/3"):
            ...
    """
    unknown = set(values) - set(_VARS)
    if unknown:
        raise ValueError(f"Unknown log context fields: {sorted(unknown)}")
    tokens = [(_VARS[name], _VARS[name].set(value)) for name, value in values.items()]
    try:
        yield get_context()
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    for var in _VARS.values():
        var.set(None)
