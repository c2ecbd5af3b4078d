# src/core/errors.py — v1
"""Error taxonomy for agent execution, orchestration and tool dispatch.

Every fault raised by an agent body is caught at the engine boundary and
carried inside a Failure result; these classes give those failures a type
so that retry decisions can be made on data instead of catch clauses.

Retryable:      ExecutionFailure, ExecutionTimeoutError, AgentTimeoutError
Never retried:  AgentNotFoundError, BudgetExceededError, DelegationError
Reported only:  ToolTimeoutError (inside a failed ToolCallResult)
"""

from __future__ import annotations


class StratagentError(Exception):
    """Root of all errors raised by this package."""

    retryable: bool = False


class ExecutionFailure(StratagentError):
    """Generic execution failure raised or returned by an agent body."""

    retryable = True

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class AgentNotFoundError(StratagentError):
    """Agent lookup in the registry failed."""

    def __init__(self, agent_id: str) -> None:
        self.agent_id = agent_id
        super().__init__(f"Agent not found: {agent_id}")


class BudgetExceededError(StratagentError):
    """Context budget is exhausted (or a debit would exhaust it)."""

    def __init__(
        self,
        message: str = "Budget exceeded",
        budget: float | None = None,
        spent: float | None = None,
    ) -> None:
        self.budget = budget
        self.spent = spent
        super().__init__(message)


class ExecutionTimeoutError(StratagentError):
    """Advisory execution deadline was exceeded."""

    retryable = True

    def __init__(self, timeout_ms: float, message: str | None = None) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(message or f"Execution timeout after {timeout_ms:g}ms")


class AgentTimeoutError(ExecutionTimeoutError):
    """A single agent call lost the race against its per-attempt timer."""

    def __init__(self, timeout_ms: float) -> None:
        super().__init__(
            timeout_ms, f"Agent execution exceeded timeout of {timeout_ms:g}ms"
        )


class ToolTimeoutError(StratagentError):
    """A tool dispatch lost the race against its per-call timer."""

    def __init__(self, timeout_ms: float) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Tool execution timed out after {timeout_ms:g}ms")


class DelegationError(StratagentError):
    """Delegation could not be performed (e.g. no bound context)."""


class NoDelegateFoundError(DelegationError):
    """No agent matched the delegation selector."""

    def __init__(self, message: str = "No suitable agent found for delegation") -> None:
        super().__init__(message)


class TraceAlreadyCompletedError(StratagentError):
    """An ExecutionTrace was sealed twice or modified after sealing."""


def is_retryable(error: BaseException | None) -> bool:
    """Classify an error for the orchestrator retry loop.

    Typed package errors carry their own flag. Any other exception came
    from an agent body and counts as a generic, retryable execution failure.
    A missing error is never retried.
    """
    if error is None:
        return False
    if isinstance(error, StratagentError):
        return error.retryable
    return True
