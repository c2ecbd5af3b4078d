# src/execution/result.py — v1
"""ExecutionResult — immutable outcome of one agent execution.

Tagged union of Success / Partial / Failure carrying the value or the
error plus ExecutionMetadata and warnings. Results are frozen; every
transformation returns a new instance.

    ok = ExecutionResult.success({"answer": "hi"}, ExecutionMetadata(model="gpt-4o"))
    bad = ExecutionResult.failure(TimeoutError("API timeout"), ExecutionMetadata(model="gpt-4o"))
    part = ExecutionResult.partial("Partial...", meta, ["Response truncated"])
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, Iterable, TypeVar

from stratagent.core.errors import ExecutionFailure
from stratagent.core.models import ExecutionMetadata

if TYPE_CHECKING:
    from stratagent.execution.trace import ExecutionTrace

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class ExecutionResult(Generic[T]):
    """Outcome of an execution. Use the factory classmethods to build one."""

    ok: bool
    value: T | None = None
    error: BaseException | None = None
    metadata: ExecutionMetadata = field(default_factory=ExecutionMetadata)
    warnings: tuple[str, ...] = ()
    partial: bool = False
    trace: ExecutionTrace | None = None

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    def success(
        cls,
        value: T,
        metadata: ExecutionMetadata | None = None,
        warnings: Iterable[str] = (),
    ) -> ExecutionResult[T]:
        return cls(
            ok=True,
            value=value,
            metadata=metadata or ExecutionMetadata(),
            warnings=tuple(warnings),
        )

    @classmethod
    def partial_result(
        cls,
        value: T,
        metadata: ExecutionMetadata | None,
        warnings: Iterable[str],
    ) -> ExecutionResult[T]:
        """Usable but flagged result. At least one warning is required."""
        warnings = tuple(warnings)
        if not warnings:
            raise ValueError("Partial results must have at least one warning")
        return cls(
            ok=True,
            value=value,
            metadata=metadata or ExecutionMetadata(),
            warnings=warnings,
            partial=True,
        )

    @classmethod
    def failure(
        cls,
        error: BaseException | None,
        metadata: ExecutionMetadata | None = None,
        partial_value: T | None = None,
    ) -> ExecutionResult[T]:
        return cls(
            ok=False,
            value=partial_value,
            error=error,
            metadata=metadata or ExecutionMetadata(),
            partial=partial_value is not None,
        )

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def is_success(self) -> bool:
        return self.ok

    def is_failure(self) -> bool:
        return not self.ok

    def is_partial(self) -> bool:
        return self.partial

    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def error_message(self) -> str | None:
        if self.ok:
            return None
        return str(self.error) if self.error is not None else "Execution failed"

    # ------------------------------------------------------------------
    # Unwrapping
    # ------------------------------------------------------------------

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if not self.ok:
            raise self.error if self.error is not None else ExecutionFailure(
                "Execution failed without an error"
            )
        return self.value  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default  # type: ignore[return-value]

    def unwrap_or_else(self, fn: Callable[[BaseException | None], T]) -> T:
        return self.value if self.ok else fn(self.error)  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Combinators
    # ------------------------------------------------------------------

    def map(self, fn: Callable[[T], U]) -> ExecutionResult[U]:
        """Map the success value. A raising ``fn`` yields a Failure."""
        if not self.ok:
            return ExecutionResult.failure(self.error, self.metadata)
        try:
            mapped = fn(self.value)  # type: ignore[arg-type]
        except Exception as exc:
            return ExecutionResult.failure(exc, self.metadata)
        return ExecutionResult(
            ok=True,
            value=mapped,
            metadata=self.metadata,
            warnings=self.warnings,
            partial=self.partial,
            trace=self.trace,
        )

    def flat_map(self, fn: Callable[[T], ExecutionResult[U]]) -> ExecutionResult[U]:
        if not self.ok:
            return ExecutionResult.failure(self.error, self.metadata)
        try:
            return fn(self.value)  # type: ignore[arg-type]
        except Exception as exc:
            return ExecutionResult.failure(exc, self.metadata)

    def map_error(self, fn: Callable[[BaseException | None], BaseException]) -> ExecutionResult[T]:
        if self.ok:
            return self
        return replace(self, error=fn(self.error))

    def tap(self, fn: Callable[[T], Any]) -> ExecutionResult[T]:
        if self.ok:
            fn(self.value)  # type: ignore[arg-type]
        return self

    def tap_error(self, fn: Callable[[BaseException | None], Any]) -> ExecutionResult[T]:
        if not self.ok:
            fn(self.error)
        return self

    def recover(self, fn: Callable[[BaseException | None], T]) -> ExecutionResult[T]:
        """Turn a Failure into a Success using a fallback computed from the error."""
        if self.ok:
            return self
        try:
            fallback = fn(self.error)
        except Exception as exc:
            return ExecutionResult.failure(exc, self.metadata)
        return ExecutionResult.success(
            fallback, self.metadata, [f"Recovered from error: {self.error_message}"]
        )

    def with_warnings(self, *warnings: str) -> ExecutionResult[T]:
        """Return a copy with extra warnings appended (type is unchanged)."""
        if not warnings:
            return self
        return replace(self, warnings=self.warnings + tuple(warnings))

    def with_metadata(self, metadata: ExecutionMetadata) -> ExecutionResult[T]:
        return replace(self, metadata=metadata)

    def with_trace(self, trace: ExecutionTrace) -> ExecutionResult[T]:
        """Return a copy carrying the (sealed) execution trace."""
        return replace(self, trace=trace)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.ok,
            "value": self.value,
            "error": (
                {"type": type(self.error).__name__, "message": str(self.error)}
                if self.error is not None else None
            ),
            "metadata": self.metadata.model_dump(),
            "warnings": list(self.warnings),
            "partial": self.partial,
            "trace": self.trace.to_dict() if self.trace is not None else None,
        }


# The orchestrator-facing name for the same type.
AgentResult = ExecutionResult


def combine(results: list[ExecutionResult[T]]) -> ExecutionResult[list[T]]:
    """Combine results into one; the first Failure wins.

    Warnings are concatenated. The combined result is partial when any
    input was partial or carried warnings.
    """
    values: list[T] = []
    warnings: list[str] = []
    has_partial = False

    for result in results:
        if result.is_failure():
            return ExecutionResult.failure(result.error, result.metadata)
        values.append(result.value)  # type: ignore[arg-type]
        warnings.extend(result.warnings)
        has_partial = has_partial or result.partial

    metadata = (
        ExecutionMetadata.merge(*(r.metadata for r in results))
        if results else ExecutionMetadata(model="combined")
    )
    if has_partial or warnings:
        return ExecutionResult.partial_result(
            values, metadata, warnings or ["Combined result contains partial values"]
        )
    return ExecutionResult.success(values, metadata)


async def sequence(
    factories: list[Callable[[], Awaitable[ExecutionResult[T]]]],
) -> ExecutionResult[list[T]]:
    """Await result factories one by one, stopping at the first Failure."""
    values: list[T] = []
    metadatas: list[ExecutionMetadata] = []

    for factory in factories:
        result = await factory()
        if result.is_failure():
            return ExecutionResult.failure(result.error, result.metadata)
        values.append(result.value)  # type: ignore[arg-type]
        metadatas.append(result.metadata)

    metadata = ExecutionMetadata.merge(*metadatas) if metadatas else ExecutionMetadata()
    return ExecutionResult.success(
        values, metadata.model_copy(update={"model": "sequence", "stage": "sequence"})
    )
