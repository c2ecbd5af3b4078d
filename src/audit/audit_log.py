# src/audit/audit_log.py — v1
"""Append-only audit sinks for orchestrated executions.

The orchestrator writes exactly one AuditRecord per execute_agent call.
Appends are serialized with an asyncio.Lock so concurrent executions
never interleave partial records.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from stratagent.audit.models import AuditRecord, ExecutionFilter, ExecutionStatistics

if TYPE_CHECKING:
    from stratagent.config.settings import Settings

logger = logging.getLogger(__name__)


class BaseAuditLog(ABC):
    """Append-only execution log."""

    @abstractmethod
    async def log_execution(self, record: AuditRecord) -> None:
        """Append one record."""

    @abstractmethod
    async def get_executions(
        self, filter: ExecutionFilter | None = None
    ) -> list[AuditRecord]:
        """Return matching records, newest first."""

    async def get_execution(self, execution_id: str) -> AuditRecord | None:
        for record in await self.get_executions():
            if record.execution_id == execution_id:
                return record
        return None

    async def get_statistics(
        self, filter: ExecutionFilter | None = None
    ) -> ExecutionStatistics:
        return ExecutionStatistics.from_records(await self.get_executions(filter))


def _select(records: list[AuditRecord], filter: ExecutionFilter | None) -> list[AuditRecord]:
    selected = [r for r in records if filter is None or filter.matches(r)]
    selected.sort(key=lambda r: r.start_time, reverse=True)
    if filter is not None and filter.limit is not None:
        selected = selected[: filter.limit]
    return selected


class InMemoryAuditLog(BaseAuditLog):
    """Keeps records in process memory (tests, development)."""

    def __init__(self) -> None:
        self._records: list[AuditRecord] = []
        self._lock = asyncio.Lock()

    async def log_execution(self, record: AuditRecord) -> None:
        async with self._lock:
            self._records.append(record)

    async def get_executions(
        self, filter: ExecutionFilter | None = None
    ) -> list[AuditRecord]:
        return _select(list(self._records), filter)

    @property
    def records(self) -> list[AuditRecord]:
        """All records in append order."""
        return list(self._records)

    def clear(self) -> None:
        self._records.clear()


class JsonlAuditLog(BaseAuditLog):
    """Appends one JSON object per line to a file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def log_execution(self, record: AuditRecord) -> None:
        line = json.dumps(record.model_dump(mode="json"), default=str) + "\n"
        async with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)

    async def get_executions(
        self, filter: ExecutionFilter | None = None
    ) -> list[AuditRecord]:
        if not self._path.exists():
            return []
        records: list[AuditRecord] = []
        async with self._lock:
            with self._path.open(encoding="utf-8") as f:
                for lineno, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        records.append(AuditRecord.model_validate_json(line))
                    except ValueError:
                        logger.warning("Skipping malformed audit line %d in %s", lineno, self._path)
        return _select(records, filter)


def create_audit_log(settings: Settings) -> BaseAuditLog:
    """Build the audit sink selected by settings.audit_sink."""
    if settings.audit_sink == "jsonl":
        assert settings.audit_path is not None  # enforced by Settings validation
        return JsonlAuditLog(settings.audit_path)
    return InMemoryAuditLog()
