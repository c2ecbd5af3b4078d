# src/logging/handlers.py — v1
"""Rotating file handler for log files.

Rotation is size based ("10MB", "512KB" or a bare byte count); retention
is the number of rotated backups kept.
"""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_MULTIPLIERS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}
_SIZE_RE = re.compile(r"^(\d+)\s*(B|KB|MB|GB)?$", re.IGNORECASE)


def parse_size(size: str | int) -> int:
    """Parse '10MB' / '512kb' / '2048' into bytes."""
    if isinstance(size, int):
        if size <= 0:
            raise ValueError("Size must be positive")
        return size
    match = _SIZE_RE.match(size.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size!r}. Use e.g. '10MB'.")
    unit = (match.group(2) or "B").upper()
    value = int(match.group(1)) * _MULTIPLIERS[unit]
    if value <= 0:
        raise ValueError("Size must be positive")
    return value


def create_rotating_handler(
    log_file: str,
    rotation: str | int = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Create a UTF-8 rotating file handler, creating parent dirs as needed."""
    if retention < 0:
        raise ValueError("retention must be >= 0")
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
