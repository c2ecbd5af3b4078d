# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for deployment-specific runtime settings. Every
variable is read with the STRATAGENT_ prefix, e.g. STRATAGENT_MAX_RETRIES=5.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stratagent.core.errors import StratagentError


class ConfigurationError(StratagentError):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_prefix="STRATAGENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "staging", "production"] = "development"

    # === Orchestrator ===
    audit_enabled: bool = True
    budget_enforcement: bool = True
    auto_retry: bool = True
    max_retries: int = 3
    max_execution_time_ms: float | None = None
    retry_base_delay_ms: float = 1000.0
    retry_max_delay_ms: float = 10000.0

    # === Tool executor ===
    tool_timeout_ms: float | None = 30000.0
    tool_parallel: bool = True
    tool_max_parallel: int | None = None
    tool_continue_on_error: bool = False

    # === Audit ===
    audit_sink: Literal["memory", "jsonl"] = "memory"
    audit_path: Path | None = None

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: str | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v

    @field_validator("retry_base_delay_ms", "retry_max_delay_ms")
    @classmethod
    def validate_retry_delay(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("retry delays must be > 0")
        return v

    @field_validator("max_execution_time_ms", "tool_timeout_ms")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("timeouts must be > 0 when set")
        return v

    @field_validator("tool_max_parallel")
    @classmethod
    def validate_max_parallel(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("tool_max_parallel must be >= 1 when set")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.retry_base_delay_ms > self.retry_max_delay_ms:
            errors.append("RETRY_BASE_DELAY_MS must be <= RETRY_MAX_DELAY_MS")

        if self.audit_sink == "jsonl" and self.audit_path is None:
            errors.append("AUDIT_SINK=jsonl requires AUDIT_PATH")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
