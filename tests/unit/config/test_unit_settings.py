# tests/unit/config/test_unit_settings.py — v1
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from stratagent.config.settings import ConfigurationError, Settings, load_settings
from stratagent.core.errors import StratagentError


class TestSettingsDefaults:
    def test_orchestrator_defaults(self):
        s = Settings(_env_file=None)
        assert s.audit_enabled is True
        assert s.budget_enforcement is True
        assert s.auto_retry is True
        assert s.max_retries == 3
        assert s.retry_base_delay_ms == 1000
        assert s.retry_max_delay_ms == 10000
        assert s.max_execution_time_ms is None

    def test_tool_defaults(self):
        s = Settings(_env_file=None)
        assert s.tool_parallel is True
        assert s.tool_max_parallel is None
        assert s.tool_continue_on_error is False

    def test_audit_and_logging_defaults(self):
        s = Settings(_env_file=None)
        assert s.audit_sink == "memory"
        assert s.log_format == "json"
        assert s.log_file is None


class TestEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("STRATAGENT_MAX_RETRIES", "7")
        monkeypatch.setenv("STRATAGENT_AUTO_RETRY", "false")
        s = Settings(_env_file=None)
        assert s.max_retries == 7
        assert s.auto_retry is False

    def test_unprefixed_ignored(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES", "9")
        assert Settings(_env_file=None).max_retries == 3

    def test_env_file(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("STRATAGENT_TOOL_MAX_PARALLEL=3\n", encoding="utf-8")
        assert Settings(_env_file=env).tool_max_parallel == 3


class TestSettingsValidation:
    def test_negative_retries(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_retries=-1)

    @pytest.mark.parametrize("field", ["retry_base_delay_ms", "retry_max_delay_ms"])
    def test_non_positive_delay(self, field):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: 0})

    def test_zero_timeout(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, tool_timeout_ms=0)

    def test_base_above_cap(self):
        with pytest.raises(ConfigurationError, match="RETRY_BASE_DELAY_MS"):
            Settings(_env_file=None, retry_base_delay_ms=20000)

    def test_jsonl_requires_path(self):
        with pytest.raises(ConfigurationError, match="AUDIT_PATH"):
            Settings(_env_file=None, audit_sink="jsonl")

    def test_configuration_error_in_taxonomy(self):
        assert issubclass(ConfigurationError, StratagentError)


class TestLoadSettings:
    def test_overrides(self):
        s = load_settings(_env_file=None, budget_enforcement=False)
        assert s.budget_enforcement is False
