# tests/unit/llm/test_unit_models.py — v1
"""Tests for llm/models.py and llm/base_client.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from stratagent.llm.base_client import BaseLLMClient
from stratagent.llm.models import LLMResponse, Message, ToolCall


class TestMessage:
    def test_roles(self):
        assert Message(role="tool", content="{}", tool_call_id="c1").tool_call_id == "c1"
        with pytest.raises(ValidationError):
            Message(role="robot", content="x")  # type: ignore[arg-type]


class TestToolCall:
    def test_defaults_and_frozen(self):
        call = ToolCall(id="c1", name="search")
        assert call.arguments == "{}"
        with pytest.raises(ValidationError):
            call.name = "other"  # type: ignore[misc]


class TestLLMResponse:
    def test_totals_and_tool_calls(self):
        response = LLMResponse(
            content="", input_tokens=3, output_tokens=4, model="m", provider="p",
            latency_ms=1, tool_calls=[ToolCall(id="c1", name="search")],
        )
        assert response.total_tokens == 7
        assert response.has_tool_calls


class TestBaseLLMClient:
    def test_abstract(self):
        with pytest.raises(TypeError):
            BaseLLMClient()  # type: ignore[abstract]

    @pytest.mark.asyncio
    async def test_mock_client(self, mock_llm_client):
        response = await mock_llm_client.complete([Message(role="user", content="hi")])
        assert response.content == "ok"
