# src/llm/models.py — v1
"""LLM-facing types: Message, ToolCall, ToolDefinition, LLMResponse.

The provider client itself is an external collaborator; these models are
the contract the runtime shares with it.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system", "tool"]
    content: str
    tool_call_id: str | None = None
    name: str | None = None


class ToolCall(BaseModel):
    """A model-requested tool invocation with JSON-serialized arguments."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: str = "{}"


class ToolDefinition(BaseModel):
    """Tool schema advertised to the model."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    strict: bool = False


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0
    model: str
    provider: str
    latency_ms: int
    tool_calls: list[ToolCall] = Field(default_factory=list)
    raw_response: Any = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
