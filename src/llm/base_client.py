# src/llm/base_client.py — v1
"""Abstract LLM client interface.

The runtime never calls a provider itself; agents receive a client and
treat each completion as an opaque suspension point.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from stratagent.llm.models import LLMResponse, Message, ToolDefinition


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        tools: list[ToolDefinition] | None = None,
    ) -> LLMResponse:
        """Text completion, optionally offering tools to the model."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai, ...)."""
