# src/tools/registry.py — v1
"""Tool registry — name → tool lookup and dispatch."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from stratagent.core.errors import StratagentError
from stratagent.llm.models import ToolDefinition
from stratagent.tools.base_tool import BaseTool, ToolContext, ToolResult

logger = logging.getLogger(__name__)


class ToolConflictError(StratagentError):
    """A tool with the same name is already registered."""


class ToolNotFoundError(StratagentError):
    """No tool is registered under the requested name."""

    def __init__(self, name: str) -> None:
        self.tool_name = name
        super().__init__(f"Tool not found: {name}")


class ToolRegistry:
    """Registry of tools available to agents."""

    def __init__(self, tools: Iterable[BaseTool] = ()) -> None:
        self._tools: dict[str, BaseTool] = {}
        self.register_all(tools)

    def register(self, tool: BaseTool) -> None:
        """Register a tool. Raises ToolConflictError on duplicate names."""
        if tool.name in self._tools:
            raise ToolConflictError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug("Registered tool: %s", tool.name)

    def register_all(self, tools: Iterable[BaseTool]) -> None:
        for tool in tools:
            self.register(tool)

    def register_or_replace(self, tool: BaseTool) -> None:
        if tool.name in self._tools:
            logger.warning("Replacing existing tool: %s", tool.name)
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> BaseTool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return tool

    def try_get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    @property
    def names(self) -> list[str]:
        """Sorted list of registered tool names."""
        return sorted(self._tools)

    def definitions(self) -> list[ToolDefinition]:
        return [self._tools[name].definition() for name in self.names]

    def __len__(self) -> int:
        return len(self._tools)

    async def execute(
        self, name: str, params: dict[str, Any], context: ToolContext
    ) -> ToolResult:
        """Dispatch to the named tool.

        Raises:
            ToolNotFoundError: If no tool has this name.
        """
        return await self.get(name).execute_validated(params, context)
