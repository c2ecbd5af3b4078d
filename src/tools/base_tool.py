# src/tools/base_tool.py — v1
"""Tool interface: a named capability the model can invoke with JSON args.

Parameters are described with a small JSON-schema subset:

    parameters = {
        "properties": {"query": {"type": "string"}, "limit": {"type": "integer"}},
        "required": ["query"],
        "additional_properties": False,
    }

validate() checks required keys, unknown keys and primitive types; tools
needing richer validation override it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from stratagent.llm.models import ToolDefinition

if TYPE_CHECKING:
    from stratagent.core.context import AgentContext

logger = logging.getLogger(__name__)

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list, tuple),
    "object": (dict,),
    "null": (type(None),),
}


class ToolResult(BaseModel):
    """Verdict of one tool invocation."""

    success: bool
    data: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> ToolResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> ToolResult:
        return cls(success=False, error=error)


class ToolContext(BaseModel):
    """What a tool may know about the invocation that triggered it."""

    session_id: str
    user_id: str | None = None
    agent_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_agent_context(
        cls, context: AgentContext, agent_id: str | None = None
    ) -> ToolContext:
        return cls(
            session_id=context.session_id,
            user_id=context.user_id,
            agent_id=agent_id,
            metadata=dict(context.metadata),
        )


class BaseTool(ABC):
    """Abstract base class for all tools."""

    requires_approval: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique tool name as seen by the model."""

    @property
    @abstractmethod
    def description(self) -> str:
        """What the tool does (shown to the model)."""

    @property
    def parameters(self) -> dict[str, Any]:
        return {"properties": {}, "required": [], "additional_properties": True}

    @abstractmethod
    async def execute(self, params: dict[str, Any], context: ToolContext) -> ToolResult:
        """Run the tool on already validated params."""

    def validate(self, params: dict[str, Any]) -> list[str]:
        """Return validation errors (empty if valid)."""
        schema = self.parameters
        properties: dict[str, Any] = schema.get("properties", {})
        errors: list[str] = []

        for key in schema.get("required", []):
            if key not in params:
                errors.append(f"Missing required parameter: {key}")

        for key, value in params.items():
            prop = properties.get(key)
            if prop is None:
                if not schema.get("additional_properties", True):
                    errors.append(f"Unknown parameter: {key}")
                continue
            expected = prop.get("type")
            if expected is None or expected not in _JSON_TYPES:
                continue
            allowed = _JSON_TYPES[expected]
            # bool is an int subclass; reject it for numeric types
            if isinstance(value, bool) and expected in ("integer", "number"):
                errors.append(f"Parameter {key} must be of type {expected}")
            elif not isinstance(value, allowed):
                errors.append(f"Parameter {key} must be of type {expected}")

        return errors

    async def execute_validated(
        self, params: dict[str, Any], context: ToolContext
    ) -> ToolResult:
        """Validate then execute; validation errors and raised faults become failures."""
        errors = self.validate(params)
        if errors:
            return ToolResult.fail(f"Invalid parameters for {self.name}: {'; '.join(errors)}")
        try:
            return await self.execute(params, context)
        except Exception as exc:
            logger.warning("Tool %s raised: %s", self.name, exc)
            return ToolResult.fail(str(exc) or type(exc).__name__)

    def definition(self) -> ToolDefinition:
        schema = self.parameters
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters={
                "type": "object",
                "properties": schema.get("properties", {}),
                "required": list(schema.get("required", [])),
                "additionalProperties": schema.get("additional_properties", True),
            },
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
