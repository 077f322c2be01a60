"""
Tool definitions.

Tools are registered with a tool registry; the engine only keeps their
definitions (for prompt rendering and lookup) and forwards invocations.
"""

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ToolParameter:
    """A single named, typed tool argument."""

    name: str
    type: str  # JSON Schema type: "string", "integer", "object", ...
    description: str = ""
    required: bool = False


@dataclass(frozen=True)
class ToolDefinition:
    """Schema-described external capability invocable by a tool step."""

    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = ()

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parameters if p.required)

    def json_schema(self) -> dict[str, Any]:
        """Standard JSON Schema for the argument map."""
        return {
            "type": "object",
            "properties": {
                p.name: {"type": p.type, "description": p.description}
                for p in self.parameters
            },
            "required": list(self.required),
        }

    def describe(self) -> str:
        """Catalogue entry as shown to the model."""
        schema = {
            "type": "object",
            "properties": {
                p.name: {
                    "type": p.type,
                    "description": p.description,
                    "required": p.required,
                }
                for p in self.parameters
            },
            "required": list(self.required),
        }
        return (
            f"Tool: {self.name}\n"
            f"Description: {self.description}\n"
            f"Parameters: {json.dumps(schema, indent=2)}"
        )


def render_tool_catalogue(tools: dict[str, ToolDefinition]) -> str:
    """Render every tool definition for a prompt, in registration order."""
    if not tools:
        return "(no tools available)"
    return "\n\n".join(tool.describe() for tool in tools.values())
