"""
In-memory tool registry.

Holds tool definitions alongside the callables that implement them and
validates arguments against each tool's parameter schema before invoking.
"""

import logging
from collections.abc import Callable
from typing import Any

import jsonschema

from taskpilot.domain.exceptions import InvalidToolArgumentsError, UnknownToolError
from taskpilot.domain.interfaces import ToolRegistryInterface
from taskpilot.domain.tools import ToolDefinition

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Any]


class InMemoryToolRegistry(ToolRegistryInterface):
    """
    Tool registry backed by a dict.

    Handlers are called with the argument map as keyword arguments.
    """

    def __init__(self) -> None:
        self._tools: dict[str, tuple[ToolDefinition, ToolHandler]] = {}

    def register(self, definition: ToolDefinition, handler: ToolHandler) -> None:
        """
        Register ``handler`` under ``definition.name``.

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if definition.name in self._tools:
            raise ValueError(f"Tool '{definition.name}' is already registered")
        self._tools[definition.name] = (definition, handler)
        logger.debug(f"Registered tool '{definition.name}'")

    def unregister(self, name: str) -> None:
        """Remove a tool; unknown names are ignored."""
        self._tools.pop(name, None)

    def has(self, name: str) -> bool:
        return name in self._tools

    def definitions(self) -> list[ToolDefinition]:
        return [definition for definition, _ in self._tools.values()]

    def invoke(self, name: str, params: dict[str, Any]) -> Any:
        """
        Validate ``params`` and call the tool.

        Raises:
            UnknownToolError: If ``name`` is not registered
            InvalidToolArgumentsError: If ``params`` violate the tool's schema
        """
        if name not in self._tools:
            raise UnknownToolError(name)
        definition, handler = self._tools[name]

        try:
            jsonschema.validate(params, definition.json_schema())
        except jsonschema.ValidationError as err:
            raise InvalidToolArgumentsError(
                f"Invalid arguments for tool '{name}': {err.message}"
            ) from err

        return handler(**params)

    def __len__(self) -> int:
        return len(self._tools)
