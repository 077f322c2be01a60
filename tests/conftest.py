"""Shared pytest fixtures for taskpilot tests."""

from collections.abc import Callable
from typing import Any

import pytest

from taskpilot.application.engine import EngineConfig, WorkflowEngine
from taskpilot.domain.models import EngineSnapshot
from taskpilot.domain.prompts import AgentTask
from taskpilot.domain.tools import ToolDefinition, ToolParameter
from taskpilot.infrastructure.llm.mock import MockOracle
from taskpilot.infrastructure.tools import InMemoryToolRegistry


@pytest.fixture
def agent_task() -> AgentTask:
    """Create a task that accepts dict input with a filePath."""
    return AgentTask(
        task_id="unit-test-generation",
        title="Unit test generation",
        system_prompt="You are an expert engineer who writes unit tests.",
        validate_input=lambda value: isinstance(value, dict) and "filePath" in value,
    )


@pytest.fixture
def read_file_tool() -> ToolDefinition:
    return ToolDefinition(
        name="readFile",
        description="Read a file from the workspace",
        parameters=(
            ToolParameter(
                name="filePath",
                type="string",
                description="Path relative to the workspace root",
                required=True,
            ),
        ),
    )


@pytest.fixture
def tool_registry(read_file_tool: ToolDefinition) -> InMemoryToolRegistry:
    """Registry with a readFile tool returning canned content."""
    registry = InMemoryToolRegistry()
    registry.register(
        read_file_tool,
        lambda filePath: {"path": filePath, "content": "def add(a, b): return a + b"},
    )
    return registry


@pytest.fixture
def make_engine(
    agent_task: AgentTask, tool_registry: InMemoryToolRegistry
) -> Callable[..., tuple[WorkflowEngine, MockOracle]]:
    """Factory building an engine around a MockOracle with scripted responses."""

    def factory(
        *responses: str | BaseException,
        config: EngineConfig | None = None,
        **oracle_kwargs: Any,
    ) -> tuple[WorkflowEngine, MockOracle]:
        oracle = MockOracle(list(responses), **oracle_kwargs)
        engine = WorkflowEngine(agent_task, oracle, tool_registry, config)
        return engine, oracle

    return factory


@pytest.fixture
def recorder() -> Callable[[], tuple[list[EngineSnapshot], Callable[[EngineSnapshot], None]]]:
    """Factory for a subscriber that records every snapshot it receives."""

    def factory() -> tuple[list[EngineSnapshot], Callable[[EngineSnapshot], None]]:
        seen: list[EngineSnapshot] = []
        return seen, seen.append

    return factory
