"""
taskpilot: plan-and-execute workflow engine for LLM agent tasks.

An engine asks a language model for a plan (an ordered list of steps),
then executes the steps one by one: model decisions, tool calls and user
input. State changes are broadcast to subscribers as immutable snapshots.

Example:
    from taskpilot import AgentTask, WorkflowEngine
    from taskpilot.infrastructure import InMemoryToolRegistry, OllamaOracle

    task = AgentTask(task_id="unit-tests", system_prompt="You write unit tests.")
    engine = WorkflowEngine(task, OllamaOracle(), InMemoryToolRegistry())
    engine.subscribe(lambda snapshot: print(snapshot.state.value))
    snapshot = engine.start({"filePath": "src/example.py"})
"""

# Application layer (orchestration)
from taskpilot.application.engine import EngineConfig, WorkflowEngine

# Domain exceptions
from taskpilot.domain.exceptions import (
    CancelledError,
    EngineBusyError,
    InvalidInputError,
    InvalidTransitionError,
    NoStructuredDataError,
    PlanningError,
    StepDispatchError,
    TaskPilotError,
    TransportError,
)

# Domain interfaces (for type hints and custom implementations)
from taskpilot.domain.interfaces import OracleInterface, ToolRegistryInterface
from taskpilot.domain.models import (
    EngineSnapshot,
    EngineState,
    ErrorInfo,
    Step,
    StepStatus,
    StepType,
    Workflow,
    WorkflowStatus,
)

# Tasks and tools (structures only - content defined by calling applications)
from taskpilot.domain.prompts import AgentTask
from taskpilot.domain.tools import ToolDefinition, ToolParameter

# Extraction
from taskpilot.extraction import ExpectedShape, extract

# Infrastructure (explicit import encouraged for dependency injection)
from taskpilot.infrastructure.llm import MockOracle, OllamaOracle
from taskpilot.infrastructure.tools import InMemoryToolRegistry

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Domain models
    "EngineSnapshot",
    "EngineState",
    "ErrorInfo",
    "Step",
    "StepStatus",
    "StepType",
    "Workflow",
    "WorkflowStatus",
    # Tasks and tools
    "AgentTask",
    "ToolDefinition",
    "ToolParameter",
    # Domain interfaces
    "OracleInterface",
    "ToolRegistryInterface",
    # Domain exceptions
    "TaskPilotError",
    "InvalidInputError",
    "PlanningError",
    "StepDispatchError",
    "NoStructuredDataError",
    "TransportError",
    "CancelledError",
    "InvalidTransitionError",
    "EngineBusyError",
    # Application layer
    "EngineConfig",
    "WorkflowEngine",
    # Extraction
    "ExpectedShape",
    "extract",
    # Infrastructure
    "MockOracle",
    "OllamaOracle",
    "InMemoryToolRegistry",
]
