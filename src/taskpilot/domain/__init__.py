"""
Domain layer for the taskpilot workflow engine.

Contains core business logic with no external dependencies.
"""

from taskpilot.domain.cancellation import CancellationToken
from taskpilot.domain.exceptions import (
    CancelledError,
    ConfigurationError,
    EngineBusyError,
    InvalidDecisionError,
    InvalidInputError,
    InvalidToolArgumentsError,
    InvalidTransitionError,
    MissingParameterError,
    NoStructuredDataError,
    PlanningError,
    StepDispatchError,
    TaskPilotError,
    TransportError,
    UnknownStepTypeError,
    UnknownToolError,
)
from taskpilot.domain.interfaces import OracleInterface, ToolRegistryInterface
from taskpilot.domain.models import (
    EngineSnapshot,
    EngineState,
    ErrorInfo,
    OracleResponse,
    Step,
    StepStatus,
    StepType,
    TokenUsage,
    Workflow,
    WorkflowStatus,
)
from taskpilot.domain.prompts import (
    AgentTask,
    DecisionPromptTemplate,
    PlanPromptTemplate,
)
from taskpilot.domain.tools import ToolDefinition, ToolParameter

__all__ = [
    # Models
    "EngineSnapshot",
    "EngineState",
    "ErrorInfo",
    "OracleResponse",
    "Step",
    "StepStatus",
    "StepType",
    "TokenUsage",
    "Workflow",
    "WorkflowStatus",
    # Tasks, prompts and tools (structures only)
    "AgentTask",
    "PlanPromptTemplate",
    "DecisionPromptTemplate",
    "ToolDefinition",
    "ToolParameter",
    # Interfaces
    "OracleInterface",
    "ToolRegistryInterface",
    "CancellationToken",
    # Exceptions
    "TaskPilotError",
    "InvalidInputError",
    "PlanningError",
    "StepDispatchError",
    "UnknownToolError",
    "MissingParameterError",
    "UnknownStepTypeError",
    "InvalidToolArgumentsError",
    "InvalidDecisionError",
    "NoStructuredDataError",
    "TransportError",
    "CancelledError",
    "InvalidTransitionError",
    "EngineBusyError",
    "ConfigurationError",
]
