"""
Domain models for the taskpilot workflow engine.

Pure data structures describing workflows, steps and snapshots.
All models are immutable (frozen dataclasses); the engine produces a new
value for every committed transition instead of mutating in place.
"""

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

# =============================================================================
# ENUMERATIONS
# =============================================================================


class EngineState(str, Enum):
    """Phase of the engine's finite-state machine."""

    IDLE = "idle"
    PLANNING = "planning"
    RUNNING = "running"
    AWAITING_INPUT = "awaiting_input"  # Suspended on a user_input step
    COMPLETED = "completed"  # Terminal
    ERROR = "error"  # Left only via retry/reset


class WorkflowStatus(str, Enum):
    """Aggregate status of a workflow."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    """Status of a single step."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"  # Only by explicit override


class StepType(str, Enum):
    """Execution strategy of a step."""

    LLM_DECISION = "llm_decision"
    TOOL_EXECUTION = "tool_execution"
    USER_INPUT = "user_input"

    @classmethod
    def parse(cls, value: Any) -> "StepType | str":
        """Return the matching member, or the raw string for unknown types."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return "" if value is None else str(value)


TERMINAL_STEP_STATUSES = frozenset(
    {StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.SKIPPED}
)


# =============================================================================
# STEP AND WORKFLOW
# =============================================================================


@dataclass(frozen=True)
class Step:
    """One unit of planned work."""

    step_id: str
    step_type: StepType | str  # Raw string when the plan named an unknown type
    title: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    status: StepStatus = StepStatus.PENDING
    result: Any = None  # Present iff completed (or skipped)
    error: str | None = None  # Present iff failed
    error_kind: str | None = None  # Exception class name of the failure
    timestamp: str | None = None  # ISO timestamp of the terminal status

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STEP_STATUSES

    def mark_running(self) -> "Step":
        return replace(self, status=StepStatus.RUNNING)

    def mark_completed(self, result: Any, at: str) -> "Step":
        return replace(
            self,
            status=StepStatus.COMPLETED,
            result=result,
            error=None,
            error_kind=None,
            timestamp=at,
        )

    def mark_failed(self, message: str, kind: str, at: str) -> "Step":
        return replace(
            self,
            status=StepStatus.FAILED,
            result=None,
            error=message,
            error_kind=kind,
            timestamp=at,
        )

    def mark_skipped(self, at: str) -> "Step":
        return replace(self, status=StepStatus.SKIPPED, timestamp=at)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the wire field names the prompts ask for."""
        step_type = (
            self.step_type.value
            if isinstance(self.step_type, StepType)
            else self.step_type
        )
        return {
            "id": self.step_id,
            "type": step_type,
            "title": self.title,
            "description": self.description,
            "parameters": self.parameters,
            "status": self.status.value,
            "result": self.result,
            "error": self.error,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class Workflow:
    """
    The unit of orchestration.

    ``steps`` is an append-only log indexed by ``current_step``; when
    ``current_step == len(steps)`` the workflow is logically complete.
    """

    workflow_id: str
    title: str
    summary: str
    steps: tuple[Step, ...]
    current_step: int
    status: WorkflowStatus
    created_at: str
    updated_at: str
    errors: tuple[str, ...] = ()  # Failures not attributable to a step

    def __post_init__(self) -> None:
        if not 0 <= self.current_step <= len(self.steps):
            raise ValueError(
                f"current_step {self.current_step} outside 0..{len(self.steps)}"
            )
        ids = [step.step_id for step in self.steps]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate step ids in workflow: {ids}")

    @classmethod
    def empty(cls) -> "Workflow":
        """The idle value: no steps, cursor at zero."""
        return cls(
            workflow_id="",
            title="",
            summary="",
            steps=(),
            current_step=0,
            status=WorkflowStatus.PENDING,
            created_at="",
            updated_at="",
        )

    @property
    def is_finished(self) -> bool:
        return self.current_step >= len(self.steps)

    @property
    def active_step(self) -> Step | None:
        """The step under the cursor, if any."""
        if self.is_finished:
            return None
        return self.steps[self.current_step]

    def get_step(self, step_id: str) -> Step | None:
        for step in self.steps:
            if step.step_id == step_id:
                return step
        return None

    def step_ids(self) -> frozenset[str]:
        return frozenset(step.step_id for step in self.steps)

    def touched(self, at: str) -> "Workflow":
        """Refresh ``updated_at`` without letting it move backwards."""
        return replace(self, updated_at=max(self.updated_at, at))

    def with_step(self, index: int, step: Step, at: str) -> "Workflow":
        """Return a copy with ``steps[index]`` replaced."""
        steps = self.steps[:index] + (step,) + self.steps[index + 1 :]
        return replace(self, steps=steps).touched(at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.workflow_id,
            "title": self.title,
            "summary": self.summary,
            "steps": [step.to_dict() for step in self.steps],
            "currentStep": self.current_step,
            "status": self.status.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "errors": list(self.errors),
        }


# =============================================================================
# SNAPSHOTS
# =============================================================================


@dataclass(frozen=True)
class ErrorInfo:
    """Why the engine entered the error state."""

    kind: str  # Exception class name, e.g. "CancelledError"
    message: str
    step_id: str | None = None

    @property
    def cancelled(self) -> bool:
        return self.kind == "CancelledError"


@dataclass(frozen=True)
class EngineSnapshot:
    """Read-only view of ``{state, workflow}`` handed to callers and subscribers."""

    state: EngineState
    workflow: Workflow
    error: ErrorInfo | None = None

    @classmethod
    def capture(
        cls, state: EngineState, workflow: Workflow, error: ErrorInfo | None = None
    ) -> "EngineSnapshot":
        """Snapshot with a deep-copied workflow so holders cannot alias engine state."""
        return cls(state=state, workflow=copy.deepcopy(workflow), error=error)


# =============================================================================
# ORACLE RESPONSES
# =============================================================================


@dataclass(frozen=True)
class TokenUsage:
    """Token accounting reported by the model provider."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(frozen=True)
class OracleResponse:
    """Result of a non-streaming oracle call."""

    content: str
    usage: TokenUsage | None = None
