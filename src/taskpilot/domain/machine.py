"""
Workflow state machine.

``transition(state, workflow, event)`` is a pure function returning the next
state, the next workflow value and the effects the engine must carry out.
It performs no I/O: oracle and tool calls are effects executed by the
engine's interpreter loop, whose outcomes come back in as new events.
"""

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Union

from taskpilot.domain.exceptions import InvalidTransitionError
from taskpilot.domain.models import (
    EngineState,
    ErrorInfo,
    Step,
    StepStatus,
    StepType,
    Workflow,
    WorkflowStatus,
)
from taskpilot.domain.plan import unique_step_id

PLAN_STEP_ID = "plan"


# =============================================================================
# EVENTS
# =============================================================================


@dataclass(frozen=True)
class StartRequested:
    workflow_id: str
    title: str
    at: str


@dataclass(frozen=True)
class PlanAccepted:
    steps: tuple[Step, ...]
    summary: str
    at: str


@dataclass(frozen=True)
class PlanRejected:
    message: str
    kind: str
    at: str


@dataclass(frozen=True)
class StepStarted:
    at: str


@dataclass(frozen=True)
class StepCompleted:
    result: Any
    at: str
    proposed: tuple[Step, ...] = ()  # Appended after the existing log


@dataclass(frozen=True)
class StepFailed:
    message: str
    kind: str
    at: str


@dataclass(frozen=True)
class InputRequested:
    at: str


@dataclass(frozen=True)
class InputReceived:
    result: Any
    at: str


@dataclass(frozen=True)
class StepSkipped:
    at: str


@dataclass(frozen=True)
class ResetRequested:
    pass


@dataclass(frozen=True)
class RetryRequested:
    pass


Event = Union[
    StartRequested,
    PlanAccepted,
    PlanRejected,
    StepStarted,
    StepCompleted,
    StepFailed,
    InputRequested,
    InputReceived,
    StepSkipped,
    ResetRequested,
    RetryRequested,
]


# =============================================================================
# EFFECTS
# =============================================================================


@dataclass(frozen=True)
class GeneratePlan:
    """Ask the oracle for a plan."""


@dataclass(frozen=True)
class DispatchStep:
    """Execute ``workflow.steps[index]``."""

    index: int


Effect = Union[GeneratePlan, DispatchStep]


@dataclass(frozen=True)
class Transition:
    """Outcome of applying one event."""

    state: EngineState
    workflow: Workflow
    effects: tuple[Effect, ...] = ()
    error: ErrorInfo | None = None


# =============================================================================
# TRANSITION FUNCTION
# =============================================================================


def transition(state: EngineState, workflow: Workflow, event: Event) -> Transition:
    """
    Apply ``event`` to ``(state, workflow)``.

    Raises:
        InvalidTransitionError: If the event is not valid in ``state``
    """
    if isinstance(event, ResetRequested):
        return Transition(EngineState.IDLE, Workflow.empty())

    handler = _HANDLERS.get((state, type(event)))
    if handler is None:
        raise InvalidTransitionError(
            f"{type(event).__name__} is not valid in state '{state.value}'"
        )
    return handler(workflow, event)


def _start(workflow: Workflow, event: StartRequested) -> Transition:
    plan_step = Step(
        step_id=PLAN_STEP_ID,
        step_type=StepType.LLM_DECISION,
        title="Generate plan",
        description="Call the model to plan the workflow",
        status=StepStatus.RUNNING,
    )
    fresh = Workflow(
        workflow_id=event.workflow_id,
        title=event.title,
        summary="",
        steps=(plan_step,),
        current_step=0,
        status=WorkflowStatus.RUNNING,
        created_at=event.at,
        updated_at=event.at,
    )
    return Transition(EngineState.PLANNING, fresh, (GeneratePlan(),))


def _plan_accepted(workflow: Workflow, event: PlanAccepted) -> Transition:
    index = workflow.current_step
    plan_step = _require_active(workflow).mark_completed(
        {"message": "LLM generated workflow", "stepCount": len(event.steps)},
        event.at,
    )
    updated = workflow.with_step(index, plan_step, event.at)
    updated = append_steps(updated, event.steps)
    updated = replace(updated, summary=event.summary, current_step=index + 1)
    return _advance(updated, event.at)


def _fail(workflow: Workflow, event: PlanRejected | StepFailed) -> Transition:
    active = workflow.active_step
    if active is not None:
        failed = active.mark_failed(event.message, event.kind, event.at)
        updated = workflow.with_step(workflow.current_step, failed, event.at)
        step_id: str | None = active.step_id
    else:
        updated = replace(workflow, errors=workflow.errors + (event.message,))
        updated = updated.touched(event.at)
        step_id = None
    updated = replace(updated, status=WorkflowStatus.FAILED)
    error = ErrorInfo(kind=event.kind, message=event.message, step_id=step_id)
    return Transition(EngineState.ERROR, updated, (), error)


def _step_started(workflow: Workflow, event: StepStarted) -> Transition:
    step = _require_active(workflow)
    if step.is_terminal:
        raise InvalidTransitionError(
            f"Step '{step.step_id}' is already {step.status.value}"
        )
    updated = workflow.with_step(workflow.current_step, step.mark_running(), event.at)
    return Transition(EngineState.RUNNING, updated)


def _step_completed(workflow: Workflow, event: StepCompleted) -> Transition:
    return _complete_active(workflow, event.result, event.proposed, event.at)


def _input_requested(workflow: Workflow, event: InputRequested) -> Transition:
    _require_active(workflow)
    return Transition(EngineState.AWAITING_INPUT, workflow.touched(event.at))


def _input_received(workflow: Workflow, event: InputReceived) -> Transition:
    return _complete_active(workflow, event.result, (), event.at)


def _step_skipped(workflow: Workflow, event: StepSkipped) -> Transition:
    index = workflow.current_step
    skipped = _require_active(workflow).mark_skipped(event.at)
    updated = workflow.with_step(index, skipped, event.at)
    updated = replace(updated, current_step=index + 1)
    return _advance(updated, event.at)


def _retry(workflow: Workflow, event: RetryRequested) -> Transition:
    return Transition(EngineState.IDLE, Workflow.empty())


_HANDLERS: dict[tuple[EngineState, type], Callable[[Workflow, Any], Transition]] = {
    (EngineState.IDLE, StartRequested): _start,
    (EngineState.PLANNING, PlanAccepted): _plan_accepted,
    (EngineState.PLANNING, PlanRejected): _fail,
    (EngineState.RUNNING, StepStarted): _step_started,
    (EngineState.RUNNING, StepCompleted): _step_completed,
    (EngineState.RUNNING, StepFailed): _fail,
    (EngineState.RUNNING, InputRequested): _input_requested,
    (EngineState.AWAITING_INPUT, InputReceived): _input_received,
    (EngineState.AWAITING_INPUT, StepSkipped): _step_skipped,
    (EngineState.AWAITING_INPUT, StepFailed): _fail,
    (EngineState.ERROR, RetryRequested): _retry,
}


# =============================================================================
# HELPERS
# =============================================================================


def append_steps(workflow: Workflow, new_steps: tuple[Step, ...]) -> Workflow:
    """Append steps to the log, renaming ids that collide with existing ones."""
    if not new_steps:
        return workflow
    taken = set(workflow.step_ids())
    appended = []
    for step in new_steps:
        step_id = unique_step_id(step.step_id, taken)
        taken.add(step_id)
        appended.append(step if step_id == step.step_id else replace(step, step_id=step_id))
    return replace(workflow, steps=workflow.steps + tuple(appended))


def _require_active(workflow: Workflow) -> Step:
    step = workflow.active_step
    if step is None:
        raise InvalidTransitionError("Workflow has no step under the cursor")
    return step


def _complete_active(
    workflow: Workflow, result: Any, proposed: tuple[Step, ...], at: str
) -> Transition:
    index = workflow.current_step
    completed = _require_active(workflow).mark_completed(result, at)
    updated = workflow.with_step(index, completed, at)
    updated = append_steps(updated, proposed)
    updated = replace(updated, current_step=index + 1)
    return _advance(updated, at)


def _advance(workflow: Workflow, at: str) -> Transition:
    if workflow.is_finished:
        done = replace(workflow, status=WorkflowStatus.COMPLETED).touched(at)
        return Transition(EngineState.COMPLETED, done)
    return Transition(
        EngineState.RUNNING,
        workflow.touched(at),
        (DispatchStep(workflow.current_step),),
    )
