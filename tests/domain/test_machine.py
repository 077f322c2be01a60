"""Tests for the pure workflow state machine."""

import pytest

from taskpilot.domain.exceptions import InvalidTransitionError
from taskpilot.domain.machine import (
    PLAN_STEP_ID,
    DispatchStep,
    GeneratePlan,
    InputReceived,
    InputRequested,
    PlanAccepted,
    PlanRejected,
    ResetRequested,
    RetryRequested,
    StartRequested,
    StepCompleted,
    StepFailed,
    StepSkipped,
    StepStarted,
    transition,
)
from taskpilot.domain.models import (
    EngineState,
    Step,
    StepStatus,
    StepType,
    Workflow,
    WorkflowStatus,
)

T0 = "2025-01-01T00:00:00+00:00"
T1 = "2025-01-01T00:00:01+00:00"


def _pending(step_id: str, step_type: StepType = StepType.LLM_DECISION) -> Step:
    return Step(step_id=step_id, step_type=step_type, title=step_id.upper())


def _planning() -> Workflow:
    outcome = transition(
        EngineState.IDLE,
        Workflow.empty(),
        StartRequested(workflow_id="wf", title="Task", at=T0),
    )
    return outcome.workflow


def _running(*steps: Step) -> Workflow:
    outcome = transition(
        EngineState.PLANNING,
        _planning(),
        PlanAccepted(steps=steps, summary="plan", at=T1),
    )
    return outcome.workflow


class TestStart:
    """Tests for leaving idle."""

    def test_start_creates_running_plan_step(self):
        outcome = transition(
            EngineState.IDLE,
            Workflow.empty(),
            StartRequested(workflow_id="wf", title="Task", at=T0),
        )

        assert outcome.state is EngineState.PLANNING
        assert outcome.effects == (GeneratePlan(),)
        assert [s.step_id for s in outcome.workflow.steps] == [PLAN_STEP_ID]
        assert outcome.workflow.steps[0].status is StepStatus.RUNNING
        assert outcome.workflow.current_step == 0
        assert outcome.workflow.status is WorkflowStatus.RUNNING

    def test_start_outside_idle_is_invalid(self):
        with pytest.raises(InvalidTransitionError):
            transition(
                EngineState.RUNNING,
                _planning(),
                StartRequested(workflow_id="wf", title="Task", at=T0),
            )


class TestPlanning:
    """Tests for plan acceptance and rejection."""

    def test_plan_accepted_appends_steps_and_dispatches_first(self):
        steps = (_pending("a"), _pending("b"))

        outcome = transition(
            EngineState.PLANNING,
            _planning(),
            PlanAccepted(steps=steps, summary="2 steps: A, B", at=T1),
        )

        workflow = outcome.workflow
        assert outcome.state is EngineState.RUNNING
        assert outcome.effects == (DispatchStep(1),)
        assert workflow.current_step == 1
        assert [s.step_id for s in workflow.steps] == [PLAN_STEP_ID, "a", "b"]
        assert workflow.steps[0].result == {
            "message": "LLM generated workflow",
            "stepCount": 2,
        }
        assert workflow.summary == "2 steps: A, B"

    def test_plan_step_ids_colliding_with_plan_are_renamed(self):
        outcome = transition(
            EngineState.PLANNING,
            _planning(),
            PlanAccepted(steps=(_pending(PLAN_STEP_ID),), summary="", at=T1),
        )

        assert [s.step_id for s in outcome.workflow.steps] == ["plan", "plan-2"]

    def test_plan_rejected_fails_plan_step(self):
        outcome = transition(
            EngineState.PLANNING,
            _planning(),
            PlanRejected(message="no JSON", kind="PlanningError", at=T1),
        )

        assert outcome.state is EngineState.ERROR
        assert outcome.effects == ()
        assert outcome.workflow.status is WorkflowStatus.FAILED
        assert outcome.workflow.steps[0].status is StepStatus.FAILED
        assert outcome.error is not None
        assert outcome.error.kind == "PlanningError"
        assert outcome.error.step_id == PLAN_STEP_ID


class TestRunning:
    """Tests for step execution events."""

    def test_step_completed_advances_cursor_by_one(self):
        workflow = _running(_pending("a"), _pending("b"))
        started = transition(EngineState.RUNNING, workflow, StepStarted(at=T1))

        outcome = transition(
            EngineState.RUNNING, started.workflow, StepCompleted(result="ok", at=T1)
        )

        assert outcome.workflow.current_step == 2
        assert outcome.workflow.steps[1].status is StepStatus.COMPLETED
        assert outcome.effects == (DispatchStep(2),)

    def test_last_step_completes_workflow(self):
        workflow = _running(_pending("a"))

        outcome = transition(
            EngineState.RUNNING, workflow, StepCompleted(result="ok", at=T1)
        )

        assert outcome.state is EngineState.COMPLETED
        assert outcome.workflow.status is WorkflowStatus.COMPLETED
        assert outcome.workflow.current_step == len(outcome.workflow.steps)
        assert outcome.effects == ()

    def test_proposed_steps_are_appended_after_existing(self):
        workflow = _running(_pending("a"), _pending("b"))

        outcome = transition(
            EngineState.RUNNING,
            workflow,
            StepCompleted(result={}, proposed=(_pending("b"), _pending("c")), at=T1),
        )

        ids = [s.step_id for s in outcome.workflow.steps]
        assert ids == [PLAN_STEP_ID, "a", "b", "b-2", "c"]
        assert outcome.workflow.current_step == 2

    def test_step_failed_keeps_cursor(self):
        workflow = _running(_pending("a", StepType.TOOL_EXECUTION))

        outcome = transition(
            EngineState.RUNNING,
            workflow,
            StepFailed(message="Tool 'x' is not registered", kind="UnknownToolError", at=T1),
        )

        assert outcome.state is EngineState.ERROR
        assert outcome.workflow.current_step == 1
        failed = outcome.workflow.steps[1]
        assert failed.status is StepStatus.FAILED
        assert failed.error_kind == "UnknownToolError"
        assert outcome.workflow.status is WorkflowStatus.FAILED

    def test_completed_step_cannot_be_restarted(self):
        workflow = _running(_pending("a"), _pending("b"))
        done = transition(
            EngineState.RUNNING, workflow, StepCompleted(result="ok", at=T1)
        ).workflow
        rewound = Workflow(
            workflow_id=done.workflow_id,
            title=done.title,
            summary=done.summary,
            steps=done.steps,
            current_step=1,
            status=done.status,
            created_at=done.created_at,
            updated_at=done.updated_at,
        )

        with pytest.raises(InvalidTransitionError, match="already completed"):
            transition(EngineState.RUNNING, rewound, StepStarted(at=T1))


class TestAwaitingInput:
    """Tests for the user input suspension states."""

    def _awaiting(self) -> Workflow:
        workflow = _running(_pending("ask", StepType.USER_INPUT), _pending("next"))
        return transition(
            EngineState.RUNNING, workflow, InputRequested(at=T1)
        ).workflow

    def test_input_requested_suspends(self):
        workflow = _running(_pending("ask", StepType.USER_INPUT))

        outcome = transition(EngineState.RUNNING, workflow, InputRequested(at=T1))

        assert outcome.state is EngineState.AWAITING_INPUT
        assert outcome.workflow.current_step == 1
        assert outcome.effects == ()

    def test_input_received_completes_and_resumes(self):
        outcome = transition(
            EngineState.AWAITING_INPUT,
            self._awaiting(),
            InputReceived(result={"value": "a.py"}, at=T1),
        )

        assert outcome.state is EngineState.RUNNING
        assert outcome.workflow.steps[1].result == {"value": "a.py"}
        assert outcome.effects == (DispatchStep(2),)

    def test_skip_marks_skipped(self):
        outcome = transition(
            EngineState.AWAITING_INPUT, self._awaiting(), StepSkipped(at=T1)
        )

        assert outcome.workflow.steps[1].status is StepStatus.SKIPPED
        assert outcome.workflow.current_step == 2

    def test_dispatch_events_invalid_while_waiting(self):
        with pytest.raises(InvalidTransitionError):
            transition(
                EngineState.AWAITING_INPUT,
                self._awaiting(),
                StepCompleted(result="x", at=T1),
            )


class TestLeavingError:
    """Terminal exclusivity: error is left only via retry or reset."""

    def _error(self) -> Workflow:
        return transition(
            EngineState.PLANNING,
            _planning(),
            PlanRejected(message="bad", kind="PlanningError", at=T1),
        ).workflow

    @pytest.mark.parametrize(
        "event",
        [
            StartRequested(workflow_id="wf2", title="again", at=T1),
            StepStarted(at=T1),
            StepCompleted(result=None, at=T1),
            PlanAccepted(steps=(), summary="", at=T1),
        ],
    )
    def test_other_events_rejected(self, event):
        with pytest.raises(InvalidTransitionError):
            transition(EngineState.ERROR, self._error(), event)

    def test_retry_returns_to_idle_with_empty_workflow(self):
        outcome = transition(EngineState.ERROR, self._error(), RetryRequested())

        assert outcome.state is EngineState.IDLE
        assert outcome.workflow == Workflow.empty()
        assert outcome.error is None

    def test_retry_outside_error_is_invalid(self):
        with pytest.raises(InvalidTransitionError):
            transition(EngineState.IDLE, Workflow.empty(), RetryRequested())

    @pytest.mark.parametrize("state", list(EngineState))
    def test_reset_valid_from_every_state(self, state):
        outcome = transition(state, self._error(), ResetRequested())

        assert outcome.state is EngineState.IDLE
        assert outcome.workflow.steps == ()
        assert outcome.workflow.current_step == 0
