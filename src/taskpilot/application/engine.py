"""
WorkflowEngine: drives one agent workflow from plan to completion.

The engine owns the only mutable reference to the current workflow. Every
change goes through the pure ``transition`` function; the engine executes
the effects it returns (plan generation, step dispatch), feeds the outcome
back in as an event, and broadcasts a snapshot after each commit.
"""

import copy
import json
import logging
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import jsonschema

from taskpilot.application.dispatch import StepDispatcher
from taskpilot.application.emitter import StateChangeEmitter
from taskpilot.domain.cancellation import CancellationToken
from taskpilot.domain.exceptions import (
    CancelledError,
    EngineBusyError,
    InvalidInputError,
    InvalidTransitionError,
    NoStructuredDataError,
    PlanningError,
)
from taskpilot.domain.interfaces import (
    OracleInterface,
    StateChangeCallback,
    ToolRegistryInterface,
)
from taskpilot.domain.machine import (
    PLAN_STEP_ID,
    DispatchStep,
    Effect,
    Event,
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
    EngineSnapshot,
    EngineState,
    ErrorInfo,
    Step,
    StepStatus,
    Workflow,
)
from taskpilot.domain.plan import normalize_plan, summarize_plan
from taskpilot.domain.prompts import (
    AgentTask,
    DecisionPromptTemplate,
    PlanPromptTemplate,
    render_results,
)
from taskpilot.domain.tools import ToolDefinition, render_tool_catalogue
from taskpilot.extraction import ExpectedShape, ResponseExtractor
from taskpilot.schemas import validate_plan_step

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Configuration for WorkflowEngine.

    This typed config ensures unknown fields are rejected at construction time.
    """

    stream_decisions: bool = False  # Decisions use generate_stream (cancellable)
    suspend_on_user_input: bool = False  # user_input steps wait for the host
    max_proposed_steps: int = 10  # Per decision
    plan_template: PlanPromptTemplate = field(default_factory=PlanPromptTemplate)
    decision_template: DecisionPromptTemplate = field(
        default_factory=DecisionPromptTemplate
    )


class WorkflowEngine:
    """
    Plans and executes one workflow at a time.

    States: idle → planning → running → completed, with error reachable from
    planning and running, and awaiting_input when user_input steps suspend.
    Collaborators are injected; nothing is looked up globally.
    """

    def __init__(
        self,
        task: AgentTask,
        oracle: OracleInterface,
        tool_registry: ToolRegistryInterface,
        config: EngineConfig | None = None,
    ):
        """
        Args:
            task: The kind of task this engine runs
            oracle: Model used for planning and decision steps
            tool_registry: Registry that executes tool steps
            config: Engine options (defaults to EngineConfig())
        """
        self._task = task
        self._oracle = oracle
        self._tool_registry = tool_registry
        self._config = config or EngineConfig()

        self._state = EngineState.IDLE
        self._workflow = Workflow.empty()
        self._error: ErrorInfo | None = None
        self._task_input: Any = None
        self._tools: dict[str, ToolDefinition] = {}
        self._cancellation = CancellationToken()
        self._generation = 0  # Bumped whenever the current run is superseded
        self._running = False

        self._emitter = StateChangeEmitter()
        self._plan_extractor = ResponseExtractor(ExpectedShape.ARRAY)
        self._dispatcher = StepDispatcher(
            task=task,
            oracle=oracle,
            tool_registry=tool_registry,
            decision_template=self._config.decision_template,
            stream_decisions=self._config.stream_decisions,
            suspend_on_user_input=self._config.suspend_on_user_input,
            max_proposed_steps=self._config.max_proposed_steps,
        )
        self._refresh_tools()

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @property
    def task(self) -> AgentTask:
        return self._task

    @property
    def tools(self) -> dict[str, ToolDefinition]:
        """Tool catalogue used for the current run, keyed by name."""
        return dict(self._tools)

    def start(self, task_input: Any) -> EngineSnapshot:
        """
        Plan and execute a new workflow for ``task_input``.

        Any previous workflow is discarded. Returns once the workflow has
        completed, failed, or suspended waiting for user input.

        Raises:
            InvalidInputError: If the input is empty or fails validation
            EngineBusyError: If called while a run is in progress
        """
        with self._exclusive():
            self._check_input(task_input)

            self.reset()
            self._refresh_tools()
            self._task_input = task_input
            generation = self._generation

            workflow_id = str(uuid.uuid4())
            logger.info(
                f"Starting workflow {workflow_id} for task '{self._task.task_id}'"
            )
            effects = self._apply(
                StartRequested(
                    workflow_id=workflow_id,
                    title=self._task.title or self._task.task_id,
                    at=_now(),
                )
            )
            self._run(effects, generation)
        return self.get_state()

    def reset(self) -> None:
        """Return to idle with an empty workflow. Never fails."""
        self._supersede_run()
        self._task_input = None
        self._apply(ResetRequested())

    def retry(self) -> None:
        """
        Leave the error state, discarding the failed workflow.

        Call ``start`` again to produce a fresh plan.

        Raises:
            InvalidTransitionError: If the engine is not in the error state
        """
        self._apply(RetryRequested())
        self._supersede_run()
        self._task_input = None

    def cancel(self, reason: str = "Cancelled by user") -> None:
        """
        Cancel the current run.

        An in-flight streaming call stops and the run ends in the error state
        with a ``CancelledError`` kind. Safe to call from another thread.
        """
        self._cancellation.cancel(reason)
        if self._state is EngineState.AWAITING_INPUT:
            logger.info(f"Workflow {self._workflow.workflow_id} cancelled while awaiting input")
            self._apply(StepFailed(message=reason, kind=CancelledError.__name__, at=_now()))

    def provide_user_input(self, step_id: str, value: Any) -> EngineSnapshot:
        """
        Complete the waiting user_input step with ``value`` and resume.

        Raises:
            InvalidTransitionError: If no step is awaiting input, or
                ``step_id`` is not the waiting step
            EngineBusyError: If called while a run is in progress
        """
        with self._exclusive():
            step = self._require_waiting_step(step_id)
            generation = self._generation
            effects = self._apply(
                InputReceived(
                    result={
                        "message": "User input received",
                        "description": step.description,
                        "value": _detach(value),
                    },
                    at=_now(),
                )
            )
            self._run(effects, generation)
        return self.get_state()

    def skip_current_step(self) -> EngineSnapshot:
        """
        Mark the waiting user_input step as skipped and resume.

        Raises:
            InvalidTransitionError: If no step is awaiting input
            EngineBusyError: If called while a run is in progress
        """
        with self._exclusive():
            active = self._workflow.active_step
            self._require_waiting_step(active.step_id if active else "")
            generation = self._generation
            effects = self._apply(StepSkipped(at=_now()))
            self._run(effects, generation)
        return self.get_state()

    def get_state(self) -> EngineSnapshot:
        """Immutable snapshot of the current state and workflow."""
        return EngineSnapshot.capture(self._state, self._workflow, self._error)

    def subscribe(self, callback: StateChangeCallback) -> Callable[[], None]:
        """
        Call ``callback`` with a snapshot after every committed transition.

        Returns:
            A function that removes the subscription
        """
        return self._emitter.subscribe(callback)

    def get_results(self) -> str:
        """Results of completed steps, rendered as in decision prompts."""
        return render_results(self._workflow)

    def get_errors(self) -> list[str]:
        """Every error recorded in the current workflow."""
        errors = [
            f"{step.step_id}: {step.error}"
            for step in self._workflow.steps
            if step.status is StepStatus.FAILED and step.error
        ]
        errors.extend(self._workflow.errors)
        return errors

    def error_summary(self) -> str:
        """All recorded errors concatenated into one message."""
        return "\n".join(self.get_errors())

    # ------------------------------------------------------------------
    # Interpreter loop
    # ------------------------------------------------------------------

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if self._running:
            raise EngineBusyError("A workflow run is already in progress")
        self._running = True
        try:
            yield
        finally:
            self._running = False

    def _run(self, effects: tuple[Effect, ...], generation: int) -> None:
        queue = list(effects)
        while queue and generation == self._generation:
            effect = queue.pop(0)
            if isinstance(effect, GeneratePlan):
                queue.extend(self._generate_plan(generation))
            elif isinstance(effect, DispatchStep):
                queue.extend(self._dispatch(effect.index, generation))

        if generation == self._generation:
            self._log_outcome()

    def _generate_plan(self, generation: int) -> tuple[Effect, ...]:
        try:
            self._cancellation.raise_if_cancelled()
            steps = self._plan()
        except Exception as err:
            logger.warning(f"Planning failed for workflow {self._workflow.workflow_id}: {err}")
            return self._apply_if_current(
                PlanRejected(message=_describe(err), kind=type(err).__name__, at=_now()),
                generation,
            )
        logger.info(f"Plan accepted with {len(steps)} steps")
        return self._apply_if_current(
            PlanAccepted(steps=steps, summary=summarize_plan(steps), at=_now()),
            generation,
        )

    def _plan(self) -> tuple[Step, ...]:
        prompt = self._config.plan_template.render(
            role=self._task.system_prompt,
            tool_catalogue=render_tool_catalogue(self._tools),
            task_input=self._task_input,
        )
        logger.debug(f"Plan prompt length: {len(prompt)} chars")

        response = self._oracle.generate(prompt)
        self._cancellation.raise_if_cancelled()
        logger.debug(f"Plan response length: {len(response.content)} chars")
        try:
            items = self._plan_extractor.extract(response.content)
        except NoStructuredDataError as err:
            raise PlanningError(f"Failed to initialize workflow: {err}") from err

        for position, item in enumerate(items, start=1):
            try:
                validate_plan_step(item)
            except jsonschema.ValidationError as err:
                raise PlanningError(
                    f"Plan step {position} is invalid: {err.message}"
                ) from err
        return normalize_plan(items, taken={PLAN_STEP_ID})

    def _dispatch(self, index: int, generation: int) -> tuple[Effect, ...]:
        if self._cancellation.is_cancelled:
            return self._apply_if_current(
                StepFailed(
                    message=self._cancellation.reason,
                    kind=CancelledError.__name__,
                    at=_now(),
                ),
                generation,
            )

        self._apply_if_current(StepStarted(at=_now()), generation)
        if generation != self._generation:
            return ()
        step = self._workflow.steps[index]
        logger.info(
            f"Executing step {step.step_id} ({index}/{len(self._workflow.steps) - 1})"
        )

        try:
            outcome = self._dispatcher.dispatch(
                step, self._workflow, dict(self._tools), self._cancellation
            )
        except Exception as err:
            logger.warning(f"Step {step.step_id} failed: {err}")
            return self._apply_if_current(
                StepFailed(message=_describe(err), kind=type(err).__name__, at=_now()),
                generation,
            )

        if outcome.awaiting_input:
            logger.info(f"Step {step.step_id} awaiting user input")
            return self._apply_if_current(InputRequested(at=_now()), generation)
        return self._apply_if_current(
            StepCompleted(
                result=_detach(outcome.result), proposed=outcome.proposed, at=_now()
            ),
            generation,
        )

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def _apply(self, event: Event) -> tuple[Effect, ...]:
        """Commit one transition and notify subscribers."""
        outcome = transition(self._state, self._workflow, event)
        self._state = outcome.state
        self._workflow = outcome.workflow
        self._error = outcome.error
        self._emitter.emit(self.get_state())
        return outcome.effects

    def _apply_if_current(self, event: Event, generation: int) -> tuple[Effect, ...]:
        """Commit ``event`` unless the run that produced it was superseded."""
        if generation != self._generation:
            return ()
        return self._apply(event)

    def _supersede_run(self) -> None:
        self._cancellation.cancel("Superseded by reset")
        self._cancellation = CancellationToken()
        self._generation += 1

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_input(self, task_input: Any) -> None:
        try:
            accepted = self._task.accepts(task_input)
        except Exception as err:
            raise InvalidInputError(f"Input validation failed: {err}") from err
        if not accepted:
            raise InvalidInputError(f"Invalid input for task '{self._task.task_id}'")

    def _refresh_tools(self) -> None:
        self._tools = {tool.name: tool for tool in self._tool_registry.definitions()}

    def _require_waiting_step(self, step_id: str) -> Step:
        if self._state is not EngineState.AWAITING_INPUT:
            raise InvalidTransitionError(
                f"No step is awaiting input (state '{self._state.value}')"
            )
        active = self._workflow.active_step
        if active is None or active.step_id != step_id:
            raise InvalidTransitionError(f"Step '{step_id}' is not awaiting input")
        return active

    def _log_outcome(self) -> None:
        workflow_id = self._workflow.workflow_id
        if self._state is EngineState.COMPLETED:
            logger.info(f"Workflow {workflow_id} completed")
        elif self._state is EngineState.ERROR and self._error is not None:
            logger.info(
                f"Workflow {workflow_id} stopped with {self._error.kind}: "
                f"{self._error.message}"
            )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _detach(value: Any) -> Any:
    """
    Copy a tool result or user value before it enters the workflow.

    Snapshots deep-copy the workflow, so a value that cannot be copied is
    stored as its JSON rendering instead, with uncopyable leaves replaced
    by their ``repr``.
    """
    try:
        return copy.deepcopy(value)
    except Exception as err:
        logger.warning(f"Result of type {type(value).__name__} is not copyable: {err}")
    try:
        return json.loads(json.dumps(value, default=repr))
    except (TypeError, ValueError):
        return repr(value)


def _describe(err: BaseException) -> str:
    return str(err) or type(err).__name__
