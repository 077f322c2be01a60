"""
StepDispatcher: executes a single step according to its type.

Stateless with respect to the workflow: it reads the workflow for context
and returns an outcome; committing the outcome is the engine's job.
"""

import logging
from dataclasses import dataclass
from typing import Any

import jsonschema

from taskpilot.domain.cancellation import CancellationToken
from taskpilot.domain.exceptions import (
    InvalidDecisionError,
    MissingParameterError,
    UnknownStepTypeError,
    UnknownToolError,
)
from taskpilot.domain.interfaces import OracleInterface, ToolRegistryInterface
from taskpilot.domain.models import Step, StepType, Workflow
from taskpilot.domain.plan import normalize_plan
from taskpilot.domain.prompts import AgentTask, DecisionPromptTemplate, render_results
from taskpilot.domain.tools import ToolDefinition, render_tool_catalogue
from taskpilot.extraction import ExpectedShape, ResponseExtractor
from taskpilot.schemas import validate_decision

logger = logging.getLogger(__name__)

# Top-level keys that identify a decision object in model output
DECISION_FIELDS = (
    "nextStep",
    "id",
    "type",
    "title",
    "description",
    "parameters",
    "workflow",
)


@dataclass(frozen=True)
class StepOutcome:
    """What a dispatched step produced."""

    result: Any = None
    proposed: tuple[Step, ...] = ()  # Steps a decision asked to append
    awaiting_input: bool = False


class StepDispatcher:
    """Routes a step to the oracle, the tool registry or the host."""

    def __init__(
        self,
        task: AgentTask,
        oracle: OracleInterface,
        tool_registry: ToolRegistryInterface,
        decision_template: DecisionPromptTemplate | None = None,
        stream_decisions: bool = False,
        suspend_on_user_input: bool = False,
        max_proposed_steps: int = 10,
    ):
        """
        Args:
            task: Task whose role prompt frames every decision
            oracle: Model used by llm_decision steps
            tool_registry: Registry receiving tool_execution steps
            decision_template: Prompt for llm_decision steps
            stream_decisions: Use the streaming oracle call (cancellable mid-call)
            suspend_on_user_input: Wait for the host instead of acknowledging
            max_proposed_steps: Cap on steps a single decision may append
        """
        self._task = task
        self._oracle = oracle
        self._tool_registry = tool_registry
        self._decision_template = decision_template or DecisionPromptTemplate()
        self._stream_decisions = stream_decisions
        self._suspend_on_user_input = suspend_on_user_input
        self._max_proposed_steps = max_proposed_steps
        self._extractor = ResponseExtractor(
            ExpectedShape.OBJECT, expected_keys=DECISION_FIELDS
        )

    def dispatch(
        self,
        step: Step,
        workflow: Workflow,
        tools: dict[str, ToolDefinition],
        cancellation: CancellationToken,
    ) -> StepOutcome:
        """
        Execute ``step``.

        Raises:
            UnknownStepTypeError: If the step type is not dispatchable
            Any error raised by the oracle, extractor or tool
        """
        if step.step_type is StepType.LLM_DECISION:
            return self._decide(step, workflow, tools, cancellation)
        if step.step_type is StepType.TOOL_EXECUTION:
            return self._run_tool(step, tools)
        if step.step_type is StepType.USER_INPUT:
            return self._ask_user(step)
        raise UnknownStepTypeError(str(step.step_type))

    # ------------------------------------------------------------------
    # llm_decision
    # ------------------------------------------------------------------

    def _decide(
        self,
        step: Step,
        workflow: Workflow,
        tools: dict[str, ToolDefinition],
        cancellation: CancellationToken,
    ) -> StepOutcome:
        prompt = self._decision_template.render(
            role=self._task.system_prompt,
            task_id=self._task.task_id,
            step_title=step.title,
            step_description=step.description,
            previous_results=render_results(workflow),
            tool_catalogue=render_tool_catalogue(tools),
        )
        logger.debug(f"Decision prompt for {step.step_id}: {len(prompt)} chars")

        text = self._ask_oracle(prompt, cancellation)
        decision = self._extractor.extract(text)
        try:
            validate_decision(decision)
        except jsonschema.ValidationError as err:
            raise InvalidDecisionError(
                f"Decision does not match the expected shape: {err.message}"
            ) from err

        proposed_items = list(decision.get("workflow") or ())
        if len(proposed_items) > self._max_proposed_steps:
            logger.warning(
                f"Decision {step.step_id} proposed {len(proposed_items)} steps; "
                f"keeping the first {self._max_proposed_steps}"
            )
            proposed_items = proposed_items[: self._max_proposed_steps]
        proposed = normalize_plan(proposed_items, taken=workflow.step_ids())

        return StepOutcome(result=decision, proposed=proposed)

    def _ask_oracle(self, prompt: str, cancellation: CancellationToken) -> str:
        if not self._stream_decisions:
            return self._oracle.generate(prompt).content

        chunks: list[str] = []
        self._oracle.generate_stream(prompt, cancellation, chunks.append)
        # An oracle that stops quietly on cancellation still ends the run as cancelled
        cancellation.raise_if_cancelled()
        return "".join(chunks)

    # ------------------------------------------------------------------
    # tool_execution
    # ------------------------------------------------------------------

    def _run_tool(self, step: Step, tools: dict[str, ToolDefinition]) -> StepOutcome:
        params = step.parameters or {}
        tool_name = params.get("toolName")
        if not tool_name:
            raise MissingParameterError(
                "Tool name is required for tool execution step"
            )
        if tool_name not in tools:
            raise UnknownToolError(tool_name)

        arguments = params.get("parameters")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise MissingParameterError(
                f"Parameters for tool '{tool_name}' must be an object"
            )

        logger.info(f"Invoking tool '{tool_name}' for step {step.step_id}")
        return StepOutcome(result=self._tool_registry.invoke(tool_name, dict(arguments)))

    # ------------------------------------------------------------------
    # user_input
    # ------------------------------------------------------------------

    def _ask_user(self, step: Step) -> StepOutcome:
        if self._suspend_on_user_input:
            return StepOutcome(awaiting_input=True)
        return StepOutcome(
            result={
                "message": "User input step completed",
                "description": step.description,
            }
        )
