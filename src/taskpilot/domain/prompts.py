"""
Prompt and task definitions for the workflow engine.

This module provides:
- AgentTask: what a task is (role prompt, input validation)
- PlanPromptTemplate: prompt asking the model for an array of steps
- DecisionPromptTemplate: prompt asking the model for a decision object

Exact wording is a tuning concern; the requested output shapes are the
contract the extractor relies on.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from taskpilot.domain.models import StepStatus, Workflow

DEFAULT_PLAN_EXAMPLE = """\
[
  {
    "id": "step1",
    "type": "tool_execution",
    "title": "Read file content",
    "description": "Read the content of the specified source file to analyze its structure",
    "parameters": {
      "toolName": "readFile",
      "parameters": {
        "filePath": "src/example.py"
      }
    }
  },
  {
    "id": "step2",
    "type": "llm_decision",
    "title": "Decide what to test",
    "description": "Pick the functions that need unit tests",
    "parameters": {}
  }
]"""


def serialize_input(task_input: Any) -> str:
    """Render task input for a prompt."""
    if isinstance(task_input, str):
        return task_input
    return json.dumps(task_input, indent=2, default=str)


def render_results(workflow: Workflow) -> str:
    """Concatenate the results of completed steps, in execution order."""
    blocks = []
    for step in workflow.steps:
        if step.status is not StepStatus.COMPLETED or step.result is None:
            continue
        rendered = json.dumps(step.result, indent=2, default=str)
        blocks.append(f"[{step.step_id}] {step.title}:\n{rendered}")
    return "\n".join(blocks)


@dataclass(frozen=True)
class AgentTask:
    """A kind of agent task: its role description and input contract."""

    task_id: str
    system_prompt: str
    validate_input: Callable[[Any], bool] | None = None
    title: str = ""

    def accepts(self, task_input: Any) -> bool:
        """Input is present and passes the task's predicate, if any."""
        if task_input is None:
            return False
        if isinstance(task_input, str | bytes | dict | list | tuple | set):
            if len(task_input) == 0:
                return False
        if self.validate_input is None:
            return True
        return bool(self.validate_input(task_input))


@dataclass(frozen=True)
class PlanPromptTemplate:
    """Prompt asking for the initial plan."""

    instructions: str = (
        "Please create a workflow to complete this task. "
        "Return a JSON array of workflow steps.\n"
        "Each step should have:\n"
        "- id: unique identifier\n"
        '- type: "llm_decision", "tool_execution", or "user_input"\n'
        "- title: brief description\n"
        "- description: detailed description\n"
        "- parameters: any required parameters; for tool_execution use "
        '{"toolName": <tool>, "parameters": {<arguments>}}'
    )
    example: str = DEFAULT_PLAN_EXAMPLE

    def render(self, role: str, tool_catalogue: str, task_input: Any) -> str:
        parts = [
            f"# ROLE\n{role}",
            f"# AVAILABLE TOOLS\n{tool_catalogue}",
            f"# TASK INPUT\n{serialize_input(task_input)}",
            f"# OUTPUT FORMAT\n{self.instructions}",
            f"# EXAMPLE\n{self.example}",
        ]
        return "\n\n".join(parts)


@dataclass(frozen=True)
class DecisionPromptTemplate:
    """Prompt asking the model to decide at an ``llm_decision`` step."""

    instructions: str = (
        "Please analyze the current state and decide the next action. "
        "Return a JSON object with:\n"
        '- nextStep: "continue", "complete", or "error"\n'
        "- id: unique identifier\n"
        '- type: "llm_decision", "tool_execution", or "user_input"\n'
        "- title: brief description\n"
        "- description: detailed description\n"
        "- parameters: any required parameters\n"
        "Optionally include workflow: an array of further steps to append."
    )

    def render(
        self,
        role: str,
        task_id: str,
        step_title: str,
        step_description: str,
        previous_results: str,
        tool_catalogue: str,
    ) -> str:
        parts = [
            f"# ROLE\n{role}",
            (
                "# CURRENT CONTEXT\n"
                f"- Task ID: {task_id}\n"
                f"- Current step: {step_title}\n"
                f"- Previous results:\n{previous_results or '(none)'}"
            ),
            f"# STEP DESCRIPTION\n{step_description}",
            f"# OUTPUT FORMAT\n{self.instructions}",
            f"# AVAILABLE TOOLS\n{tool_catalogue}",
        ]
        return "\n\n".join(parts)
