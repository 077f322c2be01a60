#!/usr/bin/env python3
"""
Basic taskpilot example using OllamaOracle.

The engine asks the model for a plan to write unit tests for a file, then
executes it: reading the file through a registered tool and letting the
model decide on the following steps.

Setup:
    1. Install Ollama: https://ollama.ai/
    2. Pull a model: ollama pull qwen2.5-coder:7b
    3. Run this script: python examples/basic_ollama.py path/to/module.py

Set TASKPILOT_PROVIDER / TASKPILOT_MODEL / TASKPILOT_ENDPOINT to use a
different provider.
"""

import logging
import sys
from pathlib import Path

from taskpilot import (
    AgentTask,
    EngineSnapshot,
    EngineState,
    TaskPilotError,
    ToolDefinition,
    ToolParameter,
    WorkflowEngine,
)
from taskpilot.infrastructure import InMemoryToolRegistry, create_oracle


def read_file(filePath: str) -> dict[str, str]:
    path = Path(filePath)
    return {"path": str(path), "content": path.read_text()}


def show(snapshot: EngineSnapshot) -> None:
    step = snapshot.workflow.active_step
    label = f" [{step.step_id}: {step.status.value}]" if step else ""
    print(f"{snapshot.state.value}{label}")


def main() -> None:
    """Plan and run a unit test generation task."""
    logging.basicConfig(level=logging.INFO)
    target = sys.argv[1] if len(sys.argv) > 1 else __file__

    tools = InMemoryToolRegistry()
    tools.register(
        ToolDefinition(
            name="readFile",
            description="Read a source file",
            parameters=(
                ToolParameter("filePath", "string", "Path to the file", required=True),
            ),
        ),
        read_file,
    )

    task = AgentTask(
        task_id="unit-test-generation",
        title="Unit test generation",
        system_prompt="You are an expert Python engineer who writes pytest tests.",
        validate_input=lambda value: isinstance(value, dict) and "filePath" in value,
    )

    engine = WorkflowEngine(task, create_oracle(), tools)
    engine.subscribe(show)

    try:
        snapshot = engine.start({"filePath": target})
    except TaskPilotError as e:
        print(f"Could not start: {e}")
        sys.exit(1)

    if snapshot.state is EngineState.COMPLETED:
        print("=== SUCCESS ===")
        print(engine.get_results())
    else:
        print("=== FAILED ===")
        print(engine.error_summary())
        sys.exit(1)


if __name__ == "__main__":
    main()
