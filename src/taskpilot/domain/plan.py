"""Normalization of model-proposed step objects into pending Steps."""

from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from taskpilot.domain.models import Step, StepStatus, StepType


def unique_step_id(candidate: str, taken: Iterable[str]) -> str:
    """Return ``candidate`` or the first free ``candidate-N`` variant."""
    taken = set(taken)
    if candidate not in taken:
        return candidate
    n = 2
    while f"{candidate}-{n}" in taken:
        n += 1
    return f"{candidate}-{n}"


def normalize_step(raw: dict[str, Any], position: int) -> Step:
    """
    Turn one step object into a pending Step.

    Args:
        raw: Step object as produced by the model (already schema-checked)
        position: 1-based position, used for default id and title
    """
    raw_id = raw.get("id")
    step_id = str(raw_id) if raw_id not in (None, "") else f"step_{position}"
    return Step(
        step_id=step_id,
        step_type=StepType.parse(raw.get("type")),
        title=str(raw.get("title") or f"Step {position}"),
        description=str(raw.get("description") or ""),
        parameters=dict(raw.get("parameters") or {}),
        status=StepStatus.PENDING,
    )


def normalize_plan(
    items: list[dict[str, Any]], taken: Iterable[str] = ()
) -> tuple[Step, ...]:
    """Normalize a list of step objects, preserving order and keeping ids unique."""
    used = set(taken)
    steps = []
    for position, raw in enumerate(items, start=1):
        step = normalize_step(raw, position)
        step_id = unique_step_id(step.step_id, used)
        used.add(step_id)
        if step_id != step.step_id:
            step = replace(step, step_id=step_id)
        steps.append(step)
    return tuple(steps)


def summarize_plan(steps: tuple[Step, ...]) -> str:
    """One-line human-readable summary of a plan."""
    titles = ", ".join(step.title for step in steps)
    noun = "step" if len(steps) == 1 else "steps"
    return f"{len(steps)} {noun}: {titles}"
