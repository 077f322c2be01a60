"""taskpilot JSON Schema definitions and validation utilities.

Schemas describe the structured values the model is asked to produce:

Schemas:
    - plan_step.schema.json: one step object of a plan (or of a decision's
      ``workflow`` array)
    - decision.schema.json: the object returned at an ``llm_decision`` step

Usage:
    from taskpilot.schemas import validate_plan_step

    validate_plan_step(item)  # Raises jsonschema.ValidationError if invalid
"""

from __future__ import annotations

import json
from functools import lru_cache
from importlib.resources import files
from typing import Any

import jsonschema


@lru_cache(maxsize=None)
def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema from the schemas package.

    Args:
        name: Schema filename (e.g., 'plan_step.schema.json')

    Returns:
        Parsed JSON schema as a dictionary
    """
    schema_text = files("taskpilot.schemas").joinpath(name).read_text()
    result: dict[str, Any] = json.loads(schema_text)
    return result


def get_plan_step_schema() -> dict[str, Any]:
    """Get the plan step schema."""
    return _load_schema("plan_step.schema.json")


def get_decision_schema() -> dict[str, Any]:
    """Get the decision schema."""
    return _load_schema("decision.schema.json")


def validate_plan_step(data: Any) -> None:
    """Validate one proposed step object.

    Raises:
        jsonschema.ValidationError: If validation fails
    """
    jsonschema.validate(data, get_plan_step_schema())


def validate_decision(data: Any) -> None:
    """Validate a decision object, including any proposed steps.

    Raises:
        jsonschema.ValidationError: If validation fails
    """
    jsonschema.validate(data, get_decision_schema())
    for item in data.get("workflow") or ():
        validate_plan_step(item)


__all__ = [
    "get_plan_step_schema",
    "get_decision_schema",
    "validate_plan_step",
    "validate_decision",
]
