"""Tests for plan normalization."""

from taskpilot.domain.models import StepStatus, StepType
from taskpilot.domain.plan import (
    normalize_plan,
    normalize_step,
    summarize_plan,
    unique_step_id,
)


class TestUniqueStepId:
    def test_free_id_kept(self):
        assert unique_step_id("s1", {"s2"}) == "s1"

    def test_collision_gets_suffix(self):
        assert unique_step_id("s1", {"s1"}) == "s1-2"

    def test_suffix_skips_taken_variants(self):
        assert unique_step_id("s1", {"s1", "s1-2", "s1-3"}) == "s1-4"


class TestNormalizeStep:
    """Tests for defaults applied to a single step object."""

    def test_full_step(self):
        step = normalize_step(
            {
                "id": "read",
                "type": "tool_execution",
                "title": "Read",
                "description": "Read the file",
                "parameters": {"toolName": "readFile"},
            },
            1,
        )

        assert step.step_id == "read"
        assert step.step_type is StepType.TOOL_EXECUTION
        assert step.parameters == {"toolName": "readFile"}
        assert step.status is StepStatus.PENDING

    def test_missing_fields_get_positional_defaults(self):
        step = normalize_step({"type": "llm_decision"}, 3)

        assert step.step_id == "step_3"
        assert step.title == "Step 3"
        assert step.description == ""
        assert step.parameters == {}

    def test_integer_id_becomes_string(self):
        assert normalize_step({"id": 7}, 1).step_id == "7"

    def test_null_parameters_become_empty(self):
        assert normalize_step({"parameters": None}, 1).parameters == {}


class TestNormalizePlan:
    """Plan normalization: N valid elements give N pending steps in order."""

    def test_order_and_count_preserved(self):
        items = [{"id": f"s{i}", "title": f"T{i}"} for i in range(5)]

        steps = normalize_plan(items)

        assert [s.step_id for s in steps] == ["s0", "s1", "s2", "s3", "s4"]
        assert all(s.status is StepStatus.PENDING for s in steps)

    def test_duplicate_ids_made_unique(self):
        steps = normalize_plan([{"id": "a"}, {"id": "a"}, {"id": "a"}])

        assert [s.step_id for s in steps] == ["a", "a-2", "a-3"]

    def test_taken_ids_avoided(self):
        steps = normalize_plan([{"id": "plan"}, {}], taken={"plan"})

        assert [s.step_id for s in steps] == ["plan-2", "step_2"]


def test_summarize_plan():
    steps = normalize_plan([{"title": "Read"}, {"title": "Write"}])
    assert summarize_plan(steps) == "2 steps: Read, Write"
    assert summarize_plan(steps[:1]) == "1 step: Read"
