"""Tests for WorkflowEngine cancellation and user input handling."""

import threading

import pytest
from builders import decision_json, decision_step, plan_json, tool_step, user_step

from taskpilot.application.engine import EngineConfig
from taskpilot.domain.exceptions import InvalidTransitionError, TransportError
from taskpilot.domain.models import EngineState, StepStatus

INPUT = {"filePath": "src/a.py"}
LONG_DECISION = decision_json(id="d", title="Choose the functions worth testing first")


class TestCancellation:
    """Cancellation is reported distinctly from ordinary failures."""

    def test_cancel_during_streaming_decision(self, make_engine):
        holder = {}

        def cancel_on_third_chunk(index):
            if index == 2:
                holder["engine"].cancel()

        engine, oracle = make_engine(
            plan_json(decision_step("d"), decision_step("after")),
            LONG_DECISION,
            config=EngineConfig(stream_decisions=True),
            chunk_size=4,
            before_chunk=cancel_on_third_chunk,
        )
        holder["engine"] = engine

        snapshot = engine.start(INPUT)

        assert snapshot.state is EngineState.ERROR
        assert snapshot.error.kind == "CancelledError"
        assert snapshot.error.cancelled
        assert snapshot.workflow.steps[1].status is StepStatus.FAILED
        assert snapshot.workflow.steps[1].error == "Cancelled by user"
        assert snapshot.workflow.steps[2].status is StepStatus.PENDING
        assert oracle.call_count == 2

    def test_streaming_decision_without_cancel(self, make_engine):
        engine, _ = make_engine(
            plan_json(decision_step("d")),
            LONG_DECISION,
            config=EngineConfig(stream_decisions=True),
            chunk_size=3,
        )

        snapshot = engine.start(INPUT)

        assert snapshot.state is EngineState.COMPLETED
        assert snapshot.workflow.steps[1].result["title"] == (
            "Choose the functions worth testing first"
        )

    def test_transport_failure_mid_stream_is_not_cancellation(self, make_engine):
        engine, _ = make_engine(
            plan_json(decision_step("d")),
            TransportError("Bad gateway", status=502),
            config=EngineConfig(stream_decisions=True),
        )

        snapshot = engine.start(INPUT)

        assert snapshot.error.kind == "TransportError"
        assert not snapshot.error.cancelled

    def test_cancel_between_steps(self, make_engine):
        engine, oracle = make_engine(
            plan_json(tool_step("read", "readFile", filePath="a.py"), decision_step("d"))
        )

        def cancel_after_first_tool(snapshot):
            step = snapshot.workflow.get_step("read")
            if step is not None and step.status is StepStatus.COMPLETED:
                engine.cancel("User pressed stop")

        engine.subscribe(cancel_after_first_tool)

        snapshot = engine.start(INPUT)

        assert snapshot.error.cancelled
        assert snapshot.error.step_id == "d"
        assert snapshot.workflow.steps[2].error == "User pressed stop"
        assert oracle.call_count == 1

    def test_cancel_during_planning(self, make_engine):
        engine, oracle = make_engine(plan_json(decision_step("d")))
        engine.subscribe(
            lambda s: engine.cancel() if s.state is EngineState.PLANNING else None
        )

        snapshot = engine.start(INPUT)

        assert snapshot.error.kind == "CancelledError"
        assert snapshot.error.step_id == "plan"
        assert oracle.call_count == 0

    def test_cancel_from_other_thread(self, make_engine):
        gate = threading.Event()
        holder = {}

        def wait_for_cancel(index):
            if index == 1:
                worker = threading.Thread(target=holder["engine"].cancel)
                worker.start()
                worker.join(timeout=5)
                gate.set()

        engine, _ = make_engine(
            plan_json(decision_step("d")),
            LONG_DECISION,
            config=EngineConfig(stream_decisions=True),
            chunk_size=4,
            before_chunk=wait_for_cancel,
        )
        holder["engine"] = engine

        snapshot = engine.start(INPUT)

        assert gate.is_set()
        assert snapshot.error.cancelled

    def test_start_after_cancel_runs_normally(self, make_engine):
        engine, _ = make_engine(plan_json(decision_step("d")), decision_json())
        engine.cancel()

        snapshot = engine.start(INPUT)

        assert snapshot.state is EngineState.COMPLETED


class TestUserInputAcknowledged:
    def test_user_input_step_acknowledged_by_default(self, make_engine):
        engine, _ = make_engine(plan_json(user_step("ask")))

        snapshot = engine.start(INPUT)

        assert snapshot.state is EngineState.COMPLETED
        assert snapshot.workflow.steps[1].result == {
            "message": "User input step completed",
            "description": "Which file should be tested?",
        }


class TestUserInputSuspended:
    """With suspend_on_user_input the engine waits for the host."""

    @pytest.fixture
    def suspended(self, make_engine):
        engine, oracle = make_engine(
            plan_json(user_step("ask"), decision_step("d")),
            decision_json(),
            config=EngineConfig(suspend_on_user_input=True),
        )
        snapshot = engine.start(INPUT)
        return engine, oracle, snapshot

    def test_start_returns_awaiting_input(self, suspended):
        _, oracle, snapshot = suspended

        assert snapshot.state is EngineState.AWAITING_INPUT
        assert snapshot.workflow.current_step == 1
        assert snapshot.workflow.active_step.step_id == "ask"
        assert snapshot.workflow.active_step.status is StepStatus.RUNNING
        assert oracle.call_count == 1

    def test_provide_user_input_resumes(self, suspended):
        engine, oracle, _ = suspended

        snapshot = engine.provide_user_input("ask", "src/b.py")

        assert snapshot.state is EngineState.COMPLETED
        assert snapshot.workflow.steps[1].result == {
            "message": "User input received",
            "description": "Which file should be tested?",
            "value": "src/b.py",
        }
        assert '"value": "src/b.py"' in oracle.prompts[1]

    def test_wrong_step_id_rejected(self, suspended):
        engine, _, _ = suspended

        with pytest.raises(InvalidTransitionError):
            engine.provide_user_input("d", "x")

        assert engine.get_state().state is EngineState.AWAITING_INPUT

    def test_skip_current_step(self, suspended):
        engine, _, _ = suspended

        snapshot = engine.skip_current_step()

        assert snapshot.workflow.steps[1].status is StepStatus.SKIPPED
        assert snapshot.workflow.steps[2].status is StepStatus.COMPLETED
        assert snapshot.state is EngineState.COMPLETED

    def test_cancel_while_waiting(self, suspended):
        engine, _, _ = suspended

        engine.cancel()

        snapshot = engine.get_state()
        assert snapshot.state is EngineState.ERROR
        assert snapshot.error.cancelled
        assert snapshot.workflow.steps[1].status is StepStatus.FAILED

    def test_reset_while_waiting(self, suspended):
        engine, _, _ = suspended

        engine.reset()

        assert engine.get_state().state is EngineState.IDLE

    def test_input_operations_require_waiting_state(self, make_engine):
        engine, _ = make_engine()

        with pytest.raises(InvalidTransitionError):
            engine.provide_user_input("ask", "x")
        with pytest.raises(InvalidTransitionError):
            engine.skip_current_step()
