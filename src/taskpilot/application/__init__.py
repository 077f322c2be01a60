"""
Application layer for taskpilot.

Contains the engine that plans and executes workflows, and the collaborators
it coordinates.
"""

from taskpilot.application.dispatch import StepDispatcher, StepOutcome
from taskpilot.application.emitter import StateChangeEmitter
from taskpilot.application.engine import EngineConfig, WorkflowEngine

__all__ = [
    "EngineConfig",
    "StateChangeEmitter",
    "StepDispatcher",
    "StepOutcome",
    "WorkflowEngine",
]
