"""
Domain exceptions for the taskpilot workflow engine.

Errors raised below the engine (oracle, extractor, tools, dispatch) are
caught at the engine boundary and recorded on the failing step. Only
pre-flight validation and misuse of the engine's own operations reach
the caller.
"""


class TaskPilotError(Exception):
    """Base class for all taskpilot errors."""


class InvalidInputError(TaskPilotError):
    """Task input is empty or failed the task's validation predicate."""


class PlanningError(TaskPilotError):
    """The oracle produced no usable plan."""


class StepDispatchError(TaskPilotError):
    """A step is misconfigured and cannot be dispatched."""


class UnknownToolError(StepDispatchError):
    """A tool step names a tool that is not registered."""

    def __init__(self, tool_name: str):
        super().__init__(f"Tool '{tool_name}' is not registered")
        self.tool_name = tool_name


class MissingParameterError(StepDispatchError):
    """A step lacks a parameter its type requires."""


class UnknownStepTypeError(StepDispatchError):
    """A step carries a type the engine cannot dispatch."""

    def __init__(self, step_type: str):
        super().__init__(f"Unknown step type: {step_type!r}")
        self.step_type = step_type


class InvalidToolArgumentsError(StepDispatchError):
    """Tool arguments do not satisfy the tool's parameter schema."""


class InvalidDecisionError(TaskPilotError):
    """A decision object parsed but does not match the decision shape."""


class NoStructuredDataError(TaskPilotError):
    """The extractor exhausted every strategy without finding structured data."""

    def __init__(self, raw_text: str, message: str = "No valid JSON found in LLM response"):
        super().__init__(message)
        self.raw_text = raw_text


class TransportError(TaskPilotError):
    """
    The oracle could not be reached or answered with an error.

    Timeouts are reported through this error as well.
    """

    def __init__(
        self,
        message: str,
        status: int | None = None,
        detail: str | None = None,
    ):
        """
        Args:
            message: Human-readable error message
            status: HTTP status code, when the provider answered
            detail: Response body or underlying error text for diagnostics
        """
        super().__init__(message)
        self.status = status
        self.detail = detail


class CancelledError(TaskPilotError):
    """The run was cancelled by the caller, not failed."""


class InvalidTransitionError(TaskPilotError):
    """An event or operation is not valid in the engine's current state."""


class EngineBusyError(TaskPilotError):
    """``start`` or a resume operation was called while a run was still in progress."""


class ConfigurationError(TaskPilotError, ValueError):
    """Oracle or engine configuration is incomplete or inconsistent."""
