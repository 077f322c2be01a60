"""
Domain interfaces (Ports) for the taskpilot workflow engine.

These abstract base classes define the contracts that collaborators must
satisfy. The engine receives implementations through its constructor.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from taskpilot.domain.cancellation import CancellationToken
    from taskpilot.domain.models import EngineSnapshot, OracleResponse
    from taskpilot.domain.tools import ToolDefinition


StateChangeCallback = Callable[["EngineSnapshot"], None]


class OracleInterface(ABC):
    """
    Port for the language model.

    The model is an opaque text-in/text-out oracle. Implementations translate
    provider failures (HTTP errors, connection errors, timeouts) into
    ``TransportError``.
    """

    @abstractmethod
    def generate(self, prompt: str) -> "OracleResponse":
        """
        Send a prompt and wait for the full response.

        Args:
            prompt: The rendered prompt

        Returns:
            The response text with optional token usage

        Raises:
            TransportError: On network or provider failure
        """
        pass

    @abstractmethod
    def generate_stream(
        self,
        prompt: str,
        cancellation: "CancellationToken",
        on_chunk: Callable[[str], None],
    ) -> None:
        """
        Send a prompt and deliver the response incrementally.

        Args:
            prompt: The rendered prompt
            cancellation: Polled between chunks; once set the call stops
            on_chunk: Called zero or more times with successive text chunks

        Raises:
            CancelledError: If cancellation was signalled mid-stream
            TransportError: On network or provider failure
        """
        pass


class ToolRegistryInterface(ABC):
    """Port for tool invocation."""

    @abstractmethod
    def definitions(self) -> list["ToolDefinition"]:
        """Return every registered tool definition, in registration order."""
        pass

    @abstractmethod
    def invoke(self, name: str, params: dict[str, Any]) -> Any:
        """
        Invoke a registered tool.

        Args:
            name: Tool name
            params: Argument map

        Returns:
            Whatever the tool returns

        Raises:
            UnknownToolError: If ``name`` is not registered
        """
        pass
