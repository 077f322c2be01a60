"""
Mock oracle for testing without LLM.

Returns predefined responses in sequence.
"""

from collections.abc import Callable, Sequence

from taskpilot.domain.cancellation import CancellationToken
from taskpilot.domain.interfaces import OracleInterface
from taskpilot.domain.models import OracleResponse


class MockOracle(OracleInterface):
    """Returns predefined responses for testing."""

    def __init__(
        self,
        responses: Sequence[str | BaseException],
        chunk_size: int = 16,
        before_chunk: Callable[[int], None] | None = None,
    ):
        """
        Args:
            responses: Response strings to return in sequence; an exception
                instance is raised instead of being returned
            chunk_size: Characters per chunk when streaming
            before_chunk: Called with the chunk index before each streamed
                chunk is delivered (lets tests cancel mid-stream)
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._responses = list(responses)
        self._chunk_size = chunk_size
        self._before_chunk = before_chunk
        self._call_count = 0
        self.prompts: list[str] = []

    def _next(self, prompt: str) -> str:
        if self._call_count >= len(self._responses):
            raise RuntimeError("MockOracle exhausted responses")

        response = self._responses[self._call_count]
        self._call_count += 1
        self.prompts.append(prompt)
        if isinstance(response, BaseException):
            raise response
        return response

    def generate(self, prompt: str) -> OracleResponse:
        """Return the next predefined response."""
        return OracleResponse(content=self._next(prompt))

    def generate_stream(
        self,
        prompt: str,
        cancellation: CancellationToken,
        on_chunk: Callable[[str], None],
    ) -> None:
        """Deliver the next predefined response in ``chunk_size`` pieces."""
        cancellation.raise_if_cancelled()
        content = self._next(prompt)
        for index, start in enumerate(range(0, len(content), self._chunk_size)):
            if self._before_chunk is not None:
                self._before_chunk(index)
            cancellation.raise_if_cancelled()
            on_chunk(content[start : start + self._chunk_size])

    @property
    def call_count(self) -> int:
        """Number of times a response has been consumed."""
        return self._call_count

    def reset(self) -> None:
        """Reset the call counter to reuse responses."""
        self._call_count = 0
        self.prompts.clear()
