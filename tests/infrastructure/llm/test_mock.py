"""Tests for MockOracle - predefined response oracle for testing."""

import pytest

from taskpilot.domain.cancellation import CancellationToken
from taskpilot.domain.exceptions import CancelledError, TransportError
from taskpilot.infrastructure.llm.mock import MockOracle


class TestMockOracleGenerate:
    """Tests for MockOracle.generate() method."""

    def test_returns_sequential_responses(self) -> None:
        oracle = MockOracle(["first", "second"])

        assert oracle.generate("a").content == "first"
        assert oracle.generate("b").content == "second"
        assert oracle.prompts == ["a", "b"]

    def test_raises_when_exhausted(self) -> None:
        oracle = MockOracle(["only"])
        oracle.generate("a")

        with pytest.raises(RuntimeError, match="exhausted"):
            oracle.generate("b")

    def test_exception_entries_are_raised(self) -> None:
        oracle = MockOracle([TransportError("Bad gateway", status=502), "after"])

        with pytest.raises(TransportError):
            oracle.generate("a")

        assert oracle.call_count == 1
        assert oracle.generate("b").content == "after"

    def test_reset_allows_reuse_of_responses(self) -> None:
        oracle = MockOracle(["x"])
        oracle.generate("a")

        oracle.reset()

        assert oracle.call_count == 0
        assert oracle.prompts == []
        assert oracle.generate("a").content == "x"

    def test_chunk_size_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            MockOracle(["x"], chunk_size=0)


class TestMockOracleStream:
    """Tests for MockOracle.generate_stream() method."""

    def test_chunks_concatenate_to_response(self) -> None:
        oracle = MockOracle(["abcdefg"], chunk_size=3)
        received = []

        oracle.generate_stream("p", CancellationToken(), received.append)

        assert received == ["abc", "def", "g"]

    def test_before_chunk_can_cancel(self) -> None:
        token = CancellationToken()

        def cancel_second(index: int) -> None:
            if index == 1:
                token.cancel()

        oracle = MockOracle(["abcdefg"], chunk_size=3, before_chunk=cancel_second)
        received = []

        with pytest.raises(CancelledError):
            oracle.generate_stream("p", token, received.append)

        assert received == ["abc"]

    def test_cancelled_before_start_consumes_nothing(self) -> None:
        token = CancellationToken()
        token.cancel()
        oracle = MockOracle(["x"])

        with pytest.raises(CancelledError):
            oracle.generate_stream("p", token, lambda c: None)

        assert oracle.call_count == 0
