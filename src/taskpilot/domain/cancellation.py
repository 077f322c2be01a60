"""Cooperative cancellation signal shared between the engine and oracles."""

import threading

from taskpilot.domain.exceptions import CancelledError


class CancellationToken:
    """
    One-shot cancellation flag.

    May be signalled from any thread; streaming oracles poll it between
    chunks and stop promptly once it is set.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason = "Cancelled by user"

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if reason:
            self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if the token has been signalled."""
        if self._event.is_set():
            raise CancelledError(self._reason)
