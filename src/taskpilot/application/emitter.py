"""State change broadcasting to subscribers."""

import logging
from collections.abc import Callable

from taskpilot.domain.interfaces import StateChangeCallback
from taskpilot.domain.models import EngineSnapshot

logger = logging.getLogger(__name__)


class StateChangeEmitter:
    """Delivers snapshots to subscribers, synchronously and in subscription order.

    A subscriber that raises is logged and skipped; delivery to the
    remaining subscribers continues.
    """

    def __init__(self) -> None:
        self._subscribers: dict[object, StateChangeCallback] = {}

    def subscribe(self, callback: StateChangeCallback) -> Callable[[], None]:
        """Register ``callback``; returns a handle that removes it again."""
        token = object()
        self._subscribers[token] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def emit(self, snapshot: EngineSnapshot) -> None:
        for callback in list(self._subscribers.values()):
            try:
                callback(snapshot)
            except Exception:
                logger.exception(
                    f"Subscriber {callback!r} failed on state '{snapshot.state.value}'"
                )

    def __len__(self) -> int:
        return len(self._subscribers)
