"""Progress change notifications."""

from collections.abc import Callable
from enum import StrEnum

import structlog

logger = structlog.get_logger()


class ProgressEvent(StrEnum):
    """Notifications emitted by the progress store."""

    PROGRESS_UPDATED = "progress_updated"
    PROGRESS_RESET = "progress_reset"


ProgressCallback = Callable[[ProgressEvent], None]


class ProgressNotifier:
    """Ordered list of subscriber callbacks.

    Callbacks run synchronously in registration order. A callback that
    raises is logged and skipped so the remaining subscribers still run.
    """

    def __init__(self) -> None:
        self._callbacks: list[ProgressCallback] = []

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register ``callback`` and return a function that removes it."""
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def emit(self, event: ProgressEvent) -> None:
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                logger.exception("progress_subscriber_failed", progress_event=event.value)
