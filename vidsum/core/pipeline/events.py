"""The single current, dismissible error shown to the user."""

from __future__ import annotations

from typing import Callable, List, Optional

from ...data.models import ErrorEvent
from ...logging import get_logger

LOGGER = get_logger(__name__)

ErrorListener = Callable[[Optional[ErrorEvent]], None]


class ErrorFeed:
    """Holds the most recent error event; a new event replaces the previous one."""

    def __init__(self) -> None:
        self._current: Optional[ErrorEvent] = None
        self._listeners: List[ErrorListener] = []

    @property
    def current(self) -> Optional[ErrorEvent]:
        return self._current

    def subscribe(self, listener: ErrorListener) -> None:
        self._listeners.append(listener)

    def publish(self, event: ErrorEvent) -> None:
        self._current = event
        self._notify()

    def dismiss(self) -> None:
        if self._current is None:
            return
        self._current = None
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._current)
            except Exception:  # pragma: no cover - listeners should not break the workflow
                LOGGER.exception("Error listener raised an exception")


__all__ = ["ErrorFeed", "ErrorListener"]
