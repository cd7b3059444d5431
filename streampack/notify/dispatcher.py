"""EventDispatcher — fans pipeline events out to every registered observer.

Observer failures are logged and swallowed: notifications never affect
pipeline correctness.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from streampack.models.events import PipelineEvent

if TYPE_CHECKING:
    from streampack.notify import PipelineObserver

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Routes events to ALL registered observers.

    Usage
    -----
    >>> dispatcher = EventDispatcher()
    >>> dispatcher.register(LoggingObserver())
    >>> dispatcher.dispatch(event)
    """

    def __init__(self, observers: list[PipelineObserver] | None = None) -> None:
        self._observers: list[PipelineObserver] = []
        for observer in observers or []:
            self.register(observer)

    def register(self, observer: PipelineObserver) -> None:
        """Register an observer.  Duplicate registration is ignored."""
        if observer not in self._observers:
            self._observers.append(observer)

    def unregister(self, observer: PipelineObserver) -> None:
        """Remove a previously registered observer."""
        try:
            self._observers.remove(observer)
        except ValueError:
            pass

    @property
    def observers(self) -> list[PipelineObserver]:
        """Return a copy of the registered observer list."""
        return list(self._observers)

    def dispatch(self, event: PipelineEvent) -> int:
        """Deliver *event* to every observer.

        Returns the number of observers that handled it without raising.
        """
        delivered = 0
        for observer in self._observers:
            try:
                observer.on_event(event)
                delivered += 1
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Observer %r failed on %s event for run %s: %s",
                    observer,
                    event.kind.value,
                    event.run_id,
                    exc,
                )
        return delivered
