"""Observer that writes pipeline events to the standard logging system."""

from __future__ import annotations

import logging

from streampack.models.events import EventKind, PipelineEvent

_LEVELS: dict[EventKind, int] = {
    EventKind.STARTED: logging.INFO,
    EventKind.PROGRESS: logging.DEBUG,
    EventKind.FAILED: logging.ERROR,
    EventKind.CANCELLED: logging.WARNING,
    EventKind.COMPLETED: logging.INFO,
}


class LoggingObserver:
    """Logs each event at a level matching its kind.

    Parameters
    ----------
    logger:
        Target logger.  Defaults to this module's logger.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def on_event(self, event: PipelineEvent) -> None:
        level = _LEVELS[event.kind]
        if event.kind == EventKind.PROGRESS:
            self._logger.log(
                level, "[%s] wrote %d/%d %s",
                event.run_id, (event.index or 0) + 1, event.total, event.target_name,
            )
        elif event.kind == EventKind.FAILED:
            self._logger.log(
                level, "[%s] failed on %s: %s",
                event.run_id, event.target_name or "<pipeline>", event.cause,
            )
        else:
            self._logger.log(level, "[%s] %s (%d targets)", event.run_id, event.kind.value, event.total)
