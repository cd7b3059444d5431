"""Observer protocol for pipeline notifications.

Observers receive ``PipelineEvent`` objects (started, progress, failed,
cancelled, completed).  Delivery is best-effort: the ``EventDispatcher``
isolates every observer so that a failing observer can never change the
outcome of a pipeline run.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from streampack.models.events import PipelineEvent


@runtime_checkable
class PipelineObserver(Protocol):
    """Protocol every pipeline observer must implement."""

    def on_event(self, event: PipelineEvent) -> None:
        """Handle one pipeline event.  Should return quickly."""
        ...
