"""Rich progress display for pipeline runs.

Renders a transient progress bar that advances as each archive entry is
written.  A terminal event only removes the bar; the command reporting
the outcome prints the final message.
"""

from __future__ import annotations

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from streampack.models.events import EventKind, PipelineEvent


class RichProgressObserver:
    """Pipeline observer driving a ``rich.progress.Progress`` bar.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._progress: Progress | None = None
        self._task_id = None

    def on_event(self, event: PipelineEvent) -> None:
        if event.kind == EventKind.STARTED:
            self._start(event)
        elif event.kind == EventKind.PROGRESS:
            if self._progress is not None:
                self._progress.update(
                    self._task_id, advance=1, description=f"[cyan]{event.target_name}"
                )
        else:
            self._stop()

    def _start(self, event: PipelineEvent) -> None:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}", table_column=None),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self._task_id = self._progress.add_task("[cyan]waiting for first entry", total=event.total)
        self._progress.start()

    def _stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
