"""Bounded fetch scheduler.

Admits fetch tasks in target-index order, keeping at most ``concurrency``
(K) of them in flight.  Completion order is unconstrained: each finished
fetch writes its own slot and frees its permit, which admits the next
target.  A fetch failure is reported to the controller immediately, so the
whole pipeline aborts without waiting for the feeder to reach that slot.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from streampack.core.controller import PipelineController
from streampack.core.errors import PipelineError, SourceFetchError
from streampack.core.fetch import FetchFailure, FetchSuccess, FetchTask
from streampack.core.slots import SlotBuffer
from streampack.models.targets import Target
from streampack.sources import ArtifactSource

logger = logging.getLogger(__name__)


class Scheduler:
    """Semaphore-gated spawner of fetch tasks.

    Parameters
    ----------
    targets:
        The ordered target list.
    source:
        Source used to resolve every target.
    slots:
        Slot buffer receiving the outcomes (this scheduler is its only writer).
    controller:
        Controller notified of fetch failures; cancellation flows back
        through :meth:`cancel`.
    concurrency:
        Maximum number of fetches in flight (K >= 1).
    """

    def __init__(
        self,
        targets: Sequence[Target],
        source: ArtifactSource,
        slots: SlotBuffer,
        controller: PipelineController,
        *,
        concurrency: int = 5,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self._targets = list(targets)
        self._source = source
        self._slots = slots
        self._controller = controller
        self.concurrency = concurrency

        self._permits = asyncio.Semaphore(concurrency)
        self._outstanding: dict[int, FetchTask] = {}
        self._admission: asyncio.Task[None] | None = None
        self._stopped = False

        self.admitted = 0
        self.in_flight = 0
        self.peak_in_flight = 0

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin admitting fetches in the background.  Never blocks."""
        if self._admission is not None:
            raise RuntimeError("Scheduler already started")
        if self._stopped:
            return
        self._admission = asyncio.create_task(
            self._admit_all(), name=f"streampack-admission-{self._controller.run_id}"
        )

    async def _admit_all(self) -> None:
        for target in self._targets:
            await self._permits.acquire()
            if self._stopped or not self._controller.is_running:
                self._permits.release()
                break
            self._admit(target)
        logger.debug("Scheduler: admission finished after %d targets", self.admitted)

    def _admit(self, target: Target) -> None:
        fetch = FetchTask(target, self._source)
        task = asyncio.create_task(self._run_fetch(fetch), name=f"streampack-fetch-{target.index}")
        fetch.bind(task)
        self._outstanding[target.index] = fetch
        self.admitted += 1
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        task.add_done_callback(lambda _t, index=target.index: self._release(index))
        logger.debug("Scheduler: admitted %s (in flight: %d)", target.name, self.in_flight)

    def _release(self, index: int) -> None:
        self._outstanding.pop(index, None)
        self.in_flight -= 1
        self._permits.release()

    async def _run_fetch(self, fetch: FetchTask) -> None:
        try:
            outcome = await fetch.run()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            # The slot stays empty; failing the run closes it for the feeder.
            self._controller.fail(SourceFetchError(fetch.target.name, exc))
            return
        try:
            self._slots.resolve(fetch.index, outcome)
        except Exception as exc:  # noqa: BLE001
            if not isinstance(exc, PipelineError):
                exc = SourceFetchError(fetch.target.name, exc)
            self._controller.fail(exc)
            if isinstance(outcome, FetchSuccess):
                await outcome.stream.aclose()
            return
        if isinstance(outcome, FetchFailure):
            self._controller.fail(SourceFetchError(outcome.target_name, outcome.cause))

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Stop admitting and cancel every outstanding fetch."""
        if self._stopped:
            return
        self._stopped = True
        if self._admission is not None:
            self._admission.cancel()
        current = asyncio.current_task()
        for fetch in list(self._outstanding.values()):
            # The fetch reporting a failure is finishing on its own.
            if fetch.task is not current:
                fetch.cancel()
        logger.debug("Scheduler: cancelled %d outstanding fetches", len(self._outstanding))

    async def aclose(self) -> None:
        """Cancel, then wait until no admission or fetch task is left running."""
        self.cancel()
        pending: list[asyncio.Task] = [
            fetch.task for fetch in self._outstanding.values() if fetch.task is not None
        ]
        if self._admission is not None:
            pending.append(self._admission)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    @property
    def outstanding(self) -> list[int]:
        """Indexes of fetches currently in flight."""
        return sorted(self._outstanding)
