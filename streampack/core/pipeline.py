"""Pipeline assembly — wires scheduler, slot buffer, feeder and controller.

One ``Pipeline`` is built per invocation and discarded after it reaches a
terminal state; it cannot be restarted.

Lifecycle:
1. ``start()`` validates the targets and launches the run in a task
2. The scheduler admits up to K fetches; the feeder drains slots in order
3. The first failure or cancel moves the controller to a terminal state,
   which cancels fetches, closes the slot buffer and stops the feeder
4. Teardown waits for every fetch task, then aborts encoder and sink
   unless the run COMPLETED
5. ``handle.result()`` returns a ``PipelineResult`` or raises the single
   terminal ``PipelineError``
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Generator, Sequence
from datetime import datetime, timezone
from typing import Any

from streampack.core.controller import PipelineController
from streampack.core.errors import PipelineError, ProtocolViolationError
from streampack.core.feeder import ArchiveFeeder
from streampack.core.scheduler import Scheduler
from streampack.core.slots import SlotBuffer
from streampack.encoders import ArchiveEncoder
from streampack.encoders.zip_stream import ZipStreamEncoder
from streampack.models.events import EventKind, PipelineEvent
from streampack.models.pipeline import PipelineOptions, PipelineResult, PipelineState
from streampack.models.targets import Target, validate_targets
from streampack.notify import PipelineObserver
from streampack.notify.dispatcher import EventDispatcher
from streampack.sinks import OutputSink
from streampack.sources import ArtifactSource
from streampack.sources.router import TargetSourceRouter

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    """Return a fresh, sortable run identifier."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"sp-{ts}-{uuid.uuid4().hex[:6]}"


class Pipeline:
    """A single fetch / sequence / emit run.

    Parameters
    ----------
    targets:
        Ordered targets; indexes must be contiguous from 0.
    sink:
        Destination of the archive bytes.
    options:
        Concurrency and encoding options.  Defaults if not provided.
    source:
        Artifact source for every target.  A ``TargetSourceRouter`` owned
        by the pipeline is used if not provided.
    encoder:
        Archive encoder writing into *sink*.  A ``ZipStreamEncoder`` is
        used if not provided.
    observers:
        Notification observers; their failures never affect the run.
    run_id:
        Identifier for logs and events.  Generated if not provided.
    """

    def __init__(
        self,
        targets: Sequence[Target],
        sink: OutputSink,
        *,
        options: PipelineOptions | None = None,
        source: ArtifactSource | None = None,
        encoder: ArchiveEncoder | None = None,
        observers: Sequence[PipelineObserver] = (),
        run_id: str | None = None,
    ) -> None:
        self.targets = validate_targets(targets)
        self.options = options or PipelineOptions()
        self.run_id = run_id or new_run_id()
        self._sink = sink

        self._owned_source: TargetSourceRouter | None = None
        if source is None:
            self._owned_source = TargetSourceRouter(
                timeout=self.options.http_timeout_seconds,
                chunk_size=self.options.chunk_size,
                user_agent=self.options.user_agent,
            )
            source = self._owned_source
        self._encoder = encoder or ZipStreamEncoder(
            sink,
            compression=self.options.compression,
            compress_level=self.options.compress_level,
            force_zip64=self.options.force_zip64,
        )

        self.controller = PipelineController(self.run_id)
        self.slots = SlotBuffer(len(self.targets))
        self.scheduler = Scheduler(
            self.targets,
            source,
            self.slots,
            self.controller,
            concurrency=self.options.concurrency,
        )
        self.feeder = ArchiveFeeder(
            self.targets,
            self.slots,
            self._encoder,
            on_entry_written=self._on_entry_written,
        )
        self._events = EventDispatcher(list(observers))
        self._feeder_task: asyncio.Task[None] | None = None
        self._started = False

        self.controller.on_abort(self._on_abort)

    # ------------------------------------------------------------------
    # Abort fan-out
    # ------------------------------------------------------------------

    def _on_abort(self, error: PipelineError) -> None:
        self.scheduler.cancel()
        self.slots.close(error)
        if self._feeder_task is not None:
            self._feeder_task.cancel()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> PipelineResult:
        """Run to a terminal state.

        Returns
        -------
        PipelineResult
            When the archive was fully written and the sink closed.

        Raises
        ------
        PipelineError
            The single terminal error (``SourceFetchError``,
            ``SinkWriteError``, ``PipelineCancelledError`` or
            ``ProtocolViolationError``).
        """
        if self._started:
            raise RuntimeError(f"Pipeline {self.run_id} already ran; build a new one")
        self._started = True
        logger.info(
            "Pipeline %s: packing %d targets (concurrency=%d) into %s",
            self.run_id,
            len(self.targets),
            self.options.concurrency,
            getattr(self._sink, "sink_name", type(self._sink).__name__),
        )
        self._emit(EventKind.STARTED)
        try:
            if self.controller.is_running:
                self.scheduler.start()
                self._feeder_task = asyncio.create_task(
                    self._feed(), name=f"streampack-feeder-{self.run_id}"
                )
                try:
                    await asyncio.wait({self._feeder_task})
                except asyncio.CancelledError:
                    self.controller.cancel("pipeline task cancelled")
                    raise
                self._settle_feeder(self._feeder_task)
                if self.controller.is_running:
                    self.controller.fail(
                        ProtocolViolationError(f"Pipeline {self.run_id}: feeder stopped before completing")
                    )
        finally:
            await self._teardown()

        if self.controller.state is PipelineState.COMPLETED:
            return PipelineResult(
                run_id=self.run_id,
                entries_written=self.feeder.entries_written,
                bytes_written=getattr(self._encoder, "bytes_written", 0),
            )
        error = self.controller.error
        if error is None:
            raise ProtocolViolationError(
                f"Pipeline {self.run_id} ended {self.controller.state.value} without a terminal error"
            )
        raise error

    async def _feed(self) -> None:
        await self.feeder.run()
        # No await between finalize and this transition: a cancel cannot
        # slip in after the sink committed.
        self.controller.complete()

    def _settle_feeder(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            # Only an abort hook cancels the feeder; the controller holds the error.
            return
        exc = task.exception()
        if exc is None:
            return
        if isinstance(exc, PipelineError):
            self.controller.fail(exc)
        else:
            self.controller.fail(PipelineError(f"Unexpected error in feeder: {exc}", cause=exc))

    async def _teardown(self) -> None:
        feeder = self._feeder_task
        if feeder is not None and not feeder.done():
            # Cancelled by the abort hook; let it unwind before the encoder goes.
            await asyncio.wait({feeder})
            if not feeder.cancelled():
                feeder.exception()
        await self.scheduler.aclose()
        if self.controller.state is not PipelineState.COMPLETED:
            closed = await self.slots.aclose_unconsumed()
            if closed:
                logger.debug("Pipeline %s: released %d unconsumed streams", self.run_id, closed)
            await self._quietly(self._encoder.abort(), "encoder abort")
            await self._quietly(self._sink.abort(), "sink abort")
        if self._owned_source is not None:
            await self._quietly(self._owned_source.aclose(), "source close")
        self._emit_terminal()

    async def _quietly(self, awaitable: Awaitable[Any], what: str) -> None:
        try:
            await awaitable
        except Exception as exc:  # noqa: BLE001
            logger.error("Pipeline %s: %s failed: %s", self.run_id, what, exc)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def _on_entry_written(self, target: Target) -> None:
        self._emit(EventKind.PROGRESS, index=target.index, target_name=target.name)

    def _emit_terminal(self) -> None:
        state = self.controller.state
        if state is PipelineState.COMPLETED:
            self._emit(EventKind.COMPLETED)
        elif state is PipelineState.CANCELLED:
            self._emit(EventKind.CANCELLED, cause=str(self.controller.error.cause))
        elif state is PipelineState.FAILED:
            error = self.controller.error
            self._emit(EventKind.FAILED, target_name=error.target_name, cause=str(error.cause))

    def _emit(self, kind: EventKind, **fields: Any) -> None:
        self._events.dispatch(
            PipelineEvent(kind=kind, run_id=self.run_id, total=len(self.targets), **fields)
        )


class PipelineHandle:
    """Caller-facing handle for a running pipeline.

    Await the handle (or :meth:`result`) for the terminal outcome; call
    :meth:`cancel` to abort.
    """

    def __init__(self, pipeline: Pipeline, task: asyncio.Task[PipelineResult]) -> None:
        self._pipeline = pipeline
        self._task = task

    @property
    def run_id(self) -> str:
        return self._pipeline.run_id

    @property
    def state(self) -> PipelineState:
        return self._pipeline.controller.state

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    def cancel(self, reason: str = "cancelled by caller") -> bool:
        """Abort the run.  Idempotent; a no-op once the run is terminal.

        Returns ``True`` only if this call moved the pipeline to CANCELLED.
        """
        return self._pipeline.controller.cancel(reason)

    def done(self) -> bool:
        return self._task.done()

    async def result(self) -> PipelineResult:
        """Wait for the terminal outcome (see :meth:`Pipeline.run`)."""
        return await self._task

    def __await__(self) -> Generator[Any, None, PipelineResult]:
        return self.result().__await__()


def start(
    targets: Sequence[Target],
    sink: OutputSink,
    *,
    options: PipelineOptions | None = None,
    source: ArtifactSource | None = None,
    encoder: ArchiveEncoder | None = None,
    observers: Sequence[PipelineObserver] = (),
    run_id: str | None = None,
) -> PipelineHandle:
    """Build a pipeline and start it on the running event loop.

    Raises ``ValueError`` synchronously if *targets* is not a valid plan.
    """
    pipeline = Pipeline(
        targets,
        sink,
        options=options,
        source=source,
        encoder=encoder,
        observers=observers,
        run_id=run_id,
    )
    task = asyncio.create_task(pipeline.run(), name=f"streampack-{pipeline.run_id}")
    return PipelineHandle(pipeline, task)


async def run_pipeline(
    targets: Sequence[Target],
    sink: OutputSink,
    **kwargs: Any,
) -> PipelineResult:
    """Start a pipeline and wait for its result."""
    return await start(targets, sink, **kwargs).result()
