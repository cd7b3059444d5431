"""Archive feeder — the single, strictly in-order consumer of the slot buffer.

The feeder requests slot ``i`` only after entry ``i-1`` was fully accepted
by the sink, so entries never interleave in the output.  Sink backpressure
throttles emission only; fetches already admitted keep running.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from streampack.core.errors import PipelineError, SinkWriteError, SourceFetchError
from streampack.core.fetch import FetchFailure
from streampack.core.slots import SlotBuffer
from streampack.encoders import ArchiveEncoder
from streampack.models.targets import Target
from streampack.sources import ByteStream

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Target], None]


class ArchiveFeeder:
    """Drains slots ``0..N-1`` into an archive encoder.

    Parameters
    ----------
    targets:
        The ordered target list (same list the scheduler admits from).
    slots:
        The slot buffer to consume.
    encoder:
        Encoder receiving one entry per target.
    on_entry_written:
        Optional callback invoked after each entry is fully written.
    """

    def __init__(
        self,
        targets: Sequence[Target],
        slots: SlotBuffer,
        encoder: ArchiveEncoder,
        *,
        on_entry_written: ProgressCallback | None = None,
    ) -> None:
        self._targets = list(targets)
        self._slots = slots
        self._encoder = encoder
        self._on_entry_written = on_entry_written
        self.entries_written = 0

    async def run(self) -> int:
        """Emit every entry in order, then finalize the archive.

        Returns the number of entries written.

        Raises
        ------
        SourceFetchError
            A slot resolved to a failure, or a stream broke mid-transfer.
        SinkWriteError
            The encoder or sink rejected a write, the finalize or the close.
        PipelineError
            The slot buffer was closed while waiting (pipeline aborted).
        """
        for target in self._targets:
            outcome = await self._slots.get(target.index)
            if isinstance(outcome, FetchFailure):
                raise SourceFetchError(target.name, outcome.cause)
            await self._emit(target, outcome.stream)
            self._slots.mark_consumed(target.index)
            self.entries_written += 1
            if self._on_entry_written is not None:
                self._on_entry_written(target)

        await self._guard_sink(self._encoder.finalize(), None)
        logger.debug("ArchiveFeeder: finalized archive with %d entries", self.entries_written)
        return self.entries_written

    async def _emit(self, target: Target, stream: ByteStream) -> None:
        try:
            writer = await self._guard_sink(
                self._encoder.begin_entry(target.name, stream.size), target.name
            )
            while True:
                try:
                    chunk = await stream.__anext__()
                except StopAsyncIteration:
                    break
                except PipelineError:
                    raise
                except Exception as exc:  # noqa: BLE001
                    raise SourceFetchError(target.name, exc) from exc
                await self._guard_sink(writer.write(chunk), target.name)
            await self._guard_sink(self._encoder.end_entry(), target.name)
        finally:
            await stream.aclose()
        logger.debug("ArchiveFeeder: wrote entry %d %s", target.index, target.name)

    @staticmethod
    async def _guard_sink(awaitable, target_name: str | None):
        """Await an encoder/sink call, translating failures to SinkWriteError."""
        try:
            return await awaitable
        except PipelineError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise SinkWriteError(exc, target_name=target_name) from exc
