"""Integration tests — a slow sink throttles emission, never ordering.

These tests verify that:
1. While the sink is stalled, fetching continues under the K limit but no
   entry beyond the one being written is started
2. Each entry is begun only after the previous one was fully accepted
3. The run completes in target order once the sink catches up
"""

from __future__ import annotations

import asyncio
import io
import zipfile

from streampack import PipelineOptions, start
from streampack.encoders.zip_stream import ZipStreamEncoder
from streampack.sinks.memory import MemorySink


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


class _StallingSink(MemorySink):
    """Memory sink whose writes wait on *gate* and yield once more."""

    def __init__(self, gate: asyncio.Event) -> None:
        super().__init__(name="stalling")
        self.gate = gate
        self.in_write = 0

    async def write(self, data: bytes) -> None:
        self.in_write += 1
        try:
            await self.gate.wait()
            await asyncio.sleep(0)
            await super().write(data)
        finally:
            self.in_write -= 1


class _RecordingWriter:
    def __init__(self, encoder: _RecordingEncoder, inner, name: str) -> None:
        self._encoder = encoder
        self._inner = inner
        self._name = name

    async def write(self, data: bytes) -> None:
        self._encoder.record("write", self._name)
        await self._inner.write(data)


class _RecordingEncoder:
    """Zip encoder wrapper logging each call with the sink's pending writes."""

    def __init__(self, sink: _StallingSink) -> None:
        self._inner = ZipStreamEncoder(sink)
        self._sink = sink
        self._current: str | None = None
        self.log: list[tuple[str, str, int]] = []

    def record(self, what: str, name: str) -> None:
        self.log.append((what, name, self._sink.in_write))

    async def begin_entry(self, name: str, size: int | None = None):
        self.record("begin", name)
        self._current = name
        writer = await self._inner.begin_entry(name, size)
        return _RecordingWriter(self, writer, name)

    async def end_entry(self) -> None:
        await self._inner.end_entry()
        self.record("end", self._current)

    async def finalize(self) -> None:
        await self._inner.finalize()

    async def abort(self) -> None:
        await self._inner.abort()

    @property
    def bytes_written(self) -> int:
        return self._inner.bytes_written


class TestSlowSink:
    def test_stalled_sink_holds_back_later_entries(self, make_targets, make_source, expected_payload):
        targets = make_targets(6)

        async def scenario():
            gate = asyncio.Event()
            sink = _StallingSink(gate)
            encoder = _RecordingEncoder(sink)
            source = make_source(delays={i: 0.005 for i in range(6)})
            handle = start(
                targets,
                sink,
                source=source,
                encoder=encoder,
                options=PipelineOptions(concurrency=3),
            )

            await _wait_until(lambda: len(source.completed) == 6)
            # Every fetch finished while the first header is still unwritten.
            assert source.peak <= 3
            assert handle.pipeline.scheduler.peak_in_flight == 3
            assert sink.in_write == 1
            assert sink.writes == []
            assert handle.pipeline.slots.consumed == 0
            assert [(what, name) for what, name, _ in encoder.log] == [("begin", "entry-0.txt")]

            gate.set()
            result = await handle
            return sink, encoder, result

        sink, encoder, result = asyncio.run(scenario())
        assert result.entries_written == 6

        # Entries never interleave: each name's calls form one contiguous run.
        runs: list[str] = []
        for _, name, _ in encoder.log:
            if not runs or runs[-1] != name:
                runs.append(name)
        assert runs == [t.name for t in targets]

        for what, name, pending in encoder.log:
            if what in ("begin", "end"):
                assert pending == 0, f"{what} {name} overlapped an unfinished sink write"
        begins = [name for what, name, _ in encoder.log if what == "begin"]
        ends = [name for what, name, _ in encoder.log if what == "end"]
        assert begins == ends == [t.name for t in targets]

        with zipfile.ZipFile(io.BytesIO(sink.getvalue())) as zf:
            assert zf.namelist() == [t.name for t in targets]
            for index, name in enumerate(zf.namelist()):
                assert zf.read(name) == expected_payload(index)
