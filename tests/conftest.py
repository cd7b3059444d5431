"""Shared test fixtures for streampack."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from streampack.models.targets import InlineContent, RemoteRef, Target
from streampack.sinks.memory import MemorySink
from streampack.sources import ByteStream


def payload(index: int, size: int = 3000) -> bytes:
    """Deterministic, index-specific entry body."""
    line = f"entry-{index:04d};".encode()
    return (line * (size // len(line) + 1))[:size]


class FakeSource:
    """Scriptable artifact source.

    Parameters
    ----------
    delays:
        Seconds to sleep before resolving, per target index.
    failures:
        Exception to raise instead of resolving, per target index.
    gates:
        Events a fetch waits on before resolving, per target index.
    chunk_size:
        Chunk size of the returned streams.
    """

    def __init__(
        self,
        *,
        delays: dict[int, float] | None = None,
        failures: dict[int, BaseException] | None = None,
        gates: dict[int, asyncio.Event] | None = None,
        chunk_size: int = 1024,
    ) -> None:
        self.delays = delays or {}
        self.failures = failures or {}
        self.gates = gates or {}
        self.chunk_size = chunk_size
        self.started: list[int] = []
        self.completed: list[int] = []
        self.cancelled: list[int] = []
        self.streams: dict[int, ByteStream] = {}
        self.active = 0
        self.peak = 0

    async def resolve(self, target: Target) -> ByteStream:
        index = target.index
        self.started.append(index)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if index in self.gates:
                await self.gates[index].wait()
            await asyncio.sleep(self.delays.get(index, 0))
            if index in self.failures:
                raise self.failures[index]
        except asyncio.CancelledError:
            self.cancelled.append(index)
            raise
        finally:
            self.active -= 1
        self.completed.append(index)
        data = target.source.data if isinstance(target.source, InlineContent) else payload(index)
        stream = ByteStream.from_bytes(data, self.chunk_size)
        self.streams[index] = stream
        return stream


class RecordingObserver:
    """Observer that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [event.kind.value for event in self.events]


class FailingSink(MemorySink):
    """Memory sink whose writes start failing after *fail_after* writes."""

    def __init__(self, fail_after: int = 0) -> None:
        super().__init__(name="failing")
        self.fail_after = fail_after

    async def write(self, data: bytes) -> None:
        if len(self.writes) >= self.fail_after:
            raise OSError("disk full")
        await super().write(data)


# ---------------------------------------------------------------------------
# Target factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_target() -> Callable[..., Target]:
    """Factory fixture: build an inline Target with sensible defaults."""

    def _factory(index: int = 0, name: str | None = None, data: bytes | None = None) -> Target:
        return Target(
            index=index,
            name=name or f"entry-{index}.txt",
            source=InlineContent(data=payload(index) if data is None else data),
        )

    return _factory


@pytest.fixture
def make_targets(make_target: Callable[..., Target]) -> Callable[..., list[Target]]:
    """Factory fixture: build N contiguous inline targets."""

    def _factory(count: int, names: list[str] | None = None) -> list[Target]:
        names = names or [f"entry-{i}.txt" for i in range(count)]
        return [make_target(i, names[i]) for i in range(count)]

    return _factory


@pytest.fixture
def remote_target() -> Callable[..., Target]:
    """Factory fixture: build a remote Target."""

    def _factory(index: int = 0, url: str = "https://files.example.org/a.bin", name: str | None = None) -> Target:
        return Target(index=index, name=name or f"remote-{index}.bin", source=RemoteRef(url=url))

    return _factory


@pytest.fixture
def memory_sink() -> MemorySink:
    """Provide a fresh in-memory sink."""
    return MemorySink()


@pytest.fixture
def observer() -> RecordingObserver:
    """Provide an observer that records events."""
    return RecordingObserver()


# ---------------------------------------------------------------------------
# Scriptable collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def make_source() -> Callable[..., FakeSource]:
    """Factory fixture: build a FakeSource (see its parameters)."""
    return FakeSource


@pytest.fixture
def make_failing_sink() -> Callable[..., FailingSink]:
    """Factory fixture: build a sink that fails after N accepted writes."""
    return FailingSink


@pytest.fixture
def expected_payload() -> Callable[..., bytes]:
    """Expose the deterministic payload used by the target factories."""
    return payload
