"""In-memory sink — collects the archive in a ``BytesIO``."""

from __future__ import annotations

import io

from streampack.sinks import SinkClosedError


class MemorySink:
    """Keeps every accepted chunk in memory.

    ``writes`` records the size of each accepted write, which makes the
    sink convenient for inspecting how the stream was delivered.
    """

    def __init__(self, name: str = "memory") -> None:
        self._name = name
        self._buffer = io.BytesIO()
        self.writes: list[int] = []
        self.closed = False
        self.aborted = False

    @property
    def sink_name(self) -> str:
        return self._name

    async def write(self, data: bytes) -> None:
        if self.closed or self.aborted:
            raise SinkClosedError(f"{self._name} no longer accepts data")
        self._buffer.write(data)
        self.writes.append(len(data))

    async def close(self) -> None:
        if self.aborted:
            raise SinkClosedError(f"{self._name} was aborted")
        self.closed = True

    async def abort(self) -> None:
        if self.closed:
            return
        self.aborted = True
        self._buffer = io.BytesIO()

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()
