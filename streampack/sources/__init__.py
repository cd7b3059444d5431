"""Artifact source protocol and the byte stream it produces.

An artifact source turns one ``Target`` into a ``ByteStream``.  Sources are
pluggable: any object with an ``async resolve(target)`` method satisfies the
``ArtifactSource`` protocol.  Cancellation is cooperative: a source must
let ``asyncio.CancelledError`` propagate from its await points so that an
in-flight transfer is abandoned promptly.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Protocol, runtime_checkable

from streampack.models.targets import Target


class ByteStream:
    """An async iterator of ``bytes`` chunks with explicit release.

    Parameters
    ----------
    chunks:
        The underlying async iterator.
    close:
        Optional coroutine function releasing the underlying resource
        (e.g. an HTTP response).  Called at most once.
    size:
        Total length in bytes, when known up front.
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        *,
        close: Callable[[], Awaitable[None]] | None = None,
        size: int | None = None,
    ) -> None:
        self._chunks = chunks
        self._close = close
        self._closed = False
        self.size = size

    @classmethod
    def from_bytes(cls, data: bytes, chunk_size: int = 64 * 1024) -> ByteStream:
        """Wrap an in-memory payload, yielding it in *chunk_size* pieces."""

        async def _iter() -> AsyncIterator[bytes]:
            view = memoryview(data)
            for offset in range(0, len(view), chunk_size):
                yield bytes(view[offset : offset + chunk_size])

        return cls(_iter(), size=len(data))

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> ByteStream:
        return self

    async def __anext__(self) -> bytes:
        if self._closed:
            raise StopAsyncIteration
        return await self._chunks.__anext__()

    async def aclose(self) -> None:
        """Release the stream.  Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._chunks, "aclose", None)
        try:
            if aclose is not None:
                await aclose()
        finally:
            if self._close is not None:
                await self._close()


@runtime_checkable
class ArtifactSource(Protocol):
    """Protocol every artifact source must implement."""

    async def resolve(self, target: Target) -> ByteStream:
        """Resolve *target* into a readable byte stream.

        Raises
        ------
        NetworkError
            Transport failure (including transport-level timeouts).
        HttpStatusError
            The remote answered with a non-success status.
        asyncio.CancelledError
            The fetch was cancelled while in flight.
        """
        ...
