"""Inline-content source — entries generated in memory."""

from __future__ import annotations

import asyncio

from streampack.models.targets import InlineContent, Target
from streampack.sources import ByteStream


class InlineSource:
    """Serves ``InlineContent`` targets from their embedded bytes.

    Parameters
    ----------
    chunk_size:
        Size of the chunks handed to the encoder.
    """

    def __init__(self, chunk_size: int = 64 * 1024) -> None:
        self._chunk_size = chunk_size

    async def resolve(self, target: Target) -> ByteStream:
        if not isinstance(target.source, InlineContent):
            raise TypeError(f"InlineSource cannot resolve {target.source.kind} target {target.name!r}")
        # Yield once so inline resolution is a real suspension point.
        await asyncio.sleep(0)
        return ByteStream.from_bytes(target.source.data, self._chunk_size)
