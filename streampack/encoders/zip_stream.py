"""Single-pass zip encoder on top of :mod:`zipfile`.

``zipfile`` detects that its output is not seekable and switches to data
descriptors, so every entry can be written without knowing its size up
front and nothing is ever rewritten.  Encoded bytes land in a small
in-memory buffer that is drained into the sink after each operation; the
buffer never holds more than one chunk's worth of output.
"""

from __future__ import annotations

import logging
import time
import zipfile

from streampack.core.errors import ProtocolViolationError
from streampack.models.pipeline import Compression
from streampack.sinks import OutputSink

logger = logging.getLogger(__name__)

_COMPRESSION_METHODS: dict[Compression, int] = {
    Compression.STORED: zipfile.ZIP_STORED,
    Compression.DEFLATED: zipfile.ZIP_DEFLATED,
}


class _ChunkBuffer:
    """Write-only, non-seekable file object collecting zipfile output."""

    def __init__(self) -> None:
        self._chunks: list[bytes] = []
        self.discard = False

    def write(self, data: bytes) -> int:
        if not self.discard:
            self._chunks.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        pass

    def take(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks.clear()
        return data


class ZipEntryWriter:
    """Handle for the entry currently open in a ``ZipStreamEncoder``."""

    def __init__(self, encoder: ZipStreamEncoder, name: str) -> None:
        self._encoder = encoder
        self.name = name

    async def write(self, data: bytes) -> None:
        await self._encoder._write_entry(self, data)


class ZipStreamEncoder:
    """Streams a zip archive into an ``OutputSink``.

    Parameters
    ----------
    sink:
        Destination of the encoded bytes.
    compression:
        ``stored`` or ``deflated``.
    compress_level:
        zlib level for ``deflated`` entries (``None`` = zlib default).
    force_zip64:
        Always write ZIP64 headers.  Without it an entry whose size is not
        known up front is limited to 4 GiB.
    """

    def __init__(
        self,
        sink: OutputSink,
        *,
        compression: Compression = Compression.DEFLATED,
        compress_level: int | None = None,
        force_zip64: bool = False,
    ) -> None:
        self._sink = sink
        self._compression = _COMPRESSION_METHODS[Compression(compression)]
        self._compress_level = compress_level
        self._force_zip64 = force_zip64
        self._buffer = _ChunkBuffer()
        self._zip = zipfile.ZipFile(self._buffer, mode="w", allowZip64=True)
        self._entry = None
        self._writer: ZipEntryWriter | None = None
        self._state = "open"  # open | finalized | aborted
        self.entries_written = 0
        self.bytes_written = 0

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    async def begin_entry(self, name: str, size: int | None = None) -> ZipEntryWriter:
        self._require_open()
        if self._writer is not None:
            raise ProtocolViolationError(
                f"Cannot begin entry {name!r} while {self._writer.name!r} is still open"
            )
        info = zipfile.ZipInfo(name, date_time=time.localtime()[:6])
        info.compress_type = self._compression
        info.external_attr = 0o644 << 16
        if self._compress_level is not None:
            # zipfile only applies per-entry levels through this attribute.
            info._compresslevel = self._compress_level
        if size is not None:
            info.file_size = size
        self._entry = self._zip.open(info, mode="w", force_zip64=self._force_zip64)
        self._writer = ZipEntryWriter(self, name)
        await self._drain()
        return self._writer

    async def _write_entry(self, writer: ZipEntryWriter, data: bytes) -> None:
        if writer is not self._writer or self._entry is None:
            raise ProtocolViolationError(f"Entry {writer.name!r} is not open")
        self._entry.write(data)
        await self._drain()

    async def end_entry(self) -> None:
        if self._writer is None or self._entry is None:
            raise ProtocolViolationError("end_entry() called with no open entry")
        self._entry.close()
        self._entry = None
        self._writer = None
        self.entries_written += 1
        await self._drain()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def finalize(self) -> None:
        self._require_open()
        if self._writer is not None:
            raise ProtocolViolationError(
                f"Cannot finalize while entry {self._writer.name!r} is open"
            )
        self._zip.close()
        self._state = "finalized"
        await self._drain()
        await self._sink.close()
        logger.debug(
            "ZipStreamEncoder: finalized %d entries, %d bytes",
            self.entries_written,
            self.bytes_written,
        )

    async def abort(self) -> None:
        if self._state != "open":
            return
        self._state = "aborted"
        # Let zipfile release its handles; nothing it writes now is kept.
        self._buffer.discard = True
        try:
            if self._entry is not None:
                self._entry.close()
            self._zip.close()
        except Exception as exc:  # noqa: BLE001
            logger.debug("ZipStreamEncoder: ignoring error during abort: %s", exc)
        finally:
            self._entry = None
            self._writer = None
            self._buffer.take()

    def _require_open(self) -> None:
        if self._state != "open":
            raise ProtocolViolationError(f"Encoder is {self._state}")

    async def _drain(self) -> None:
        data = self._buffer.take()
        if data:
            await self._sink.write(data)
            self.bytes_written += len(data)
