"""Local file sink — streams the archive to disk.

Layout: bytes are written to ``.{name}.part`` next to the destination and
the part file is renamed into place on ``close``.  ``abort`` removes the
part file, so a failed or cancelled run never leaves a truncated archive
under the final name.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import BinaryIO

from streampack.sinks import SinkClosedError

logger = logging.getLogger(__name__)


class FileSink:
    """Writes the archive stream to a local file.

    Blocking file I/O runs in a worker thread.  Each thread call is
    tracked so that ``abort`` can wait for it before releasing the file.

    Parameters
    ----------
    path:
        Final destination of the archive.  Parent directories are created.
    fsync:
        Flush file contents to stable storage before the rename.
    """

    def __init__(self, path: Path | str, *, fsync: bool = False) -> None:
        self.path = Path(path)
        self.part_path = self.path.with_name(f".{self.path.name}.part")
        self._fsync = fsync
        self._fh: BinaryIO | None = None
        self._pending: asyncio.Future | None = None
        self._state = "open"  # open | closing | closed | aborted
        self._renamed = False
        self.bytes_written = 0

    @property
    def sink_name(self) -> str:
        return f"file:{self.path}"

    @property
    def state(self) -> str:
        return self._state

    def _open(self) -> BinaryIO:
        if self._fh is None:
            self.part_path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self.part_path, "wb")
        return self._fh

    async def _in_thread(self, func, *args):
        # Shielded: a cancelled caller leaves the thread call tracked in
        # _pending, and abort() waits for it.
        self._pending = asyncio.ensure_future(asyncio.to_thread(func, *args))
        result = await asyncio.shield(self._pending)
        self._pending = None
        return result

    async def write(self, data: bytes) -> None:
        if self._state != "open":
            raise SinkClosedError(f"{self.sink_name} is {self._state}")
        if not data:
            return
        fh = self._open()
        await self._in_thread(fh.write, data)
        self.bytes_written += len(data)

    async def close(self) -> None:
        if self._state != "open":
            raise SinkClosedError(f"{self.sink_name} is {self._state}")
        fh = self._open()
        self._state = "closing"
        await self._in_thread(self._commit, fh)
        self._state = "closed"
        logger.info("FileSink: wrote %d bytes to %s", self.bytes_written, self.path)

    def _commit(self, fh: BinaryIO) -> None:
        fh.flush()
        if self._fsync:
            os.fsync(fh.fileno())
        fh.close()
        os.replace(self.part_path, self.path)
        self._renamed = True

    async def abort(self) -> None:
        if self._state not in ("open", "closing"):
            return
        self._state = "aborted"
        if self._pending is not None:
            await asyncio.wait({self._pending})
            if not self._pending.cancelled():
                self._pending.exception()  # retrieved; the run already failed
            self._pending = None
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError as exc:
                logger.warning("FileSink: closing %s failed: %s", self.part_path, exc)
            self._fh = None
        self.part_path.unlink(missing_ok=True)
        if self._renamed:
            # Only our own archive is removed; a failed commit leaves the
            # previous file at the destination untouched.
            self.path.unlink(missing_ok=True)
        logger.info("FileSink: discarded partial output for %s", self.path)
