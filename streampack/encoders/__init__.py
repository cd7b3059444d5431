"""Archive encoder protocol.

An encoder frames entries into a container format and pushes the encoded
bytes into an ``OutputSink``.  Entries are strictly sequential: an entry
must be ended before the next one begins.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class EntryWriter(Protocol):
    """Writable handle for the entry currently open in an encoder."""

    async def write(self, data: bytes) -> None:
        """Append *data* to the entry; returns once the sink accepted it."""
        ...


@runtime_checkable
class ArchiveEncoder(Protocol):
    """Protocol every archive encoder must implement."""

    async def begin_entry(self, name: str, size: int | None = None) -> EntryWriter:
        """Open the next entry.  *size* is a hint, when known."""
        ...

    async def end_entry(self) -> None:
        """Close the open entry."""
        ...

    async def finalize(self) -> None:
        """Write the trailer and close the underlying sink."""
        ...

    async def abort(self) -> None:
        """Stop encoding without producing a valid archive."""
        ...
