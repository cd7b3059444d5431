"""Output sink protocol for streamed archives.

All sinks implement the ``OutputSink`` protocol: a ``sink_name`` property,
an awaitable ``write`` that returns only once the bytes were accepted (this
is how backpressure reaches the pipeline), ``close`` to commit the output
and ``abort`` to discard partial output.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class OutputSink(Protocol):
    """Protocol that every streampack sink must implement.

    Attributes
    ----------
    sink_name : str
        A human-readable identifier for this sink instance
        (e.g. ``"file:out.zip"``, ``"memory"``).
    """

    @property
    def sink_name(self) -> str:
        """Return the name of this sink."""
        ...

    async def write(self, data: bytes) -> None:
        """Accept *data*; return once the sink is ready for more."""
        ...

    async def close(self) -> None:
        """Commit everything written so far."""
        ...

    async def abort(self) -> None:
        """Discard partial output.  Must be idempotent and never raise for
        an already closed or aborted sink."""
        ...


class SinkClosedError(RuntimeError):
    """Raised when writing to a sink that was already closed or aborted."""
