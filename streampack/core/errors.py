"""Error taxonomy for the fetch / sequence / emit pipeline.

Every terminal failure surfaced to a caller is a ``PipelineError`` carrying
the name of the target that triggered it (if any) and the underlying cause.
Source-level errors (``ArtifactSourceError`` and subclasses) are raised by
artifact sources and wrapped into ``SourceFetchError`` by the pipeline.
"""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for terminal pipeline errors.

    Attributes
    ----------
    target_name:
        Archive entry name of the target that triggered the failure, or
        ``None`` when no single target is responsible.
    cause:
        The underlying exception, or a human-readable reason string.
    """

    def __init__(
        self,
        message: str,
        *,
        target_name: str | None = None,
        cause: BaseException | str | None = None,
    ) -> None:
        super().__init__(message)
        self.target_name = target_name
        self.cause = cause


class SourceFetchError(PipelineError):
    """Resolving or reading an artifact source failed."""

    def __init__(self, target_name: str, cause: BaseException | str) -> None:
        super().__init__(
            f"Failed to fetch {target_name!r}: {cause}",
            target_name=target_name,
            cause=cause,
        )


class SinkWriteError(PipelineError):
    """The archive encoder or output sink rejected a write."""

    def __init__(
        self, cause: BaseException | str, *, target_name: str | None = None
    ) -> None:
        where = f" while writing {target_name!r}" if target_name else ""
        super().__init__(
            f"Output sink failed{where}: {cause}",
            target_name=target_name,
            cause=cause,
        )


class PipelineCancelledError(PipelineError):
    """The pipeline was cancelled on request of its caller."""

    def __init__(self, reason: str = "cancelled by caller") -> None:
        super().__init__(f"Pipeline cancelled: {reason}", cause=reason)


class ProtocolViolationError(PipelineError):
    """An internal sequencing contract was broken (fatal, never expected)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, cause=message)


# ---------------------------------------------------------------------------
# Source-level errors
# ---------------------------------------------------------------------------


class ArtifactSourceError(RuntimeError):
    """Raised by an artifact source when it cannot produce a byte stream."""


class NetworkError(ArtifactSourceError):
    """Transport-level failure: connection, TLS, timeout, broken body."""


class HttpStatusError(ArtifactSourceError):
    """The remote answered with a non-success HTTP status."""

    def __init__(self, status_code: int, url: str, reason: str = "") -> None:
        detail = f" {reason}" if reason else ""
        super().__init__(f"HTTP {status_code}{detail} for {url}")
        self.status_code = status_code
        self.url = url
