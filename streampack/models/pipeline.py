"""Pipeline lifecycle models — state machine, options, and results."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from streampack.config import StreampackConfig


class PipelineState(str, Enum):
    """Lifecycle state of one pipeline run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Valid state transitions, enforced by PipelineController.
# Terminal states are absorbing: no outgoing transitions.
VALID_TRANSITIONS: dict[PipelineState, set[PipelineState]] = {
    PipelineState.RUNNING: {
        PipelineState.COMPLETED,
        PipelineState.FAILED,
        PipelineState.CANCELLED,
    },
    PipelineState.COMPLETED: set(),  # terminal
    PipelineState.FAILED: set(),  # terminal
    PipelineState.CANCELLED: set(),  # terminal
}

TERMINAL_STATES: frozenset[PipelineState] = frozenset(
    state for state, allowed in VALID_TRANSITIONS.items() if not allowed
)


class Compression(str, Enum):
    STORED = "stored"
    DEFLATED = "deflated"


class PipelineOptions(BaseModel):
    """Per-invocation options.

    Parameters
    ----------
    concurrency:
        Maximum number of fetches in flight at once (K).
    chunk_size:
        Read size used by the built-in sources.
    compression:
        Entry compression used by the zip encoder.
    compress_level:
        Optional zlib level for ``deflated``.
    force_zip64:
        Write ZIP64 headers for every entry (needed for entries > 4 GiB).
    http_timeout_seconds:
        Transport timeout for the built-in remote source.
    user_agent:
        ``User-Agent`` header sent by the built-in remote source.
    """

    model_config = ConfigDict(frozen=True)

    concurrency: int = Field(default=5, ge=1)
    chunk_size: int = Field(default=64 * 1024, ge=1)
    compression: Compression = Compression.DEFLATED
    compress_level: int | None = Field(default=None, ge=0, le=9)
    force_zip64: bool = False
    http_timeout_seconds: float = Field(default=30.0, gt=0)
    user_agent: str = "streampack/0.1"

    @classmethod
    def from_config(cls, cfg: StreampackConfig, **overrides: object) -> PipelineOptions:
        """Build options from the environment-driven config, then apply overrides."""
        values: dict[str, object] = {
            "concurrency": cfg.concurrency,
            "chunk_size": cfg.chunk_size,
            "compression": cfg.compression,
            "compress_level": cfg.compress_level,
            "force_zip64": cfg.force_zip64,
            "http_timeout_seconds": cfg.http_timeout_seconds,
            "user_agent": cfg.user_agent,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


class PipelineResult(BaseModel):
    """Outcome of a run that reached COMPLETED."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    state: PipelineState = PipelineState.COMPLETED
    entries_written: int = 0
    bytes_written: int = 0
