"""Streampack data models — all Pydantic v2, all frozen (immutable)."""

from streampack.models.events import EventKind, PipelineEvent
from streampack.models.pipeline import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    Compression,
    PipelineOptions,
    PipelineResult,
    PipelineState,
)
from streampack.models.targets import (
    ArtifactSourceRef,
    InlineContent,
    RemoteRef,
    Target,
    validate_targets,
)

__all__ = [
    # targets
    "ArtifactSourceRef",
    "InlineContent",
    "RemoteRef",
    "Target",
    "validate_targets",
    # pipeline
    "Compression",
    "PipelineOptions",
    "PipelineResult",
    "PipelineState",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    # events
    "EventKind",
    "PipelineEvent",
]
