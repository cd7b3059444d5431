"""Streampack: concurrent fetch, strictly ordered single-pass archive streaming.

Fetches many artifacts (remote URLs or in-memory content) with bounded
concurrency and streams them, in target order, into one zip archive
written to a sink.  Any artifact failure aborts the whole run and reports
the artifact that caused it.
"""

__version__ = "0.1.0"
__description__ = (
    "Concurrent fetch, strictly ordered single-pass archive streaming"
)

from streampack.core.errors import (
    PipelineCancelledError,
    PipelineError,
    SinkWriteError,
    SourceFetchError,
)
from streampack.core.pipeline import Pipeline, PipelineHandle, run_pipeline, start
from streampack.models import InlineContent, PipelineOptions, PipelineResult, RemoteRef, Target

__all__ = [
    "InlineContent",
    "Pipeline",
    "PipelineCancelledError",
    "PipelineError",
    "PipelineHandle",
    "PipelineOptions",
    "PipelineResult",
    "RemoteRef",
    "SinkWriteError",
    "SourceFetchError",
    "Target",
    "__version__",
    "run_pipeline",
    "start",
]
