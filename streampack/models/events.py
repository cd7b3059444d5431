"""Notification events emitted while a pipeline runs."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    STARTED = "started"
    PROGRESS = "progress"
    FAILED = "failed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PipelineEvent(BaseModel):
    """One observable step of a pipeline run.

    ``index`` and ``target_name`` are set for ``progress`` (the entry just
    written) and for ``failed`` when a specific target caused the abort.
    """

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    run_id: str
    total: int = 0
    index: int | None = None
    target_name: str | None = None
    cause: str | None = None
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
