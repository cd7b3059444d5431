"""Fetch tasks — one artifact resolution with its own cancellation handle."""

from __future__ import annotations

import asyncio
import logging
from typing import Union

from pydantic import BaseModel, ConfigDict

from streampack.models.targets import Target
from streampack.sources import ArtifactSource, ByteStream

logger = logging.getLogger(__name__)


class FetchSuccess(BaseModel):
    """The target resolved into a readable stream."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    index: int
    target_name: str
    stream: ByteStream


class FetchFailure(BaseModel):
    """The target could not be resolved; ``cause`` is the source error."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    index: int
    target_name: str
    cause: BaseException


FetchOutcome = Union[FetchSuccess, FetchFailure]


class FetchTask:
    """Resolves a single target through an ``ArtifactSource``.

    A fetch task produces exactly one ``FetchOutcome``: source errors are
    captured as ``FetchFailure`` rather than raised.  Cancellation is not
    an outcome: :meth:`cancel` aborts the in-flight transfer and the task
    ends without producing anything.

    Parameters
    ----------
    target:
        The target to resolve.
    source:
        The source used to resolve it.
    """

    def __init__(self, target: Target, source: ArtifactSource) -> None:
        self.target = target
        self._source = source
        self._task: asyncio.Task | None = None

    @property
    def index(self) -> int:
        return self.target.index

    def bind(self, task: asyncio.Task) -> None:
        """Attach the asyncio task driving this fetch, for :meth:`cancel`."""
        self._task = task

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    async def run(self) -> FetchOutcome:
        """Resolve the target.  Only ``asyncio.CancelledError`` escapes.

        A source that returns something other than a ``ByteStream`` yields
        a ``FetchFailure`` like any other source error.
        """
        try:
            stream = await self._source.resolve(self.target)
            return FetchSuccess(index=self.index, target_name=self.target.name, stream=stream)
        except asyncio.CancelledError:
            logger.debug("Fetch of %s cancelled", self.target.name)
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("Fetch of %s failed: %s", self.target.name, exc)
            return FetchFailure(index=self.index, target_name=self.target.name, cause=exc)

    def cancel(self) -> bool:
        """Request cancellation of the in-flight resolution."""
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()
