"""Index-ordered slot buffer.

The rendezvous between the Scheduler (single writer per slot, completes in
any order) and the Archive Feeder (single reader, consumes in index order).
Each slot is written once and never reverts, so the only synchronization
needed is a per-slot ``asyncio.Event`` that wakes a waiting reader.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from streampack.core.errors import PipelineError, ProtocolViolationError
from streampack.core.fetch import FetchOutcome, FetchSuccess

logger = logging.getLogger(__name__)


class SlotState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class Slot:
    """Synchronization cell holding one target's fetch outcome."""

    __slots__ = ("index", "outcome", "_ready")

    def __init__(self, index: int) -> None:
        self.index = index
        self.outcome: FetchOutcome | None = None
        self._ready = asyncio.Event()

    @property
    def state(self) -> SlotState:
        return SlotState.PENDING if self.outcome is None else SlotState.RESOLVED

    def __repr__(self) -> str:
        return f"Slot(index={self.index}, state={self.state.value})"


class SlotBuffer:
    """Fixed array of slots, one per target.

    Parameters
    ----------
    size:
        Number of targets (N).  Slots ``0..N-1`` are created PENDING.
    """

    def __init__(self, size: int) -> None:
        self._slots = [Slot(i) for i in range(size)]
        self._next_to_consume = 0
        self._close_error: PipelineError | None = None

    def __len__(self) -> int:
        return len(self._slots)

    def _slot(self, index: int) -> Slot:
        if not 0 <= index < len(self._slots):
            raise ProtocolViolationError(
                f"Slot index {index} out of range 0..{len(self._slots) - 1}"
            )
        return self._slots[index]

    # ------------------------------------------------------------------
    # Writer side
    # ------------------------------------------------------------------

    def resolve(self, index: int, outcome: FetchOutcome) -> None:
        """Record the outcome for *index*.  Each slot accepts exactly one write."""
        slot = self._slot(index)
        if slot.outcome is not None:
            raise ProtocolViolationError(f"Slot {index} was resolved twice")
        slot.outcome = outcome
        slot._ready.set()

    # ------------------------------------------------------------------
    # Reader side
    # ------------------------------------------------------------------

    async def get(self, index: int) -> FetchOutcome:
        """Wait for slot *index* to resolve and return its outcome.

        Raises the buffer's close error if the buffer is closed while the
        slot is still pending.
        """
        slot = self._slot(index)
        if slot.outcome is None:
            if self._close_error is not None:
                raise self._close_error
            await slot._ready.wait()
            if slot.outcome is None:
                assert self._close_error is not None
                raise self._close_error
        return slot.outcome

    def mark_consumed(self, index: int) -> None:
        """Record that slot *index* was fully handed to the encoder."""
        if index != self._next_to_consume:
            raise ProtocolViolationError(
                f"Slot {index} consumed out of order (expected {self._next_to_consume})"
            )
        if self._slot(index).outcome is None:
            raise ProtocolViolationError(f"Slot {index} consumed before it resolved")
        self._next_to_consume += 1

    @property
    def consumed(self) -> int:
        """Number of slots consumed so far."""
        return self._next_to_consume

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self, error: PipelineError) -> None:
        """Unblock every pending ``get`` with *error*.  First call wins."""
        if self._close_error is not None:
            return
        self._close_error = error
        for slot in self._slots:
            if slot.outcome is None:
                slot._ready.set()

    async def aclose_unconsumed(self) -> int:
        """Release streams that resolved but were never consumed.

        Returns the number of streams closed.
        """
        closed = 0
        for slot in self._slots[self._next_to_consume :]:
            if isinstance(slot.outcome, FetchSuccess) and not slot.outcome.stream.closed:
                try:
                    await slot.outcome.stream.aclose()
                except Exception as exc:  # noqa: BLE001
                    logger.debug("Error closing unconsumed stream for slot %d: %s", slot.index, exc)
                closed += 1
        return closed

    def states(self) -> list[SlotState]:
        """Return a snapshot of every slot's state."""
        return [slot.state for slot in self._slots]
