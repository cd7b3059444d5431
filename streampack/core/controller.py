"""Pipeline lifecycle state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- First terminal transition wins; later failures and cancels are no-ops
- Abort hooks run exactly once, on entering FAILED or CANCELLED
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from streampack.core.errors import PipelineCancelledError, PipelineError
from streampack.models.pipeline import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    PipelineState,
)

logger = logging.getLogger(__name__)

AbortHook = Callable[[PipelineError], None]


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class PipelineController:
    """Owns the lifecycle state of one pipeline run.

    Components register abort hooks with :meth:`on_abort`; they are called
    synchronously, in registration order, with the terminal error when the
    pipeline enters FAILED or CANCELLED.

    Parameters
    ----------
    run_id:
        Identifier used in log messages.
    """

    def __init__(self, run_id: str = "") -> None:
        self.run_id = run_id
        self._state = PipelineState.RUNNING
        self._error: PipelineError | None = None
        self._abort_hooks: list[AbortHook] = []

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == PipelineState.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def error(self) -> PipelineError | None:
        """The single terminal error, once FAILED or CANCELLED."""
        return self._error

    def on_abort(self, hook: AbortHook) -> None:
        """Register a hook to run when the pipeline fails or is cancelled."""
        self._abort_hooks.append(hook)

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(self, target_state: PipelineState) -> None:
        """Move to *target_state*, validating against VALID_TRANSITIONS.

        Raises
        ------
        InvalidTransitionError
            If the transition is not allowed from the current state.
        """
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition pipeline {self.run_id} from {self._state.value} "
                f"to {target_state.value}. Allowed: {sorted(s.value for s in allowed)}"
            )
        logger.debug("Pipeline %s: %s -> %s", self.run_id, self._state.value, target_state.value)
        self._state = target_state

    def complete(self) -> bool:
        """Enter COMPLETED.  Returns ``False`` if already terminal."""
        if self.is_terminal:
            return False
        self.transition(PipelineState.COMPLETED)
        logger.info("Pipeline %s completed", self.run_id)
        return True

    def fail(self, error: PipelineError) -> bool:
        """Enter FAILED with *error*.  Returns ``False`` if already terminal."""
        if self.is_terminal:
            logger.debug(
                "Pipeline %s already %s; ignoring failure: %s",
                self.run_id,
                self._state.value,
                error,
            )
            return False
        self.transition(PipelineState.FAILED)
        logger.error("Pipeline %s failed: %s", self.run_id, error)
        self._abort(error)
        return True

    def cancel(self, reason: str = "cancelled by caller") -> bool:
        """Enter CANCELLED.  Idempotent: returns ``False`` if already terminal."""
        if self.is_terminal:
            return False
        self.transition(PipelineState.CANCELLED)
        logger.warning("Pipeline %s cancelled: %s", self.run_id, reason)
        self._abort(PipelineCancelledError(reason))
        return True

    def _abort(self, error: PipelineError) -> None:
        self._error = error
        for hook in self._abort_hooks:
            try:
                hook(error)
            except Exception as exc:  # noqa: BLE001
                logger.error("Pipeline %s: abort hook %r failed: %s", self.run_id, hook, exc)
