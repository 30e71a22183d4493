"""Recovery after a failed flash attempt.

The user either retries (keep the selection, log the restart) or abandons
(forget the selection). Either way the held error is dropped and the state
returns to idle. Recovery never starts a new attempt by itself.
"""

import logging

from imageflasher.drives.selection import SelectionState
from imageflasher.flash.state import FlashAttemptState, clear_error
from imageflasher.telemetry import RESTART_AFTER_FAILURE, Telemetry

logger = logging.getLogger(__name__)


def resolve_flash_error(
    state: FlashAttemptState,
    retry: bool,
    *,
    selection: SelectionState,
    telemetry: Telemetry,
) -> FlashAttemptState:
    """Resolve a held flash error.

    Args:
        state: Current state; must hold an error.
        retry: True to keep the selection for another attempt.
        selection: Selection to clear when abandoning.
        telemetry: Receives the restart event when retrying.

    Returns:
        The idle state.

    Raises:
        StateTransitionError: No error is held.
    """
    new_state = clear_error(state)
    if retry:
        logger.info("Retrying after failure with the same selection")
        telemetry.log_event(RESTART_AFTER_FAILURE)
    else:
        logger.info("Abandoning failed attempt, clearing selection")
        selection.clear()
    return new_state


__all__ = ["resolve_flash_error"]
