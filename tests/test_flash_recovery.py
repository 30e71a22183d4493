"""Tests for flash/recovery.py - retry or abandon after a failure."""

from unittest.mock import MagicMock

import pytest

from imageflasher.flash.recovery import resolve_flash_error
from imageflasher.flash.state import (
    StateTransitionError,
    finish_flashing,
    initial_state,
    start_flashing,
)
from imageflasher.telemetry import RESTART_AFTER_FAILURE


def _error_state():
    return finish_flashing(start_flashing(initial_state()), "Not enough space")


class TestResolveFlashError:
    """Tests for resolve_flash_error."""

    def test_retry_keeps_selection(self, selection) -> None:
        """Retrying logs one restart event and keeps the selection."""
        telemetry = MagicMock()

        state = resolve_flash_error(
            _error_state(), True, selection=selection, telemetry=telemetry
        )

        assert state.is_idle
        assert state.error_message is None
        telemetry.log_event.assert_called_once_with(RESTART_AFTER_FAILURE)
        assert selection.image is not None
        assert selection.get_selected_devices() == ["/dev/sdb"]

    def test_abandon_clears_selection(self, selection) -> None:
        """Abandoning clears the selection and logs nothing."""
        telemetry = MagicMock()

        state = resolve_flash_error(
            _error_state(), False, selection=selection, telemetry=telemetry
        )

        assert state.is_idle
        telemetry.log_event.assert_not_called()
        assert selection.image is None
        assert selection.get_selected_devices() == []

    def test_requires_held_error(self, selection) -> None:
        """There is nothing to recover from when idle."""
        with pytest.raises(StateTransitionError):
            resolve_flash_error(
                initial_state(), True, selection=selection, telemetry=MagicMock()
            )
