"""Tests for flash/state.py - the attempt state machine."""

import pytest
from conftest import make_target

from imageflasher.flash.state import (
    FlashAttemptState,
    StateTransitionError,
    TargetWithWarnings,
    clear_error,
    finish_flashing,
    initial_state,
    request_warning,
    resolve_warning,
    start_flashing,
)
from imageflasher.types import AttemptPhase, RiskStatus


def _warned():
    return (
        TargetWithWarnings(
            make_target("/dev/sda", is_system=True),
            frozenset({RiskStatus.SYSTEM_DRIVE}),
        ),
    )


class TestInitialState:
    """Tests for the initial state."""

    def test_idle(self) -> None:
        """The flow starts idle with nothing pending."""
        state = initial_state()
        assert state.phase is AttemptPhase.IDLE
        assert state.is_idle
        assert not state.is_flashing
        assert not state.warning_pending
        assert state.error_message is None
        assert state.pending_warning_targets == ()


class TestTransitions:
    """Tests for the pure transition functions."""

    def test_warning_round_trip(self) -> None:
        """A warning is shown and dismissed."""
        state = request_warning(
            initial_state(), _warned(), system_drive_warning=True
        )
        assert state.warning_pending
        assert not state.is_flashing
        assert state.system_drive_warning is True
        assert state.pending_warning_targets[0].device == "/dev/sda"

        state = resolve_warning(state)
        assert state.is_idle
        assert state.pending_warning_targets == ()
        assert state.system_drive_warning is False

    def test_flash_success(self) -> None:
        """A successful attempt returns to idle."""
        state = start_flashing(initial_state())
        assert state.is_flashing
        assert not state.warning_pending
        assert finish_flashing(state) == initial_state()

    def test_flash_failure_holds_error(self) -> None:
        """A failed attempt holds its message until cleared."""
        state = finish_flashing(start_flashing(initial_state()), "Not enough space")
        assert state.error_pending
        assert state.error_message == "Not enough space"

        state = clear_error(state)
        assert state.is_idle
        assert state.error_message is None

    def test_cannot_flash_twice(self) -> None:
        """Starting while flashing is rejected."""
        with pytest.raises(StateTransitionError) as exc_info:
            start_flashing(start_flashing(initial_state()))
        assert exc_info.value.phase is AttemptPhase.FLASHING
        assert exc_info.value.error_code == "INVALID_TRANSITION"

    def test_cannot_warn_while_flashing(self) -> None:
        """Warning and flashing are mutually exclusive."""
        with pytest.raises(StateTransitionError):
            request_warning(
                start_flashing(initial_state()), (), system_drive_warning=False
            )

    def test_cannot_flash_while_warning(self) -> None:
        """A pending warning has to be resolved first."""
        state = request_warning(initial_state(), (), system_drive_warning=False)
        with pytest.raises(StateTransitionError):
            start_flashing(state)

    def test_clear_error_requires_error(self) -> None:
        """Clearing an error that is not there is rejected."""
        with pytest.raises(StateTransitionError):
            clear_error(initial_state())

    def test_state_is_immutable(self) -> None:
        """State values can't be mutated in place."""
        state = initial_state()
        with pytest.raises(AttributeError):
            state.phase = AttemptPhase.FLASHING  # type: ignore[misc]


class TestToDict:
    """Tests for FlashAttemptState.to_dict."""

    def test_serializes_pending_warning(self) -> None:
        """Pending targets are serialized with their statuses."""
        state = request_warning(
            FlashAttemptState(), _warned(), system_drive_warning=True
        )
        data = state.to_dict()
        assert data["phase"] == "warning-pending"
        assert data["warning_pending"] is True
        assert data["pending_warning_targets"] == [
            {
                "device": "/dev/sda",
                "description": "SanDisk Ultra",
                "size_bytes": 16_000_000_000,
                "statuses": ["system-drive"],
            }
        ]
