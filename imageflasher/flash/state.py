"""Flash attempt state machine.

The state is an immutable value. Every change goes through one of the pure
transition functions below, which validate the source phase and return a new
value; callers publish the result to whoever renders it.

    IDLE ──warning──▶ WARNING_PENDING ──resolve──▶ IDLE
    IDLE ──start────▶ FLASHING ──finish──▶ IDLE | ERROR_PENDING
    ERROR_PENDING ──clear_error──▶ IDLE
"""

from dataclasses import dataclass, field, replace
from typing import Any

from imageflasher.drives.device import Target
from imageflasher.types import AttemptPhase, RiskStatus


class StateTransitionError(Exception):
    """A transition was requested from a phase that does not allow it."""

    def __init__(self, transition: str, phase: AttemptPhase) -> None:
        super().__init__(f"Cannot {transition} while {phase.value}")
        self.message = str(self)
        self.error_code = "INVALID_TRANSITION"
        self.transition = transition
        self.phase = phase


@dataclass(frozen=True)
class TargetWithWarnings:
    """A target decorated with the risk statuses evaluated for this attempt."""

    target: Target
    statuses: frozenset[RiskStatus] = frozenset()

    @property
    def device(self) -> str:
        return self.target.device

    @property
    def is_system(self) -> bool:
        return self.target.is_system

    def has_status(self, status: RiskStatus) -> bool:
        return status in self.statuses


@dataclass(frozen=True)
class FlashAttemptState:
    """Process-local state of the flash step.

    Attributes:
        phase: Current phase of the attempt.
        error_message: User-visible message of the last failed attempt.
        system_drive_warning: Whether the pending warning concerns system drives.
        pending_warning_targets: Targets listed in the pending warning.
    """

    phase: AttemptPhase = AttemptPhase.IDLE
    error_message: str | None = None
    system_drive_warning: bool = False
    pending_warning_targets: tuple[TargetWithWarnings, ...] = field(
        default_factory=tuple
    )

    @property
    def is_flashing(self) -> bool:
        return self.phase is AttemptPhase.FLASHING

    @property
    def warning_pending(self) -> bool:
        return self.phase is AttemptPhase.WARNING_PENDING

    @property
    def error_pending(self) -> bool:
        return self.phase is AttemptPhase.ERROR_PENDING

    @property
    def is_idle(self) -> bool:
        return self.phase is AttemptPhase.IDLE

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "phase": self.phase.value,
            "is_flashing": self.is_flashing,
            "warning_pending": self.warning_pending,
            "error_message": self.error_message,
            "system_drive_warning": self.system_drive_warning,
            "pending_warning_targets": [
                {
                    "device": t.device,
                    "description": t.target.description,
                    "size_bytes": t.target.size_bytes,
                    "statuses": sorted(s.value for s in t.statuses),
                }
                for t in self.pending_warning_targets
            ],
        }


def _require(state: FlashAttemptState, phase: AttemptPhase, transition: str) -> None:
    if state.phase is not phase:
        raise StateTransitionError(transition, state.phase)


def initial_state() -> FlashAttemptState:
    return FlashAttemptState()


def request_warning(
    state: FlashAttemptState,
    targets: tuple[TargetWithWarnings, ...],
    *,
    system_drive_warning: bool,
) -> FlashAttemptState:
    """Interrupt the attempt with a drive status warning."""
    _require(state, AttemptPhase.IDLE, "show a warning")
    return replace(
        state,
        phase=AttemptPhase.WARNING_PENDING,
        system_drive_warning=system_drive_warning,
        pending_warning_targets=tuple(targets),
    )


def resolve_warning(state: FlashAttemptState) -> FlashAttemptState:
    """Dismiss the pending warning, whatever the user decided."""
    _require(state, AttemptPhase.WARNING_PENDING, "resolve a warning")
    return replace(
        state,
        phase=AttemptPhase.IDLE,
        system_drive_warning=False,
        pending_warning_targets=(),
    )


def start_flashing(state: FlashAttemptState) -> FlashAttemptState:
    _require(state, AttemptPhase.IDLE, "start flashing")
    return replace(state, phase=AttemptPhase.FLASHING, error_message=None)


def finish_flashing(
    state: FlashAttemptState, error_message: str | None = None
) -> FlashAttemptState:
    """Leave the flashing phase, holding the error message if there is one."""
    _require(state, AttemptPhase.FLASHING, "finish flashing")
    if error_message:
        return replace(
            state, phase=AttemptPhase.ERROR_PENDING, error_message=error_message
        )
    return replace(state, phase=AttemptPhase.IDLE, error_message=None)


def clear_error(state: FlashAttemptState) -> FlashAttemptState:
    """Drop the held error and return to idle."""
    _require(state, AttemptPhase.ERROR_PENDING, "clear an error")
    return initial_state()


__all__ = [
    "FlashAttemptState",
    "StateTransitionError",
    "TargetWithWarnings",
    "clear_error",
    "finish_flashing",
    "initial_state",
    "request_warning",
    "resolve_warning",
    "start_flashing",
]
