"""Flash attempt orchestration.

This module handles:
- Safety evaluation of the selected drives before a destructive write
- Single-flight orchestration of the write engine
- Outcome classification and notification
- Recovery after a failed attempt
- Attempt history

The state of the flash step is an immutable value (see flash.state); the
FlashController owns it and publishes every change to subscribers.
"""

from imageflasher.flash.controller import FlashController
from imageflasher.flash.errors import (
    FlashFailure,
    classify_failure,
    get_error_message_from_code,
)
from imageflasher.flash.gate import GateDecision, check_targets
from imageflasher.flash.orchestrator import (
    AttemptOutcome,
    FlashOrchestrator,
    SingleFlight,
)
from imageflasher.flash.recovery import resolve_flash_error
from imageflasher.flash.state import (
    FlashAttemptState,
    StateTransitionError,
    TargetWithWarnings,
)
from imageflasher.flash.writer import FileWriteEngine, WriteEngine, WriteSummary

__all__ = [
    # Controller
    "FlashController",
    # Errors
    "FlashFailure",
    "classify_failure",
    "get_error_message_from_code",
    # Gate
    "GateDecision",
    "check_targets",
    # Orchestrator
    "AttemptOutcome",
    "FlashOrchestrator",
    "SingleFlight",
    # Recovery
    "resolve_flash_error",
    # State
    "FlashAttemptState",
    "StateTransitionError",
    "TargetWithWarnings",
    # Writer
    "FileWriteEngine",
    "WriteEngine",
    "WriteSummary",
]
