"""Shared type definitions for imageflasher.

This module contains enums and small dataclasses shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum


class RiskStatus(str, Enum):
    """Safety concern attached to a target for the selected image."""

    SYSTEM_DRIVE = "system-drive"
    OVERSIZED = "oversized"
    LOCKED = "locked"


class AttemptPhase(str, Enum):
    """Phase of the flash attempt state machine."""

    IDLE = "idle"
    WARNING_PENDING = "warning-pending"
    FLASHING = "flashing"
    ERROR_PENDING = "error-pending"


class OutcomeKind(str, Enum):
    """Terminal classification of a flash attempt."""

    SUCCESS = "success"
    PARTIAL_FAILURE = "partial-failure"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    ERROR = "error"


class FailureKind(str, Enum):
    """Category of a failure raised by the write engine."""

    VALIDATION = "validation"
    DEVICE_UNPLUGGED = "device-unplugged"
    INPUT_OUTPUT = "input-output"
    INSUFFICIENT_SPACE = "insufficient-space"
    WORKER_PROCESS_DIED = "worker-process-died"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class DeviceCounts:
    """Per-target tally of a write."""

    successful: int = 0
    failed: int = 0


__all__ = [
    "AttemptPhase",
    "DeviceCounts",
    "FailureKind",
    "OutcomeKind",
    "RiskStatus",
]
