"""Drive/image compatibility constraints.

Pure predicates that decide which risk statuses a target carries for the
image being written. Nothing here performs I/O.
"""

from collections.abc import Callable

from imageflasher.config import DEFAULT_LARGE_DRIVE_SIZE
from imageflasher.drives.device import SourceImage, Target
from imageflasher.types import RiskStatus

RiskOracle = Callable[[Target, SourceImage | None], frozenset[RiskStatus]]


def is_drive_locked(target: Target) -> bool:
    """Check if the target is write protected."""
    return target.is_read_only


def is_system_drive(target: Target) -> bool:
    """Check if the target is a system drive."""
    return target.is_system


def is_drive_size_large(
    target: Target, large_drive_size: int = DEFAULT_LARGE_DRIVE_SIZE
) -> bool:
    """Check if the target is unusually large for a removable drive."""
    return target.size_bytes is not None and target.size_bytes > large_drive_size


def get_risk_statuses(
    target: Target,
    image: SourceImage | None = None,
    *,
    large_drive_size: int = DEFAULT_LARGE_DRIVE_SIZE,
) -> frozenset[RiskStatus]:
    """Evaluate the risk statuses of a target.

    A locked drive only reports ``locked``; the system and size checks are
    meaningless for a drive that can't be written.

    Args:
        target: Drive to evaluate.
        image: Image under write (unused by the current checks).
        large_drive_size: Threshold in bytes for the ``oversized`` status.

    Returns:
        Set of risk statuses, empty when the drive is safe to flash.
    """
    if is_drive_locked(target):
        return frozenset({RiskStatus.LOCKED})

    statuses: set[RiskStatus] = set()
    if is_system_drive(target):
        statuses.add(RiskStatus.SYSTEM_DRIVE)
    if is_drive_size_large(target, large_drive_size):
        statuses.add(RiskStatus.OVERSIZED)
    return frozenset(statuses)


def make_risk_oracle(large_drive_size: int = DEFAULT_LARGE_DRIVE_SIZE) -> RiskOracle:
    """Bind the size threshold into a two-argument oracle."""

    def oracle(target: Target, image: SourceImage | None) -> frozenset[RiskStatus]:
        return get_risk_statuses(target, image, large_drive_size=large_drive_size)

    return oracle


__all__ = [
    "RiskOracle",
    "get_risk_statuses",
    "is_drive_locked",
    "is_drive_size_large",
    "is_system_drive",
    "make_risk_oracle",
]
