"""Safety gate in front of the destructive write.

Every selected target goes through the risk oracle. A selection without any
risk status proceeds straight to the orchestrator; anything else interrupts
the attempt with a warning the user has to confirm.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from imageflasher.drives.constraints import RiskOracle, get_risk_statuses
from imageflasher.drives.device import SourceImage, Target
from imageflasher.flash.state import TargetWithWarnings
from imageflasher.types import RiskStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateDecision:
    """Outcome of the safety evaluation.

    Attributes:
        proceed: True when the write may start without confirmation.
        system_drive_warning: True when any target is a system drive.
        warning_targets: Targets to list in the warning (empty if proceeding).
    """

    proceed: bool
    system_drive_warning: bool = False
    warning_targets: tuple[TargetWithWarnings, ...] = ()


def evaluate_targets(
    targets: Sequence[Target],
    image: SourceImage | None,
    oracle: RiskOracle = get_risk_statuses,
) -> list[TargetWithWarnings]:
    """Attach freshly evaluated risk statuses to each target."""
    return [TargetWithWarnings(target, oracle(target, image)) for target in targets]


def select_warning_targets(
    evaluated: Sequence[TargetWithWarnings],
) -> tuple[bool, tuple[TargetWithWarnings, ...]]:
    """Pick the targets a warning should list.

    System drives take priority: when any target carries ``system-drive``,
    the list holds every target that is itself a system drive. Otherwise it
    holds every target carrying ``oversized``.

    Returns:
        Tuple of (system_drive_warning, warning targets).
    """
    system_drive_warning = any(
        t.has_status(RiskStatus.SYSTEM_DRIVE) for t in evaluated
    )
    if system_drive_warning:
        listed = tuple(t for t in evaluated if t.is_system)
    else:
        listed = tuple(t for t in evaluated if t.has_status(RiskStatus.OVERSIZED))
    return system_drive_warning, listed


def check_targets(
    targets: Sequence[Target],
    image: SourceImage | None,
    *,
    is_flashing: bool,
    oracle: RiskOracle = get_risk_statuses,
) -> GateDecision | None:
    """Decide whether an attempt may proceed directly.

    Args:
        targets: Selected targets, already resolved to Target snapshots.
        image: Image under write.
        is_flashing: Whether an attempt is already in flight.
        oracle: Risk status oracle.

    Returns:
        The decision, or None when the selection is empty or an attempt is
        in flight (nothing to evaluate).
    """
    if not targets or is_flashing:
        return None

    evaluated = evaluate_targets(targets, image, oracle)
    if not any(t.statuses for t in evaluated):
        return GateDecision(proceed=True)

    system_drive_warning, listed = select_warning_targets(evaluated)
    logger.info(
        "Flash needs confirmation: system_drive_warning=%s, targets=%s",
        system_drive_warning,
        [t.device for t in listed],
    )
    return GateDecision(
        proceed=False,
        system_drive_warning=system_drive_warning,
        warning_targets=listed,
    )


__all__ = [
    "GateDecision",
    "check_targets",
    "evaluate_targets",
    "select_warning_targets",
]
