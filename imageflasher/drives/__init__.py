"""Drive discovery, constraints and selection.

This module handles:
- Enumerating whole block devices as Target snapshots
- Evaluating the risk statuses of a target for an image
- Tracking the selected image and target devices
"""

from imageflasher.drives.constraints import (
    RiskOracle,
    get_risk_statuses,
    make_risk_oracle,
)
from imageflasher.drives.device import SourceImage, Target, list_drives
from imageflasher.drives.selection import (
    AvailableDrives,
    DriveLockedError,
    DriveNotFoundError,
    ImageNotFoundError,
    SelectionError,
    SelectionState,
)

__all__ = [
    # Device
    "SourceImage",
    "Target",
    "list_drives",
    # Constraints
    "RiskOracle",
    "get_risk_statuses",
    "make_risk_oracle",
    # Selection
    "AvailableDrives",
    "DriveLockedError",
    "DriveNotFoundError",
    "ImageNotFoundError",
    "SelectionError",
    "SelectionState",
]
