"""Drive discovery for flashing.

This module turns the block devices of the running system into Target
snapshots:
- Enumerate whole block devices from sysfs (partitions never show up)
- Detect the device that holds the root filesystem
- Read size, model, removable and read-only flags
- Collect mount points of a device and its partitions

Targets are immutable snapshots; rescanning produces new objects.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

SYS_BLOCK_PATH = Path("/sys/block")
PROC_MOUNTS_PATH = Path("/proc/mounts")

# Virtual devices that are never flash targets
_IGNORED_PREFIXES = ("loop", "ram", "zram", "dm-", "md", "sr", "fd")

# /dev/sdX1, /dev/hdX1, /dev/vdX1
_PARTITION_PATTERN_SD = re.compile(r"^/dev/[shv]d[a-z]+(\d+)$")
# /dev/nvme0n1p1, /dev/mmcblk0p1, /dev/loop0p1
_PARTITION_PATTERN_P = re.compile(r"^/dev/(?:nvme\d+n\d+|mmcblk\d+|loop\d+)p(\d+)$")


@dataclass(frozen=True)
class Target:
    """A physical destination device eligible for writing.

    Attributes:
        device: Stable identifier, the device path (e.g., '/dev/sdb').
        description: Human readable name (usually the model string).
        display_name: Short name shown next to the description.
        size_bytes: Capacity in bytes (if known).
        is_system: Whether the device is internal or holds the running system.
        is_read_only: Whether the device is write protected.
        mount_points: Mount points of the device and its partitions.
    """

    device: str
    description: str
    display_name: str
    size_bytes: int | None = None
    is_system: bool = False
    is_read_only: bool = False
    mount_points: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SourceImage:
    """The image file to be written."""

    path: str
    size_bytes: int | None = None

    @property
    def basename(self) -> str:
        """File name of the image without its directory."""
        return os.path.basename(self.path)

    @classmethod
    def from_path(cls, path: str | Path) -> "SourceImage":
        """Create a SourceImage, reading the size from disk."""
        path = Path(path)
        return cls(path=str(path), size_bytes=path.stat().st_size)


def is_partition_path(device_path: str) -> bool:
    """Check if a device path looks like a partition.

    Args:
        device_path: Path to the device.

    Returns:
        True if the path appears to be a partition, False otherwise.
    """
    return bool(
        _PARTITION_PATTERN_SD.match(device_path)
        or _PARTITION_PATTERN_P.match(device_path)
    )


def partition_to_whole_device(partition_path: str) -> str:
    """Convert a partition path to its whole device path.

    Args:
        partition_path: Path to a partition (e.g., '/dev/sda1').

    Returns:
        Path to the whole device (e.g., '/dev/sda'). Paths that are not
        partitions are returned as-is.
    """
    match = _PARTITION_PATTERN_SD.match(partition_path)
    if match:
        return partition_path[: -len(match.group(1))]

    match = _PARTITION_PATTERN_P.match(partition_path)
    if match:
        return partition_path[: partition_path.rfind("p")]

    return partition_path


def _read_mounts(mounts_path: Path) -> list[tuple[str, str]]:
    try:
        text = mounts_path.read_text()
    except OSError:
        logger.warning("Could not read %s, assuming nothing is mounted", mounts_path)
        return []

    entries = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            entries.append((parts[0], parts[1]))
    return entries


def get_root_device(mounts_path: Path = PROC_MOUNTS_PATH) -> str | None:
    """Get the whole device that contains the root filesystem.

    Returns:
        Path to the root device, or None if unknown.
    """
    for device, mount_point in _read_mounts(mounts_path):
        if mount_point == "/":
            return partition_to_whole_device(device)
    return None


def get_mount_points(
    device_path: str, mounts_path: Path = PROC_MOUNTS_PATH
) -> list[str]:
    """Get mount points for a device and its partitions.

    Args:
        device_path: Path to the device (e.g., '/dev/sda').
        mounts_path: Mount table to parse.

    Returns:
        List of mount points (empty if none mounted).
    """
    mount_points: list[str] = []
    for mounted_device, mount_point in _read_mounts(mounts_path):
        if mounted_device == device_path:
            mount_points.append(mount_point)
        elif (
            is_partition_path(mounted_device)
            and partition_to_whole_device(mounted_device) == device_path
        ):
            mount_points.append(mount_point)
    return mount_points


def _read_sysfs(path: Path) -> str | None:
    try:
        return path.read_text().strip()
    except OSError:
        return None


def read_target(
    name: str,
    *,
    sys_block: Path = SYS_BLOCK_PATH,
    mounts_path: Path = PROC_MOUNTS_PATH,
    root_device: str | None = None,
) -> Target:
    """Build a Target for one sysfs block device entry.

    Args:
        name: Kernel name of the device (e.g., 'sdb').
        sys_block: sysfs block directory.
        mounts_path: Mount table to parse.
        root_device: Device holding the root filesystem, if known.

    Returns:
        Target snapshot.
    """
    base = sys_block / name
    device_path = f"/dev/{name}"

    size_bytes: int | None = None
    sectors = _read_sysfs(base / "size")
    if sectors is not None:
        try:
            # Size is in 512-byte sectors
            size_bytes = int(sectors) * 512
        except ValueError:
            logger.warning("Could not parse size for %s: %r", device_path, sectors)

    removable = _read_sysfs(base / "removable") == "1"
    read_only = _read_sysfs(base / "ro") == "1"
    model = _read_sysfs(base / "device" / "model")

    return Target(
        device=device_path,
        description=model or name,
        display_name=device_path,
        size_bytes=size_bytes,
        is_system=(device_path == root_device) or not removable,
        is_read_only=read_only,
        mount_points=tuple(get_mount_points(device_path, mounts_path)),
    )


def list_drives(
    *,
    sys_block: Path = SYS_BLOCK_PATH,
    mounts_path: Path = PROC_MOUNTS_PATH,
) -> list[Target]:
    """Enumerate whole block devices.

    Args:
        sys_block: sysfs block directory.
        mounts_path: Mount table to parse.

    Returns:
        Targets sorted by device path.
    """
    try:
        names = sorted(entry.name for entry in sys_block.iterdir())
    except OSError:
        logger.warning("Could not list %s, no drives found", sys_block)
        return []

    root_device = get_root_device(mounts_path)
    targets = [
        read_target(
            name,
            sys_block=sys_block,
            mounts_path=mounts_path,
            root_device=root_device,
        )
        for name in names
        if not name.startswith(_IGNORED_PREFIXES)
    ]
    logger.debug("Discovered %d drive(s)", len(targets))
    return targets


__all__ = [
    "SourceImage",
    "Target",
    "get_mount_points",
    "get_root_device",
    "is_partition_path",
    "list_drives",
    "partition_to_whole_device",
    "read_target",
]
