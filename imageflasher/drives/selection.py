"""Selection and available-drives state.

`AvailableDrives` is the last discovery snapshot; `SelectionState` holds the
chosen image and the ids of the chosen targets. The flash core reads both
and, when an attempt ends, clears the snapshot so that a stale device list is
never reused.
"""

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from imageflasher.drives.device import SourceImage, Target, list_drives

logger = logging.getLogger(__name__)


class SelectionError(Exception):
    """Base exception for selection errors."""

    def __init__(self, message: str, error_code: str) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class ImageNotFoundError(SelectionError):
    """Image file does not exist."""

    def __init__(self, image_path: str) -> None:
        super().__init__(
            f"Image file not found: {image_path}", error_code="IMAGE_NOT_FOUND"
        )
        self.image_path = image_path


class DriveNotFoundError(SelectionError):
    """Device is not among the available drives."""

    def __init__(self, device: str) -> None:
        super().__init__(f"Drive not found: {device}", error_code="DRIVE_NOT_FOUND")
        self.device = device


class DriveLockedError(SelectionError):
    """Device is write protected and can't be selected."""

    def __init__(self, device: str) -> None:
        super().__init__(
            f"Drive is write protected: {device}", error_code="DRIVE_LOCKED"
        )
        self.device = device


class AvailableDrives:
    """Snapshot of the drives found by the last scan."""

    def __init__(
        self,
        drives: Iterable[Target] = (),
        scanner: Callable[[], list[Target]] = list_drives,
    ) -> None:
        self._drives: list[Target] = list(drives)
        self._scanner = scanner

    def get_drives(self) -> list[Target]:
        return list(self._drives)

    def set_drives(self, drives: Iterable[Target]) -> None:
        self._drives = list(drives)

    def refresh(self) -> list[Target]:
        """Rescan and replace the snapshot."""
        self._drives = list(self._scanner())
        return self.get_drives()

    def find(self, device: str) -> Target | None:
        for drive in self._drives:
            if drive.device == device:
                return drive
        return None

    def clear(self) -> None:
        logger.debug("Clearing available drives snapshot")
        self._drives = []


class SelectionState:
    """The image and target devices the user picked."""

    def __init__(self, available: AvailableDrives) -> None:
        self.available = available
        self._image: SourceImage | None = None
        self._devices: list[str] = []

    @property
    def image(self) -> SourceImage | None:
        return self._image

    def select_image(self, path: str | Path) -> SourceImage:
        """Select the image to flash.

        Raises:
            ImageNotFoundError: The file does not exist.
        """
        path = Path(path)
        if not path.is_file():
            raise ImageNotFoundError(str(path))
        self._image = SourceImage.from_path(path)
        logger.info("Selected image %s", self._image.basename)
        return self._image

    def deselect_image(self) -> None:
        self._image = None

    def select_drive(self, device: str) -> Target:
        """Add a drive to the selection.

        Raises:
            DriveNotFoundError: The device is not in the available snapshot.
            DriveLockedError: The device is write protected.
        """
        drive = self.available.find(device)
        if drive is None:
            raise DriveNotFoundError(device)
        if drive.is_read_only:
            raise DriveLockedError(device)
        if device not in self._devices:
            self._devices.append(device)
            logger.info("Selected drive %s", device)
        return drive

    def deselect_drive(self, device: str) -> None:
        if device in self._devices:
            self._devices.remove(device)

    def select_all(self, devices: Iterable[str]) -> None:
        """Replace the drive selection."""
        self._devices = []
        for device in devices:
            self.select_drive(device)

    def get_selected_devices(self) -> list[str]:
        return list(self._devices)

    def get_selected_drives(self) -> list[Target]:
        """Resolve the selected ids against the available snapshot.

        Devices that disappeared since they were selected are left out.
        """
        selected = set(self._devices)
        return [d for d in self.available.get_drives() if d.device in selected]

    def has_drive(self) -> bool:
        return bool(self._devices)

    def clear(self) -> None:
        """Forget the selected image and drives."""
        logger.debug("Clearing selection")
        self._image = None
        self._devices = []


__all__ = [
    "AvailableDrives",
    "DriveLockedError",
    "DriveNotFoundError",
    "ImageNotFoundError",
    "SelectionError",
    "SelectionState",
]
