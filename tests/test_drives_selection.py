"""Tests for drives/selection.py - selection and available drives."""

from pathlib import Path

import pytest
from conftest import make_target

from imageflasher.drives.selection import (
    AvailableDrives,
    DriveLockedError,
    DriveNotFoundError,
    ImageNotFoundError,
    SelectionError,
    SelectionState,
)


@pytest.fixture
def available() -> AvailableDrives:
    drives = [
        make_target("/dev/sdb"),
        make_target("/dev/sdc"),
        make_target("/dev/sdd", is_read_only=True),
    ]
    return AvailableDrives(drives, scanner=lambda: list(drives))


class TestAvailableDrives:
    """Tests for AvailableDrives."""

    def test_find(self, available: AvailableDrives) -> None:
        """Drives are found by device path."""
        assert available.find("/dev/sdc").device == "/dev/sdc"
        assert available.find("/dev/sdz") is None

    def test_clear_and_refresh(self, available: AvailableDrives) -> None:
        """Clearing empties the snapshot, refreshing rescans."""
        available.clear()
        assert available.get_drives() == []
        assert len(available.refresh()) == 3
        assert len(available.get_drives()) == 3


class TestSelectionState:
    """Tests for SelectionState."""

    def test_select_image(self, available: AvailableDrives, image_file: Path) -> None:
        """Selecting an image reads its size."""
        selection = SelectionState(available)
        image = selection.select_image(image_file)
        assert selection.image == image
        assert image.basename == "ubuntu.img"
        assert image.size_bytes == image_file.stat().st_size

    def test_select_missing_image(
        self, available: AvailableDrives, tmp_path: Path
    ) -> None:
        """Missing images are rejected."""
        selection = SelectionState(available)
        with pytest.raises(ImageNotFoundError) as exc_info:
            selection.select_image(tmp_path / "gone.img")
        assert exc_info.value.error_code == "IMAGE_NOT_FOUND"
        assert isinstance(exc_info.value, SelectionError)

    def test_select_drives(self, available: AvailableDrives) -> None:
        """Selected ids keep their order and are not duplicated."""
        selection = SelectionState(available)
        selection.select_drive("/dev/sdc")
        selection.select_drive("/dev/sdb")
        selection.select_drive("/dev/sdc")
        assert selection.get_selected_devices() == ["/dev/sdc", "/dev/sdb"]
        assert selection.has_drive()

    def test_select_unknown_drive(self, available: AvailableDrives) -> None:
        """Unknown devices are rejected."""
        with pytest.raises(DriveNotFoundError):
            SelectionState(available).select_drive("/dev/sdz")

    def test_select_locked_drive(self, available: AvailableDrives) -> None:
        """Write-protected devices can't be selected."""
        with pytest.raises(DriveLockedError) as exc_info:
            SelectionState(available).select_drive("/dev/sdd")
        assert exc_info.value.error_code == "DRIVE_LOCKED"

    def test_deselect_and_select_all(self, available: AvailableDrives) -> None:
        """Drives can be removed and the selection replaced."""
        selection = SelectionState(available)
        selection.select_all(["/dev/sdb", "/dev/sdc"])
        selection.deselect_drive("/dev/sdb")
        assert selection.get_selected_devices() == ["/dev/sdc"]
        selection.select_all(["/dev/sdb"])
        assert selection.get_selected_devices() == ["/dev/sdb"]

    def test_selected_drives_follow_snapshot(
        self, available: AvailableDrives
    ) -> None:
        """Selected ids resolve against the current snapshot only."""
        selection = SelectionState(available)
        selection.select_all(["/dev/sdb", "/dev/sdc"])
        available.set_drives([make_target("/dev/sdc")])
        assert [d.device for d in selection.get_selected_drives()] == ["/dev/sdc"]

        available.clear()
        assert selection.get_selected_drives() == []
        assert selection.get_selected_devices() == ["/dev/sdb", "/dev/sdc"]

    def test_clear(self, available: AvailableDrives, image_file: Path) -> None:
        """Clearing forgets image and drives."""
        selection = SelectionState(available)
        selection.select_image(image_file)
        selection.select_drive("/dev/sdb")
        selection.clear()
        assert selection.image is None
        assert not selection.has_drive()
