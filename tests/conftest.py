"""Shared fixtures for flash core tests."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from imageflasher.drives.device import SourceImage, Target
from imageflasher.drives.selection import AvailableDrives, SelectionState
from imageflasher.flash.writer import WriteSummary


class FakeEngine:
    """Scripted write engine.

    Returns `summary` or raises `error`; `during_write` runs inside the
    write so a test can observe the guard while the attempt is in flight.
    """

    def __init__(
        self,
        summary: WriteSummary | None = None,
        error: Exception | None = None,
        cancelled: bool = False,
    ) -> None:
        self.summary = summary or WriteSummary(success_count=1)
        self.error = error
        self.cancelled = cancelled
        self.calls: list[tuple[SourceImage, list[Target]]] = []
        self.cancel_requests = 0
        self.skip_requests = 0
        self.during_write = None

    async def write(self, image, targets):
        self.calls.append((image, list(targets)))
        if self.during_write is not None:
            await self.during_write()
        if self.error is not None:
            raise self.error
        return self.summary

    def was_last_attempt_cancelled(self):
        return self.cancelled

    def get_last_attempt_result(self):
        return self.summary

    def cancel(self):
        self.cancel_requests += 1

    def skip(self):
        self.skip_requests += 1


def make_target(device: str = "/dev/sdb", **kwargs) -> Target:
    """Build a removable 16 GB target unless told otherwise."""
    kwargs.setdefault("description", "SanDisk Ultra")
    kwargs.setdefault("display_name", device)
    kwargs.setdefault("size_bytes", 16_000_000_000)
    return Target(device=device, **kwargs)


@pytest.fixture
def image_file(tmp_path: Path) -> Path:
    """A small image file named ubuntu.img."""
    path = tmp_path / "ubuntu.img"
    path.write_bytes(b"\xeb\x63\x90" + b"\x00" * 509 + b"\x55\xaa")
    return path


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock()


@pytest.fixture
def telemetry() -> MagicMock:
    return MagicMock()


@pytest.fixture
def usb_target() -> Target:
    return make_target("/dev/sdb")


@pytest.fixture
def selection(image_file: Path, usb_target: Target) -> SelectionState:
    """Selection of ubuntu.img onto /dev/sdb."""
    available = AvailableDrives([usb_target], scanner=lambda: [usb_target])
    state = SelectionState(available)
    state.select_image(image_file)
    state.select_drive(usb_target.device)
    return state
