"""User notifications for finished flash attempts.

Notifications are fire-and-forget: a notifier never raises into the flash
core and its return value is ignored.
"""

import logging
from collections.abc import Sequence
from typing import Protocol

from rich.console import Console

from imageflasher import messages
from imageflasher.drives.device import Target
from imageflasher.types import DeviceCounts

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Delivers the success/failure notification of an attempt."""

    def notify_success(
        self, basename: str, targets: Sequence[Target], counts: DeviceCounts
    ) -> None: ...

    def notify_failure(self, basename: str, targets: Sequence[Target]) -> None: ...


class LogNotifier:
    """Notifier that writes notifications to the log."""

    def notify_success(
        self, basename: str, targets: Sequence[Target], counts: DeviceCounts
    ) -> None:
        logger.info(
            "%s %s",
            messages.FLASH_COMPLETE_TITLE,
            messages.flash_complete(basename, targets, counts),
        )

    def notify_failure(self, basename: str, targets: Sequence[Target]) -> None:
        logger.warning(
            "%s %s",
            messages.FLASH_FAILURE_TITLE,
            messages.flash_failure(basename, targets),
        )


class ConsoleNotifier:
    """Notifier that prints to a rich console."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def notify_success(
        self, basename: str, targets: Sequence[Target], counts: DeviceCounts
    ) -> None:
        self.console.print(f"[bold green]{messages.FLASH_COMPLETE_TITLE}[/bold green]")
        self.console.print(f"  {messages.flash_complete(basename, targets, counts)}")

    def notify_failure(self, basename: str, targets: Sequence[Target]) -> None:
        self.console.print(f"[bold red]{messages.FLASH_FAILURE_TITLE}[/bold red]")
        self.console.print(f"  {messages.flash_failure(basename, targets)}")


__all__ = ["ConsoleNotifier", "LogNotifier", "Notifier"]
