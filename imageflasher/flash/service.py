"""Flash service layer.

Assembles a FlashController from settings with the default collaborators:
- sysfs drive discovery behind an AvailableDrives snapshot
- the size-threshold risk oracle
- the block-copy write engine
- logging notifier and telemetry
- optional attempt history persistence

Front ends call `create_flash_controller` and then drive the controller's
user actions.
"""

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session, sessionmaker

from imageflasher.config import Settings, get_settings
from imageflasher.drives.constraints import make_risk_oracle
from imageflasher.drives.selection import AvailableDrives, SelectionState
from imageflasher.flash.controller import FlashController
from imageflasher.flash.history import history_recorder
from imageflasher.flash.writer import FileWriteEngine, WriteEngine
from imageflasher.notify import LogNotifier, Notifier
from imageflasher.telemetry import LoggingTelemetry, Telemetry

logger = logging.getLogger(__name__)


def create_flash_controller(
    settings: Settings | None = None,
    *,
    available: AvailableDrives | None = None,
    engine: WriteEngine | None = None,
    notifier: Notifier | None = None,
    telemetry: Telemetry | None = None,
    session_factory: sessionmaker[Session] | None = None,
    on_success: Callable[[], None] | None = None,
    on_reselect: Callable[[], None] | None = None,
) -> FlashController:
    """Create a FlashController wired with default collaborators.

    Args:
        settings: Application settings (optional).
        available: Available drives snapshot (a sysfs-backed one if omitted).
        engine: Write engine (a FileWriteEngine if omitted).
        notifier: Notification sink (logging if omitted).
        telemetry: Telemetry sink (logging if omitted).
        session_factory: When given, every attempt outcome is recorded.
        on_success: Success-screen callback.
        on_reselect: Drive re-selection callback.

    Returns:
        Configured FlashController.
    """
    if settings is None:
        settings = get_settings()

    selection = SelectionState(available or AvailableDrives())
    controller = FlashController(
        selection=selection,
        engine=engine
        or FileWriteEngine(
            block_size=settings.block_size,
            verify=settings.validate_write_on_success,
        ),
        notifier=notifier or LogNotifier(),
        telemetry=telemetry
        or LoggingTelemetry(error_reporting=settings.error_reporting),
        oracle=make_risk_oracle(settings.large_drive_size),
        on_success=on_success,
        on_reselect=on_reselect,
    )

    if session_factory is not None:
        controller.add_outcome_listener(history_recorder(session_factory))

    logger.debug("Flash controller created")
    return controller


__all__ = ["create_flash_controller"]
