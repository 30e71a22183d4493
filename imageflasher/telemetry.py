"""Telemetry hooks of the flash core.

The core emits two things: named events (e.g. a restart after a failure) and
diagnostic reports for failures nobody anticipated. Both are fire-and-forget.
The default implementation records them in the log; whether diagnostics are
reported at ERROR level follows the ``error_reporting`` setting.
"""

import logging
from typing import Any, Protocol

logger = logging.getLogger(__name__)

RESTART_AFTER_FAILURE = "Restart after failure"


class Telemetry(Protocol):
    def report_diagnostic(self, error: BaseException) -> None: ...

    def log_event(self, name: str, **data: Any) -> None: ...


class LoggingTelemetry:
    """Telemetry that goes to the standard logging system."""

    def __init__(self, *, error_reporting: bool = True) -> None:
        self.error_reporting = error_reporting

    def report_diagnostic(self, error: BaseException) -> None:
        image = getattr(error, "image", None)
        if self.error_reporting:
            logger.error("Unanticipated flash failure (image=%s): %r", image, error)
        else:
            logger.debug("Diagnostic not reported (image=%s): %r", image, error)

    def log_event(self, name: str, **data: Any) -> None:
        logger.info("Event: %s %s", name, data or "")


__all__ = ["RESTART_AFTER_FAILURE", "LoggingTelemetry", "Telemetry"]
