"""Flash orchestrator.

Runs one write attempt end to end:
1. Re-resolve the selected drives (a device may have disappeared)
2. Hold the single-flight guard for the whole attempt
3. Await the write engine
4. Classify the outcome and fire the matching notification
5. Always release the guard and clear the available-drives snapshot

The orchestrator never touches the flash step state directly; the guard's
change callback is the only link between the two.
"""

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from imageflasher import messages
from imageflasher.drives.device import SourceImage, Target
from imageflasher.drives.selection import SelectionState
from imageflasher.flash.errors import get_error_message_from_code
from imageflasher.flash.writer import WriteEngine, WriteSummary
from imageflasher.notify import Notifier
from imageflasher.telemetry import Telemetry
from imageflasher.types import OutcomeKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptOutcome:
    """Terminal result of one flash attempt.

    Attributes:
        kind: Outcome classification.
        image: Basename of the flashed image.
        devices: Devices the attempt wrote to.
        success_count: Targets written successfully.
        fail_count: Targets that failed.
        code: Failure code (error outcomes only).
        detail: Raw failure detail (error outcomes only).
        message: User-visible error message (error outcomes only).
    """

    kind: OutcomeKind
    image: str
    devices: tuple[str, ...] = ()
    success_count: int = 0
    fail_count: int = 0
    code: str | None = None
    detail: str | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "image": self.image,
            "devices": list(self.devices),
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "code": self.code,
            "detail": self.detail,
            "message": self.message,
        }


class SingleFlight:
    """At-most-one-attempt guard.

    Args:
        on_change: Called with the new flag value whenever it flips.
    """

    def __init__(self, on_change: Callable[[bool], None] | None = None) -> None:
        self._held = False
        self._on_change = on_change

    @property
    def is_set(self) -> bool:
        return self._held

    def _set(self, value: bool) -> None:
        self._held = value
        if self._on_change is not None:
            self._on_change(value)

    @contextmanager
    def hold(self, on_release: Callable[[], None] | None = None) -> Iterator[None]:
        """Hold the flag for the duration of the block.

        Args:
            on_release: Cleanup run on every exit path before the flag clears.

        Raises:
            RuntimeError: The flag is already held.
        """
        if self._held:
            raise RuntimeError("An attempt is already in flight")
        self._held = True
        try:
            if self._on_change is not None:
                self._on_change(True)
            yield
        finally:
            try:
                if on_release is not None:
                    on_release()
            finally:
                self._set(False)


class FlashOrchestrator:
    """Drives a single write attempt and fires its side effects.

    Args:
        engine: Write engine performing the transfer.
        selection: Selected image and drives; its available-drives snapshot
            is cleared at the end of every attempt.
        notifier: Success/failure notification sink.
        telemetry: Diagnostic report sink.
        flight: Single-flight guard (a private one if not given).
        on_success: Called when an attempt succeeded on at least one target.
    """

    def __init__(
        self,
        *,
        engine: WriteEngine,
        selection: SelectionState,
        notifier: Notifier,
        telemetry: Telemetry,
        flight: SingleFlight | None = None,
        on_success: Callable[[], None] | None = None,
    ) -> None:
        self.engine = engine
        self.selection = selection
        self.notifier = notifier
        self.telemetry = telemetry
        self.flight = flight or SingleFlight()
        self.on_success = on_success
        self._outcome_listeners: list[Callable[[AttemptOutcome], None]] = []
        self.last_outcome: AttemptOutcome | None = None

    @property
    def in_flight(self) -> bool:
        return self.flight.is_set

    def add_outcome_listener(self, listener: Callable[[AttemptOutcome], None]) -> None:
        """Register a callback receiving every AttemptOutcome."""
        self._outcome_listeners.append(listener)

    def _publish(self, outcome: AttemptOutcome) -> None:
        self.last_outcome = outcome
        logger.info(
            "Flash attempt finished: %s (successful=%d, failed=%d)",
            outcome.kind.value,
            outcome.success_count,
            outcome.fail_count,
        )
        for listener in self._outcome_listeners:
            try:
                listener(outcome)
            except Exception:
                logger.exception("Outcome listener %r failed", listener)

    async def flash(self) -> str:
        """Run one attempt with the current selection.

        Returns:
            The user-visible error message, or an empty string when the
            attempt did not fail (or did not run at all).
        """
        image = self.selection.image
        targets = self.selection.get_selected_drives()

        if image is None or not targets or self.flight.is_set:
            logger.debug(
                "Flash skipped: image=%s, targets=%d, in_flight=%s",
                image,
                len(targets),
                self.flight.is_set,
            )
            return ""

        devices = tuple(t.device for t in targets)
        logger.info("Flash requested: image=%s, targets=%s", image.basename, devices)

        with self.flight.hold(on_release=self.selection.available.clear):
            try:
                summary = await self.engine.write(image, targets)
            except Exception as error:
                return self._handle_failure(error, image, targets)
            self._handle_summary(summary, image, targets)
        return ""

    def _is_cancelled(self, summary: WriteSummary) -> bool:
        engine_cancelled = self.engine.was_last_attempt_cancelled()
        if engine_cancelled != summary.cancelled:
            logger.warning(
                "Write engine cancellation reports disagree (bookkeeping=%s, "
                "result=%s); treating the attempt as cancelled",
                engine_cancelled,
                summary.cancelled,
            )
        return engine_cancelled or summary.cancelled

    def _handle_summary(
        self, summary: WriteSummary, image: SourceImage, targets: Sequence[Target]
    ) -> None:
        devices = tuple(t.device for t in targets)
        counts = {
            "success_count": summary.success_count,
            "fail_count": summary.fail_count,
        }

        if self._is_cancelled(summary):
            self._publish(
                AttemptOutcome(OutcomeKind.CANCELLED, image.basename, devices, **counts)
            )
            return

        if summary.skip:
            self._publish(
                AttemptOutcome(OutcomeKind.SKIPPED, image.basename, devices, **counts)
            )
            return

        if summary.success_count > 0:
            self.notifier.notify_success(image.basename, targets, summary.counts)
            if self.on_success is not None:
                self.on_success()
        else:
            self.notifier.notify_failure(image.basename, targets)

        if summary.success_count == 0:
            kind = OutcomeKind.ERROR
        elif summary.fail_count > 0:
            kind = OutcomeKind.PARTIAL_FAILURE
        else:
            kind = OutcomeKind.SUCCESS
        self._publish(AttemptOutcome(kind, image.basename, devices, **counts))

    def _handle_failure(
        self, error: Exception, image: SourceImage, targets: Sequence[Target]
    ) -> str:
        # Notify before classifying so the user always hears about the failure
        self.notifier.notify_failure(image.basename, targets)

        code = getattr(error, "code", None)
        message = get_error_message_from_code(code)
        if not message:
            error.image = image.basename  # type: ignore[attr-defined]
            self.telemetry.report_diagnostic(error)
            message = messages.generic_flash_error(error)
        else:
            logger.warning("Flash failed with %s: %s", code, error)

        self._publish(
            AttemptOutcome(
                OutcomeKind.ERROR,
                image.basename,
                tuple(t.device for t in targets),
                fail_count=len(targets),
                code=code,
                detail=getattr(error, "detail", None) or str(error),
                message=message,
            )
        )
        return message


__all__ = ["AttemptOutcome", "FlashOrchestrator", "SingleFlight"]
