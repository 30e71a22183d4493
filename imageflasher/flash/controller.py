"""Flash step controller.

Owns the FlashAttemptState value and wires the safety gate, orchestrator
and recovery together. Front ends (CLI, web) call the three user actions and
subscribe to state changes instead of mutating state themselves:

- try_flash(): the user pressed flash
- respond_to_warning(proceed): the user answered the drive status warning
- respond_to_error(retry): the user answered the failure dialog
"""

import logging
from collections.abc import Callable

from imageflasher.drives.constraints import RiskOracle, get_risk_statuses
from imageflasher.drives.selection import SelectionState
from imageflasher.flash.gate import GateDecision, check_targets
from imageflasher.flash.orchestrator import (
    AttemptOutcome,
    FlashOrchestrator,
    SingleFlight,
)
from imageflasher.flash.recovery import resolve_flash_error
from imageflasher.flash.state import (
    FlashAttemptState,
    finish_flashing,
    initial_state,
    request_warning,
    resolve_warning,
    start_flashing,
)
from imageflasher.flash.writer import WriteEngine
from imageflasher.notify import Notifier
from imageflasher.telemetry import Telemetry

logger = logging.getLogger(__name__)

StateListener = Callable[[FlashAttemptState], None]


class FlashController:
    """State owner of the flash step.

    Args:
        selection: Selected image and drives.
        engine: Write engine.
        notifier: Notification sink.
        telemetry: Telemetry sink.
        oracle: Risk status oracle used by the safety gate.
        on_success: Called when an attempt succeeded (go to the success screen).
        on_reselect: Called when the user declines a warning (drive re-selection).
    """

    def __init__(
        self,
        *,
        selection: SelectionState,
        engine: WriteEngine,
        notifier: Notifier,
        telemetry: Telemetry,
        oracle: RiskOracle = get_risk_statuses,
        on_success: Callable[[], None] | None = None,
        on_reselect: Callable[[], None] | None = None,
    ) -> None:
        self.selection = selection
        self.engine = engine
        self.telemetry = telemetry
        self.oracle = oracle
        self.on_reselect = on_reselect
        self._state = initial_state()
        self._listeners: list[StateListener] = []
        self.flight = SingleFlight(on_change=self._on_flight_change)
        self.orchestrator = FlashOrchestrator(
            engine=engine,
            selection=selection,
            notifier=notifier,
            telemetry=telemetry,
            flight=self.flight,
            on_success=on_success,
        )

    # ---------- state publication ----------
    @property
    def state(self) -> FlashAttemptState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Receive every new state value.

        Returns:
            A callable that removes the listener.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def add_outcome_listener(self, listener: Callable[[AttemptOutcome], None]) -> None:
        self.orchestrator.add_outcome_listener(listener)

    def _set_state(self, state: FlashAttemptState) -> None:
        if state == self._state:
            return
        logger.debug("State %s -> %s", self._state.phase.value, state.phase.value)
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("State listener %r failed", listener)

    def _on_flight_change(self, held: bool) -> None:
        if held:
            self._set_state(start_flashing(self._state))

    # ---------- user actions ----------
    async def try_flash(self) -> GateDecision | None:
        """Start an attempt with the current selection.

        Returns:
            The safety gate decision, or None when nothing was evaluated
            (empty selection, attempt in flight, or a warning/error pending).
        """
        if not self._state.is_idle:
            logger.debug("Flash request ignored while %s", self._state.phase.value)
            return None

        decision = check_targets(
            self.selection.get_selected_drives(),
            self.selection.image,
            is_flashing=self.flight.is_set,
            oracle=self.oracle,
        )
        if decision is None:
            return None

        if not decision.proceed:
            self._set_state(
                request_warning(
                    self._state,
                    decision.warning_targets,
                    system_drive_warning=decision.system_drive_warning,
                )
            )
            return decision

        await self._flash()
        return decision

    async def respond_to_warning(self, proceed: bool) -> None:
        """Resolve the pending drive status warning."""
        if not self._state.warning_pending:
            logger.debug("No warning pending, ignoring response")
            return

        self._set_state(resolve_warning(self._state))
        if not proceed:
            logger.info("Warning declined, returning to drive selection")
            if self.on_reselect is not None:
                self.on_reselect()
            return

        await self._flash()

    def respond_to_error(self, retry: bool) -> None:
        """Resolve the held flash error by retrying or abandoning."""
        if not self._state.error_pending:
            logger.debug("No error pending, ignoring response")
            return
        self._set_state(
            resolve_flash_error(
                self._state,
                retry,
                selection=self.selection,
                telemetry=self.telemetry,
            )
        )

    def cancel(self) -> None:
        """Forward a cancel request to the write engine."""
        if self.flight.is_set:
            self.engine.cancel()

    def skip(self) -> None:
        """Forward a skip-verification request to the write engine."""
        if self.flight.is_set:
            self.engine.skip()

    async def _flash(self) -> None:
        message = ""
        try:
            message = await self.orchestrator.flash()
        finally:
            if self._state.is_flashing:
                self._set_state(finish_flashing(self._state, message or None))


__all__ = ["FlashController", "StateListener"]
