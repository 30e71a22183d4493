"""Flash step endpoints.

- PUT /flash/selection - Select the image and target drives
- GET /flash/state - Current attempt state
- POST /flash/attempts - Press flash (runs the safety gate, then writes)
- POST /flash/warning - Answer a pending drive status warning
- POST /flash/error - Answer a pending failure (retry or abandon)
- POST /flash/cancel, /flash/skip - Forward to the running write
- GET /flash/history - List recorded attempts

Requests that do not fit the current phase get a 409 with the phase in the
detail; a flash request while an attempt is in flight is dropped, not queued.
"""

import asyncio
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status as http_status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from imageflasher.drives.selection import (
    DriveLockedError,
    DriveNotFoundError,
    ImageNotFoundError,
    SelectionError,
)
from imageflasher.flash.controller import FlashController
from imageflasher.flash.gate import GateDecision
from imageflasher.flash.history import attempt_record_to_dict, get_attempt_records
from imageflasher.types import OutcomeKind
from web.deps import get_controller, get_db

router = APIRouter()


class SelectionRequest(BaseModel):
    """Request body for the selection."""

    image: str
    devices: list[str]


class WarningResponse(BaseModel):
    """Request body answering the drive status warning."""

    proceed: bool


class ErrorResponse(BaseModel):
    """Request body answering a held failure."""

    retry: bool


def _state_payload(controller: FlashController) -> dict[str, Any]:
    outcome = controller.orchestrator.last_outcome
    image = controller.selection.image
    return {
        "state": controller.state.to_dict(),
        "in_flight": controller.flight.is_set,
        "image": image.basename if image else None,
        "devices": controller.selection.get_selected_devices(),
        "last_outcome": outcome.to_dict() if outcome else None,
    }


def _conflict(code: str, message: str, controller: FlashController) -> HTTPException:
    return HTTPException(
        status_code=http_status.HTTP_409_CONFLICT,
        detail={
            "code": code,
            "message": message,
            "phase": controller.state.phase.value,
        },
    )


def _decision_to_dict(decision: GateDecision | None) -> dict[str, Any] | None:
    if decision is None:
        return None
    return {
        "proceed": decision.proceed,
        "system_drive_warning": decision.system_drive_warning,
        "warning_devices": [t.device for t in decision.warning_targets],
    }


@router.put("/selection")
def put_selection(
    request: SelectionRequest,
    controller: FlashController = Depends(get_controller),
) -> dict[str, Any]:
    """Replace the selected image and drives.

    Devices are resolved against a fresh drive scan.

    Raises:
        HTTPException: If the image or a drive is unknown, or a drive is
            write protected.
    """
    if not controller.state.is_idle:
        raise _conflict(
            "not_idle", "Selection can't change during an attempt", controller
        )

    selection = controller.selection
    selection.available.refresh()
    try:
        selection.select_image(request.image)
        selection.select_all(request.devices)
    except (ImageNotFoundError, DriveNotFoundError) as e:
        raise HTTPException(
            status_code=http_status.HTTP_404_NOT_FOUND,
            detail={"code": e.error_code, "message": e.message},
        ) from None
    except DriveLockedError as e:
        raise HTTPException(
            status_code=http_status.HTTP_409_CONFLICT,
            detail={"code": e.error_code, "message": e.message},
        ) from None
    except SelectionError as e:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail={"code": e.error_code, "message": e.message},
        ) from None

    return _state_payload(controller)


@router.get("/state")
def get_state(
    controller: FlashController = Depends(get_controller),
) -> dict[str, Any]:
    """Get the current attempt state."""
    return _state_payload(controller)


@router.post("/attempts")
async def create_attempt(
    controller: FlashController = Depends(get_controller),
) -> dict[str, Any]:
    """Press flash.

    Runs the safety gate; when no warning is needed the write runs to
    completion before the response is sent. A pending warning is reported
    in the returned state.

    Returns:
        The gate decision (null when nothing was evaluated) and the state.
    """
    if controller.state.is_idle and not controller.flight.is_set:
        # The snapshot is cleared after every attempt
        await asyncio.to_thread(controller.selection.available.refresh)
    decision = await controller.try_flash()
    payload = _state_payload(controller)
    payload["decision"] = _decision_to_dict(decision)
    return payload


@router.post("/warning")
async def answer_warning(
    request: WarningResponse,
    controller: FlashController = Depends(get_controller),
) -> dict[str, Any]:
    """Answer the pending drive status warning.

    Raises:
        HTTPException: If no warning is pending.
    """
    if not controller.state.warning_pending:
        raise _conflict("no_warning_pending", "No warning is pending", controller)
    await controller.respond_to_warning(request.proceed)
    return _state_payload(controller)


@router.post("/error")
def answer_error(
    request: ErrorResponse,
    controller: FlashController = Depends(get_controller),
) -> dict[str, Any]:
    """Answer the held failure by retrying or abandoning.

    Retrying keeps the selection; press flash again to start the new
    attempt. Abandoning clears the selection.

    Raises:
        HTTPException: If no error is pending.
    """
    if not controller.state.error_pending:
        raise _conflict("no_error_pending", "No error is pending", controller)
    controller.respond_to_error(request.retry)
    return _state_payload(controller)


@router.post("/cancel")
def cancel_attempt(
    controller: FlashController = Depends(get_controller),
) -> dict[str, Any]:
    """Request cancellation of the running write.

    Raises:
        HTTPException: If no attempt is in flight.
    """
    if not controller.flight.is_set:
        raise _conflict("not_flashing", "No attempt is in flight", controller)
    controller.cancel()
    return _state_payload(controller)


@router.post("/skip")
def skip_verification(
    controller: FlashController = Depends(get_controller),
) -> dict[str, Any]:
    """Request that the running write skips verification.

    Raises:
        HTTPException: If no attempt is in flight.
    """
    if not controller.flight.is_set:
        raise _conflict("not_flashing", "No attempt is in flight", controller)
    controller.skip()
    return _state_payload(controller)


@router.get("/history")
def list_attempts(
    outcome: str | None = Query(None, description="Filter by outcome"),
    device: str | None = Query(None, description="Filter by device path"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum results"),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """List recorded flash attempts, newest first.

    Raises:
        HTTPException: If the outcome filter is invalid.
    """
    outcome_filter: OutcomeKind | None = None
    if outcome:
        try:
            outcome_filter = OutcomeKind(outcome)
        except ValueError:
            valid = ", ".join(k.value for k in OutcomeKind)
            raise HTTPException(
                status_code=http_status.HTTP_400_BAD_REQUEST,
                detail={
                    "code": "invalid_outcome",
                    "message": f"Invalid outcome: {outcome}. Valid values: {valid}",
                },
            ) from None

    records = get_attempt_records(
        db, outcome=outcome_filter, device=device, limit=limit
    )
    return [attempt_record_to_dict(r) for r in records]
