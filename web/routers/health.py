"""Liveness and API info endpoints."""

from fastapi import APIRouter, Depends

from imageflasher import __version__
from imageflasher.flash.controller import FlashController
from web.deps import get_controller

router = APIRouter()

API_NAME = "Image Flasher API"


@router.get("/health")
def health(
    controller: FlashController = Depends(get_controller),
) -> dict[str, object]:
    """Report liveness plus whether a write is running.

    Monitoring can use ``in_flight`` to avoid restarting the service in the
    middle of an attempt.
    """
    return {
        "status": "ok",
        "version": __version__,
        "phase": controller.state.phase.value,
        "in_flight": controller.orchestrator.in_flight,
    }


@router.get("/")
def root() -> dict[str, str]:
    return {"name": API_NAME, "version": __version__, "docs": "/docs"}
