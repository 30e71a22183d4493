"""FastAPI application factory and main app.

This module creates the FastAPI application with all routers and
dependency injection configured.

Web routes are thin proxies to the flash controller; the controller is
process-wide so that every request sees the same attempt state.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from imageflasher import __version__
from imageflasher.config import get_settings
from imageflasher.db import init_history_db
from imageflasher.flash.service import create_flash_controller
from imageflasher.logging_utils import configure_logging
from web.routers import config, drives, flash, health


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager.

    Initializes database tables and the flash controller on startup.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    app.state.session_factory = init_history_db(settings.db_url)
    if getattr(app.state, "controller", None) is None:
        app.state.controller = create_flash_controller(
            settings, session_factory=app.state.session_factory
        )
    yield


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application.
    """
    application = FastAPI(
        title="Image Flasher API",
        description="HTTP API for selecting drives and flashing disk images",
        version=__version__,
        lifespan=lifespan,
    )

    # Include routers
    application.include_router(health.router, tags=["health"])
    application.include_router(config.router, prefix="/config", tags=["config"])
    application.include_router(drives.router, prefix="/drives", tags=["drives"])
    application.include_router(flash.router, prefix="/flash", tags=["flash"])

    return application


# Create the default application instance
app = create_app()
