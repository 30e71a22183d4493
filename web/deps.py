"""Request dependencies shared by the routers.

The flash controller and the history session factory are created once in
the application lifespan and kept on ``app.state``; handlers reach them
through the functions below.
"""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends, Request
from sqlalchemy.orm import Session, sessionmaker

from imageflasher.db import session_scope
from imageflasher.flash.controller import FlashController


def get_session_factory(request: Request) -> sessionmaker[Session]:
    """Return the history session factory built at startup."""
    return request.app.state.session_factory  # type: ignore[no-any-return]


def get_controller(request: Request) -> FlashController:
    """Return the process-wide flash controller.

    There is exactly one controller per application, so every request
    observes and drives the same attempt state.
    """
    return request.app.state.controller  # type: ignore[no-any-return]


def get_db(
    session_factory: sessionmaker[Session] = Depends(get_session_factory),
) -> Generator[Session, None, None]:
    """Yield a history session that commits when the request succeeds."""
    with session_scope(session_factory) as session:
        yield session
