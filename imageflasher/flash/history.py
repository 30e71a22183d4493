"""Attempt history service.

Persists AttemptOutcome values as AttemptRecord rows and queries them back.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from imageflasher.db import session_scope
from imageflasher.flash.models import AttemptRecord
from imageflasher.flash.orchestrator import AttemptOutcome
from imageflasher.types import OutcomeKind

logger = logging.getLogger(__name__)


def record_attempt(session: Session, outcome: AttemptOutcome) -> AttemptRecord:
    """Add a record for a finished attempt.

    Args:
        session: Database session (flushed, not committed).
        outcome: Outcome to persist.

    Returns:
        The new AttemptRecord.
    """
    record = AttemptRecord(
        image=outcome.image,
        devices=",".join(outcome.devices),
        outcome=outcome.kind.value,
        success_count=outcome.success_count,
        fail_count=outcome.fail_count,
        error_code=outcome.code,
        error_message=outcome.message,
        finished_at=datetime.now(),
    )
    session.add(record)
    session.flush()
    logger.debug("Created AttemptRecord id=%d", record.id)
    return record


def history_recorder(
    session_factory: sessionmaker[Session],
) -> Callable[[AttemptOutcome], None]:
    """Build an outcome listener that commits each outcome in its own session."""

    def record(outcome: AttemptOutcome) -> None:
        with session_scope(session_factory) as session:
            record_attempt(session, outcome)

    return record


def get_attempt_records(
    session: Session,
    *,
    outcome: OutcomeKind | None = None,
    device: str | None = None,
    limit: int = 100,
) -> list[AttemptRecord]:
    """Query attempt records, newest first.

    Args:
        session: Database session.
        outcome: Filter by outcome kind.
        device: Filter by a device the attempt wrote to.
        limit: Maximum number of records to return.

    Returns:
        List of AttemptRecord objects.
    """
    stmt = select(AttemptRecord)

    if outcome is not None:
        stmt = stmt.where(AttemptRecord.outcome == outcome.value)
    if device is not None:
        stmt = stmt.where(AttemptRecord.devices.contains(device))

    stmt = stmt.order_by(
        AttemptRecord.finished_at.desc(), AttemptRecord.id.desc()
    ).limit(limit)

    result = session.execute(stmt)
    return list(result.scalars().all())


def attempt_record_to_dict(record: AttemptRecord) -> dict[str, object]:
    """Convert an attempt record to a JSON-ready dictionary."""
    return {
        "id": record.id,
        "image": record.image,
        "devices": record.device_list,
        "outcome": record.outcome,
        "success_count": record.success_count,
        "fail_count": record.fail_count,
        "error_code": record.error_code,
        "error_message": record.error_message,
        "finished_at": record.finished_at.isoformat() if record.finished_at else None,
    }


__all__ = [
    "attempt_record_to_dict",
    "get_attempt_records",
    "history_recorder",
    "record_attempt",
]
