"""Attempt history ORM model.

Each finished flash attempt leaves one AttemptRecord behind, giving an audit
trail of what was written where and how it ended.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from imageflasher.db import Base
from imageflasher.types import OutcomeKind


class AttemptRecord(Base):
    """ORM model for finished flash attempts.

    Attributes:
        id: Primary key.
        image: Basename of the flashed image.
        devices: Comma-separated target device paths.
        outcome: Outcome kind (success, partial-failure, cancelled, ...).
        success_count: Targets written successfully.
        fail_count: Targets that failed.
        error_code: Failure code if the attempt raised.
        error_message: User-visible error message if the attempt raised.
        finished_at: Timestamp when the attempt finished.
    """

    __tablename__ = "attempt_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    image: Mapped[str] = mapped_column(String(255), nullable=False)
    devices: Mapped[str] = mapped_column(Text, nullable=False, default="")

    outcome: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    success_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    fail_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    finished_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        """Return string representation of AttemptRecord."""
        return (
            f"<AttemptRecord(id={self.id}, image='{self.image}', "
            f"outcome='{self.outcome}')>"
        )

    @property
    def device_list(self) -> list[str]:
        return [d for d in self.devices.split(",") if d]

    def is_succeeded(self) -> bool:
        """Check if this attempt succeeded on every target."""
        return self.outcome == OutcomeKind.SUCCESS.value


__all__ = ["AttemptRecord"]
