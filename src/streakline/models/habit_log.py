"""Daily completion records."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .habit import Habit

MOODS = ("very-bad", "bad", "neutral", "good", "excellent")
LOG_DIFFICULTIES = ("very-easy", "easy", "medium", "hard", "very-hard")


class HabitLog(SQLModel, table=True):
    """Completion record for a habit on one UTC calendar day."""

    __tablename__: ClassVar[str] = "habit_log"
    __table_args__ = (UniqueConstraint("habit_id", "log_date", name="uq_habit_log_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(foreign_key="habit.id", nullable=False, index=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    log_date: date = Field(nullable=False, index=True)
    completed: bool = Field(default=False, nullable=False)
    value: Optional[float] = Field(default=None)
    unit: Optional[str] = Field(default=None, max_length=32)
    notes: Optional[str] = Field(default=None, max_length=500)
    mood: Optional[str] = Field(default=None, max_length=16, index=True)
    difficulty: Optional[str] = Field(default=None, max_length=16)
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    habit: "Habit" = Relationship(
        back_populates="logs",
        sa_relationship=relationship("Habit", back_populates="logs"),
    )


def to_log_date(value: date | datetime) -> date:
    """Normalise a date or timestamp to its UTC calendar day.

    Naive datetimes are taken to be UTC already.
    """

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def validate_log_fields(log: HabitLog) -> None:
    """Raise ValueError for tags outside the known vocabularies."""

    if log.mood is not None and log.mood not in MOODS:
        raise ValueError(f"Invalid mood value: {log.mood}")
    if log.difficulty is not None and log.difficulty not in LOG_DIFFICULTIES:
        raise ValueError(f"Invalid difficulty value: {log.difficulty}")
