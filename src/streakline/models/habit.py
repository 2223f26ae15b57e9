"""Habits tracking data structures."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .category import Category
    from .habit_log import HabitLog

TARGET_TYPES = ("boolean", "number", "duration")
FREQUENCIES = ("daily", "weekly", "monthly")
HABIT_DIFFICULTIES = ("easy", "medium", "hard")


class Habit(SQLModel, table=True):
    """A user-defined habit with cached streak and stats.

    Every cached column is derivable from the habit's logs; ``log_version``
    increases with each log write so recomputes can detect a moving log set.
    """

    __tablename__: ClassVar[str] = "habit"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    category_id: int = Field(foreign_key="category.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=100, index=True)
    description: str = Field(default="", max_length=500)
    color: str = Field(default="#10b981", max_length=7)
    frequency: str = Field(default="daily", max_length=16)
    difficulty: str = Field(default="medium", max_length=16)
    target_type: str = Field(default="boolean", max_length=16)
    target_value: float = Field(default=1, nullable=False)
    target_unit: str = Field(default="times", max_length=32)
    is_active: bool = Field(default=True, nullable=False, index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    streak_current: int = Field(default=0, nullable=False)
    streak_longest: int = Field(default=0, nullable=False)
    last_completed_date: Optional[date] = Field(default=None)

    total_completions: int = Field(default=0, nullable=False)
    completion_rate: int = Field(default=0, nullable=False)
    average_value: float = Field(default=0, nullable=False)
    best_streak: int = Field(default=0, nullable=False)

    log_version: int = Field(default=0, nullable=False)

    logs: list["HabitLog"] = Relationship(
        back_populates="habit",
        sa_relationship=relationship(
            "HabitLog", back_populates="habit", cascade="all, delete-orphan"
        ),
    )

    category: "Category" = Relationship(
        sa_relationship=relationship("Category", back_populates="habits")
    )


def validate_habit_fields(habit: Habit) -> None:
    """Raise ValueError for enumerated fields outside their allowed values."""

    if habit.target_type not in TARGET_TYPES:
        raise ValueError(f"Invalid target type: {habit.target_type}")
    if habit.frequency not in FREQUENCIES:
        raise ValueError(f"Invalid frequency: {habit.frequency}")
    if habit.difficulty not in HABIT_DIFFICULTIES:
        raise ValueError(f"Invalid difficulty: {habit.difficulty}")
