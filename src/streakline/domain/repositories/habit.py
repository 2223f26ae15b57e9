"""Habit repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.habit import Habit
from ...services.habit_stats import HabitStats
from ...services.streaks import StreakInfo


class HabitRepository(Protocol):
    """Repository for habits and their cached stats."""

    def get_by_id(self, habit_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        ...

    def list_for_user(self, user_id: int, *, include_inactive: bool = False) -> list[Habit]:
        """List a user's habits in creation order."""
        ...

    def list_for_category(
        self, category_id: int, *, include_inactive: bool = True
    ) -> list[Habit]:
        """List a category's habits in creation order."""
        ...

    def create(self, habit: Habit) -> Habit:
        """Create a new habit."""
        ...

    def update(self, habit: Habit) -> Habit:
        """Update an existing habit."""
        ...

    def delete(self, habit_id: int) -> None:
        """Delete a habit and its logs."""
        ...

    def save_habit_stats(
        self,
        habit_id: int,
        stats: HabitStats,
        streak: StreakInfo,
        *,
        expected_version: Optional[int] = None,
    ) -> Habit:
        """Persist cached stats, refusing if the log version moved."""
        ...
