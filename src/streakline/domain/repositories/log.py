"""Completion log store protocol."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol

from ...models.habit_log import HabitLog


class LogStore(Protocol):
    """Durable completion records keyed by (habit, date)."""

    def get(self, log_id: int) -> Optional[HabitLog]:
        """Retrieve a log by ID."""
        ...

    def find_logs_for_habit(self, habit_id: int) -> list[HabitLog]:
        """All logs for a habit, most recent first."""
        ...

    def find_logs_in_range(
        self,
        user_id: int,
        start: date,
        end: date,
        habit_ids: Optional[Iterable[int]] = None,
    ) -> list[HabitLog]:
        """User-scoped logs with start <= log_date <= end, most recent first.

        ``habit_ids`` narrows the result to those habits when given.
        """
        ...

    def upsert_log(self, entry: HabitLog) -> HabitLog:
        """Insert or update the log for (habit, date) and bump the habit's log version."""
        ...

    def delete_log(self, log_id: int) -> HabitLog:
        """Delete a log, bump the habit's log version and return the removed row."""
        ...
