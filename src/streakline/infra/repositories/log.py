"""SQLModel implementation of the completion log store."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional

from sqlmodel import Session, select

from ...errors import NotFound
from ...models.habit import Habit
from ...models.habit_log import HabitLog, to_log_date, validate_log_fields

# Optional fields left as None on an incoming entry keep their stored value.
_MERGED_FIELDS = ("value", "unit", "notes", "mood", "difficulty")


class SQLModelLogRepository:
    """SQLModel-based log store; every write bumps the owning habit's log version."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get(self, log_id: int) -> Optional[HabitLog]:
        """Retrieve a log by ID."""
        with self.session_factory() as session:
            obj = session.get(HabitLog, log_id)
            if obj:
                session.expunge(obj)
            return obj

    def find_log(self, habit_id: int, log_day: date | datetime) -> Optional[HabitLog]:
        """Retrieve the log for a habit on one day."""
        with self.session_factory() as session:
            obj = session.exec(
                select(HabitLog)
                .where(HabitLog.habit_id == habit_id)
                .where(HabitLog.log_date == to_log_date(log_day))
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def find_logs_for_habit(self, habit_id: int) -> list[HabitLog]:
        """All logs for a habit, newest first."""
        with self.session_factory() as session:
            statement = (
                select(HabitLog)
                .where(HabitLog.habit_id == habit_id)
                .order_by(HabitLog.log_date.desc())  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def find_logs_in_range(
        self,
        user_id: int,
        start: date,
        end: date,
        habit_ids: Optional[Iterable[int]] = None,
    ) -> list[HabitLog]:
        """User-scoped logs between start and end (inclusive), newest first."""
        with self.session_factory() as session:
            statement = (
                select(HabitLog)
                .where(HabitLog.user_id == user_id)
                .where(HabitLog.log_date >= start)
                .where(HabitLog.log_date <= end)
            )
            if habit_ids is not None:
                statement = statement.where(HabitLog.habit_id.in_(list(habit_ids)))  # type: ignore
            statement = statement.order_by(
                HabitLog.log_date.desc(), HabitLog.habit_id  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def upsert_log(self, entry: HabitLog) -> HabitLog:
        """Insert or update the log for (habit, day).

        The day is normalised to UTC and ``completed_at`` follows the completed
        flag. New logs inherit the habit's target unit.
        """
        entry.log_date = to_log_date(entry.log_date)
        validate_log_fields(entry)

        with self.session_factory() as session:
            habit = session.get(Habit, entry.habit_id)
            if habit is None:
                raise NotFound("habit", entry.habit_id)

            existing = session.exec(
                select(HabitLog)
                .where(HabitLog.habit_id == entry.habit_id)
                .where(HabitLog.log_date == entry.log_date)
            ).first()

            if existing:
                existing.completed = entry.completed
                for field in _MERGED_FIELDS:
                    incoming = getattr(entry, field)
                    if incoming is not None:
                        setattr(existing, field, incoming)
                target = existing
            else:
                entry.user_id = habit.user_id
                if entry.unit is None:
                    entry.unit = habit.target_unit
                target = entry

            if target.completed and target.completed_at is None:
                target.completed_at = datetime.now(timezone.utc)
            elif not target.completed:
                target.completed_at = None

            habit.log_version = Habit.log_version + 1  # type: ignore[assignment]
            session.add(habit)
            session.add(target)
            session.commit()
            session.refresh(target)
            session.expunge(target)
            return target

    def delete_log(self, log_id: int) -> HabitLog:
        """Delete a log and return the removed row."""
        with self.session_factory() as session:
            log = session.get(HabitLog, log_id)
            if log is None:
                raise NotFound("log", log_id)

            habit = session.get(Habit, log.habit_id)
            if habit is not None:
                habit.log_version = Habit.log_version + 1  # type: ignore[assignment]
                session.add(habit)
            session.delete(log)
            session.commit()
            return log
