"""SQLModel implementation of Habit repository."""

from __future__ import annotations

from typing import Callable, Optional

from sqlmodel import Session, select

from ...errors import ConcurrentModification, NotFound
from ...models.category import Category
from ...models.habit import Habit, validate_habit_fields
from ...services.habit_stats import HabitStats
from ...services.streaks import StreakInfo

# Cached stats and log_version are owned by the engine, never by callers.
_EDITABLE_FIELDS = (
    "category_id",
    "name",
    "description",
    "color",
    "frequency",
    "difficulty",
    "target_type",
    "target_value",
    "target_unit",
    "is_active",
)


class SQLModelHabitRepository:
    """SQLModel-based habit repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, habit_id: int) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        with self.session_factory() as session:
            obj = session.get(Habit, habit_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_for_user(self, user_id: int, *, include_inactive: bool = False) -> list[Habit]:
        """List a user's habits in creation order."""
        with self.session_factory() as session:
            statement = select(Habit).where(Habit.user_id == user_id)
            if not include_inactive:
                statement = statement.where(Habit.is_active == True)  # noqa: E712
            statement = statement.order_by(Habit.created_at, Habit.id)  # type: ignore
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_for_category(
        self, category_id: int, *, include_inactive: bool = True
    ) -> list[Habit]:
        """List a category's habits in creation order."""
        with self.session_factory() as session:
            statement = select(Habit).where(Habit.category_id == category_id)
            if not include_inactive:
                statement = statement.where(Habit.is_active == True)  # noqa: E712
            statement = statement.order_by(Habit.created_at, Habit.id)  # type: ignore
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, habit: Habit) -> Habit:
        """Create a new habit inside one of its owner's categories."""
        validate_habit_fields(habit)
        with self.session_factory() as session:
            self._check_category(session, habit)
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def update(self, habit: Habit) -> Habit:
        """Update an existing habit."""
        validate_habit_fields(habit)
        with self.session_factory() as session:
            existing = session.get(Habit, habit.id) if habit.id is not None else None
            if existing is None:
                raise NotFound("habit", habit.id)
            habit.user_id = existing.user_id
            self._check_category(session, habit)
            for field in _EDITABLE_FIELDS:
                setattr(existing, field, getattr(habit, field))
            session.add(existing)
            session.commit()
            session.refresh(existing)
            session.expunge(existing)
            return existing

    def delete(self, habit_id: int) -> None:
        """Delete a habit by ID; its logs go with it."""
        with self.session_factory() as session:
            habit = session.get(Habit, habit_id)
            if habit is None:
                raise NotFound("habit", habit_id)
            session.delete(habit)
            session.commit()

    def save_habit_stats(
        self,
        habit_id: int,
        stats: HabitStats,
        streak: StreakInfo,
        *,
        expected_version: Optional[int] = None,
    ) -> Habit:
        """Persist cached stats unless the habit's log version has moved."""
        with self.session_factory() as session:
            habit = session.exec(
                select(Habit).where(Habit.id == habit_id).with_for_update()
            ).first()
            if habit is None:
                raise NotFound("habit", habit_id)
            if expected_version is not None and habit.log_version != expected_version:
                raise ConcurrentModification(habit_id, expected_version, habit.log_version)

            habit.streak_current = streak.current
            habit.streak_longest = streak.longest
            habit.last_completed_date = streak.last_completed_date
            habit.total_completions = stats.total_completions
            habit.completion_rate = stats.completion_rate
            habit.average_value = stats.average_value
            habit.best_streak = stats.best_streak
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    @staticmethod
    def _check_category(session: Session, habit: Habit) -> None:
        category = session.get(Category, habit.category_id)
        if category is None:
            raise NotFound("category", habit.category_id)
        if category.user_id != habit.user_id:
            raise ValueError("Habit and category must belong to the same user")
