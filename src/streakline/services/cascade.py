"""Decide what to recompute when logs or habits change.

Only the owning habit is recomputed on a mutation. The owning category and
user are marked stale and pulled lazily; each mutation reports those levels as
:class:`~streakline.errors.ComputationSkipped` notices.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Iterator, Optional

from ..errors import ComputationSkipped, ConcurrentModification, NotFound
from ..logging_config import get_logger
from ..models.habit import Habit
from ..models.habit_log import HabitLog, validate_log_fields
from .habit_stats import HabitAggregator, HabitSnapshot

if TYPE_CHECKING:  # pragma: no cover
    from ..domain.repositories import CategoryRepository, HabitRepository, LogStore, UserRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class CascadeOutcome:
    """What a mutation wrote, recomputed and left stale."""

    logs: tuple[HabitLog, ...] = ()
    snapshots: tuple[HabitSnapshot, ...] = ()
    skipped: tuple[ComputationSkipped, ...] = ()

    @property
    def snapshot(self) -> Optional[HabitSnapshot]:
        return self.snapshots[0] if self.snapshots else None

    @property
    def log(self) -> Optional[HabitLog]:
        return self.logs[0] if self.logs else None


class HabitLocks:
    """One mutex per habit so writes to the same habit never interleave."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}

    def lock_for(self, habit_id: int) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(habit_id, threading.Lock())

    @contextmanager
    def hold(self, habit_id: int) -> Iterator[None]:
        with self.lock_for(habit_id):
            yield


class CascadeCoordinator:
    """Apply log and habit mutations and keep dependent caches honest."""

    def __init__(
        self,
        *,
        logs: "LogStore",
        habits: "HabitRepository",
        categories: "CategoryRepository",
        users: "UserRepository",
        habit_aggregator: HabitAggregator,
        retries: int = 1,
        locks: Optional[HabitLocks] = None,
    ):
        self.logs = logs
        self.habits = habits
        self.categories = categories
        self.users = users
        self.habit_aggregator = habit_aggregator
        self.retries = retries
        self.locks = locks or HabitLocks()

    # -- habit level -----------------------------------------------------

    def recompute_habit(self, habit_id: int) -> HabitSnapshot:
        """Recompute one habit under its lock, retrying on a moving log set."""

        with self.locks.hold(habit_id):
            return self._recompute_with_retry(habit_id)

    def _recompute_with_retry(self, habit_id: int) -> HabitSnapshot:
        attempt = 0
        while True:
            try:
                return self.habit_aggregator.recompute(habit_id)
            except ConcurrentModification as exc:
                if attempt >= self.retries:
                    logger.error(
                        "Habit recompute kept racing with log writes",
                        extra={"habit_id": habit_id, "attempts": attempt + 1},
                    )
                    raise
                attempt += 1
                logger.warning(
                    "Log set changed during recompute; retrying",
                    extra={"habit_id": habit_id, "expected": exc.expected, "actual": exc.actual},
                )

    # -- log mutations ---------------------------------------------------

    def record_log(self, entry: HabitLog) -> CascadeOutcome:
        """Create or update the log for (habit, day) and recompute the habit."""

        habit = self._require_habit(entry.habit_id)
        with self.locks.hold(habit.id):
            saved = self.logs.upsert_log(entry)
            snapshot = self._recompute_with_retry(habit.id)
        skipped = self._invalidate(category_ids=[habit.category_id], user_id=habit.user_id)
        logger.info(
            "Log recorded",
            extra={"habit_id": habit.id, "log_date": saved.log_date, "completed": saved.completed},
        )
        return CascadeOutcome(logs=(saved,), snapshots=(snapshot,), skipped=skipped)

    def record_logs(self, entries: Iterable[HabitLog]) -> CascadeOutcome:
        """Bulk upsert; each affected habit is recomputed once after all writes.

        Every entry is checked before the first write. If a write still fails
        part way, the habits already written to are recomputed and invalidated
        before the error propagates.
        """

        entries = list(entries)
        habits = {}
        for entry in entries:
            if entry.habit_id not in habits:
                habits[entry.habit_id] = self._require_habit(entry.habit_id)
            validate_log_fields(entry)

        saved: list[HabitLog] = []
        written: dict[int, Habit] = {}
        try:
            for entry in entries:
                with self.locks.hold(entry.habit_id):
                    saved.append(self.logs.upsert_log(entry))
                written.setdefault(entry.habit_id, habits[entry.habit_id])
        finally:
            if len(saved) < len(entries):
                logger.error(
                    "Bulk log write failed part way",
                    extra={"logs": len(saved), "requested": len(entries)},
                )
            snapshots = tuple(self.recompute_habit(habit_id) for habit_id in written)
            skipped = self._invalidate_owners(written.values())

        logger.info(
            "Bulk logs recorded",
            extra={"logs": len(saved), "habits": len(written)},
        )
        return CascadeOutcome(logs=tuple(saved), snapshots=snapshots, skipped=skipped)

    def delete_log(self, log_id: int) -> CascadeOutcome:
        """Delete a log and recompute its habit."""

        existing = self.logs.get(log_id)
        if existing is None:
            raise NotFound("log", log_id)
        habit = self._require_habit(existing.habit_id)
        with self.locks.hold(habit.id):
            removed = self.logs.delete_log(log_id)
            snapshot = self._recompute_with_retry(habit.id)
        skipped = self._invalidate(category_ids=[habit.category_id], user_id=habit.user_id)
        logger.info("Log deleted", extra={"habit_id": habit.id, "log_id": log_id})
        return CascadeOutcome(logs=(removed,), snapshots=(snapshot,), skipped=skipped)

    # -- habit/category/user mutations -----------------------------------

    def habit_created(self, habit: Habit) -> CascadeOutcome:
        created = self.habits.create(habit)
        snapshot = self.recompute_habit(created.id)
        skipped = self._invalidate(category_ids=[created.category_id], user_id=created.user_id)
        return CascadeOutcome(snapshots=(snapshot,), skipped=skipped)

    def habit_changed(self, habit: Habit) -> CascadeOutcome:
        """Persist edits to a habit (target, activity, category move)."""

        previous = self._require_habit(habit.id)
        updated = self.habits.update(habit)
        snapshot = self.recompute_habit(updated.id)
        skipped = self._invalidate(
            category_ids=sorted({previous.category_id, updated.category_id}),
            user_id=updated.user_id,
        )
        return CascadeOutcome(snapshots=(snapshot,), skipped=skipped)

    def habit_deleted(self, habit_id: int) -> CascadeOutcome:
        habit = self._require_habit(habit_id)
        with self.locks.hold(habit_id):
            self.habits.delete(habit_id)
        skipped = self._invalidate(category_ids=[habit.category_id], user_id=habit.user_id)
        logger.info("Habit deleted", extra={"habit_id": habit_id})
        return CascadeOutcome(skipped=skipped)

    def category_deleted(self, category_id: int) -> CascadeOutcome:
        category = self.categories.get_by_id(category_id)
        if category is None:
            raise NotFound("category", category_id)
        self.categories.delete(category_id)
        skipped = self._invalidate(category_ids=[], user_id=category.user_id)
        logger.info("Category deleted", extra={"category_id": category_id})
        return CascadeOutcome(skipped=skipped)

    def user_deleted(self, user_id: int) -> CascadeOutcome:
        self.users.delete(user_id)
        logger.info("User deleted", extra={"user_id": user_id})
        return CascadeOutcome()

    # -- helpers ---------------------------------------------------------

    def _require_habit(self, habit_id: int) -> Habit:
        habit = self.habits.get_by_id(habit_id)
        if habit is None:
            raise NotFound("habit", habit_id)
        return habit

    def _invalidate_owners(self, habits: Iterable[Habit]) -> tuple[ComputationSkipped, ...]:
        habits = list(habits)
        skipped: list[ComputationSkipped] = []
        for user_id in sorted({habit.user_id for habit in habits}):
            owned = [habit for habit in habits if habit.user_id == user_id]
            skipped.extend(
                self._invalidate(
                    category_ids=sorted({habit.category_id for habit in owned}),
                    user_id=user_id,
                )
            )
        return tuple(skipped)

    def _invalidate(
        self, *, category_ids: Iterable[int], user_id: int
    ) -> tuple[ComputationSkipped, ...]:
        skipped = []
        for category_id in category_ids:
            self.categories.mark_dirty(category_id)
            skipped.append(ComputationSkipped("category", category_id))
        self.users.mark_dirty(user_id)
        skipped.append(ComputationSkipped("user", user_id))
        logger.debug(
            "Rollups invalidated",
            extra={"categories": [s.identifier for s in skipped[:-1]], "user_id": user_id},
        )
        return tuple(skipped)


__all__ = ["CascadeCoordinator", "CascadeOutcome", "HabitLocks"]
