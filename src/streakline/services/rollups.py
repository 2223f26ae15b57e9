"""Category and user rollups built on top of per-habit logs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Callable, Iterable, Mapping, Sequence

from ..config import WATERMARK_MONOTONIC
from ..errors import AggregateSaveError, NotFound
from ..logging_config import get_logger
from ..models.category import Category
from ..models.habit import Habit
from ..models.habit_log import HabitLog
from ..models.user import User
from .habit_stats import apply_watermark
from .streaks import compute_streak
from .windows import DEFAULT_WINDOW_DAYS, utc_today, whole_percentage, window_start

if TYPE_CHECKING:  # pragma: no cover
    from ..domain.repositories import CategoryRepository, HabitRepository, LogStore, UserRepository

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class CategoryStats:
    """Cached rollup stored on a category."""

    total_habits: int = 0
    active_habits: int = 0
    completion_rate: int = 0


@dataclass(frozen=True, slots=True)
class UserStats:
    """Cached rollup stored on a user."""

    total_habits: int = 0
    total_completions: int = 0
    current_streak: int = 0
    longest_streak: int = 0


def compute_category_stats(
    habits: Sequence[Habit],
    window_logs: Iterable[HabitLog],
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> CategoryStats:
    """Rollup for one category.

    ``window_logs`` must already be limited to the trailing window; the rate is
    completions of active habits over ``active_habits * window_days``.
    """

    active_ids = {habit.id for habit in habits if habit.is_active}
    if not active_ids:
        return CategoryStats(total_habits=len(habits))

    completions = sum(1 for log in window_logs if log.completed and log.habit_id in active_ids)
    return CategoryStats(
        total_habits=len(habits),
        active_habits=len(active_ids),
        completion_rate=whole_percentage(completions, len(active_ids) * window_days),
    )


def compute_user_stats(
    habits: Sequence[Habit],
    logs_by_habit: Mapping[int, Sequence[HabitLog]],
    *,
    today: date,
    stored_longest: int = 0,
    policy: str = WATERMARK_MONOTONIC,
) -> UserStats:
    """Rollup across every habit a user owns.

    Completions count all habits; streaks only count active ones. The current
    streak is the sum of per-habit current streaks.
    """

    total_completions = 0
    current_sum = 0
    longest = 0
    active = 0
    for habit in habits:
        history = logs_by_habit.get(habit.id, ())
        total_completions += sum(1 for log in history if log.completed)
        if not habit.is_active:
            continue
        active += 1
        streak = compute_streak(history, today=today)
        current_sum += streak.current
        longest = max(longest, streak.longest)

    return UserStats(
        total_habits=active,
        total_completions=total_completions,
        current_streak=current_sum,
        longest_streak=apply_watermark(stored_longest, longest, policy),
    )


class CategoryAggregator:
    """Recompute and persist a category rollup."""

    def __init__(
        self,
        *,
        categories: "CategoryRepository",
        habits: "HabitRepository",
        logs: "LogStore",
        window_days: int = DEFAULT_WINDOW_DAYS,
        clock: Callable[[], date] = utc_today,
    ):
        self.categories = categories
        self.habits = habits
        self.logs = logs
        self.window_days = window_days
        self.clock = clock

    def compute(self, category_id: int) -> CategoryStats:
        return self._compute(self._require(category_id))

    def _require(self, category_id: int) -> Category:
        category = self.categories.get_by_id(category_id)
        if category is None:
            raise NotFound("category", category_id)
        return category

    def _compute(self, category: Category) -> CategoryStats:
        habits = self.habits.list_for_category(category.id, include_inactive=True)
        active_ids = [habit.id for habit in habits if habit.is_active]
        window_logs: list[HabitLog] = []
        if active_ids:
            today = self.clock()
            window_logs = self.logs.find_logs_in_range(
                category.user_id,
                window_start(today, self.window_days),
                today,
                habit_ids=active_ids,
            )
        return compute_category_stats(habits, window_logs, window_days=self.window_days)

    def recompute(self, category_id: int) -> CategoryStats:
        """Compute and persist; stays stale if invalidated while computing."""

        category = self._require(category_id)
        generation = category.stats_generation
        stats = self._compute(category)
        try:
            saved = self.categories.save_category_stats(
                category_id, stats, expected_generation=generation
            )
        except NotFound:
            raise
        except Exception as exc:
            logger.error(
                "Saving category stats failed",
                extra={"category_id": category_id},
                exc_info=True,
            )
            raise AggregateSaveError("category", category_id, stats, exc, version=generation) from exc
        logger.info(
            "Category stats recomputed",
            extra={
                "category_id": category_id,
                "completion_rate": stats.completion_rate,
                "still_dirty": saved.stats_dirty,
            },
        )
        return stats


class UserAggregator:
    """Recompute and persist a user rollup."""

    def __init__(
        self,
        *,
        users: "UserRepository",
        habits: "HabitRepository",
        logs: "LogStore",
        policy: str = WATERMARK_MONOTONIC,
        clock: Callable[[], date] = utc_today,
    ):
        self.users = users
        self.habits = habits
        self.logs = logs
        self.policy = policy
        self.clock = clock

    def compute(self, user_id: int) -> UserStats:
        return self._compute(self._require(user_id))

    def _require(self, user_id: int) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFound("user", user_id)
        return user

    def _compute(self, user: User) -> UserStats:
        habits = self.habits.list_for_user(user.id, include_inactive=True)
        logs_by_habit = {habit.id: self.logs.find_logs_for_habit(habit.id) for habit in habits}
        return compute_user_stats(
            habits,
            logs_by_habit,
            today=self.clock(),
            stored_longest=user.longest_streak,
            policy=self.policy,
        )

    def recompute(self, user_id: int) -> UserStats:
        user = self._require(user_id)
        generation = user.stats_generation
        stats = self._compute(user)
        try:
            saved = self.users.save_user_stats(user_id, stats, expected_generation=generation)
        except NotFound:
            raise
        except Exception as exc:
            logger.error("Saving user stats failed", extra={"user_id": user_id}, exc_info=True)
            raise AggregateSaveError("user", user_id, stats, exc, version=generation) from exc
        logger.info(
            "User stats recomputed",
            extra={
                "user_id": user_id,
                "current_streak": stats.current_streak,
                "longest_streak": stats.longest_streak,
                "still_dirty": saved.stats_dirty,
            },
        )
        return stats


__all__ = [
    "CategoryAggregator",
    "CategoryStats",
    "UserAggregator",
    "UserStats",
    "compute_category_stats",
    "compute_user_stats",
]
