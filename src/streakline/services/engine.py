"""Public entry points of the stats engine.

Watermark policy
----------------
``best_streak`` on habits, ``streak_longest`` on habits and ``longest_streak``
on users are high-water marks. With the ``monotonic`` policy (default) a
recompute stores ``max(stored, fresh)``, so deleting logs never lowers them.
With ``recompute`` the fresh value is stored as is and deletions can lower
them. The policy is chosen once per engine from configuration.

Cascade
-------
Log mutations recompute the owning habit synchronously. Category and user
rollups are invalidated and recomputed on the next read (``category_stats``,
``user_stats``) or on an explicit ``recompute_*`` call; they are never pushed.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional

from ..config import BaseConfig, WATERMARK_MONOTONIC
from ..errors import AggregateSaveError, NotFound
from ..logging_config import get_logger
from ..models.category import Category
from ..models.habit import Habit
from ..models.habit_log import HabitLog
from .analytics import AnalyticsQueryEngine
from .cascade import CascadeCoordinator, CascadeOutcome, HabitLocks
from .defaults import seed_default_categories
from .habit_stats import HabitAggregator, HabitSnapshot
from .rollups import CategoryAggregator, CategoryStats, UserAggregator, UserStats
from .windows import DEFAULT_WINDOW_DAYS, utc_today

if TYPE_CHECKING:  # pragma: no cover
    from ..domain.repositories import CategoryRepository, HabitRepository, LogStore, UserRepository

logger = get_logger(__name__)


class StatsEngine:
    """Facade the application layer calls; nothing else is public."""

    def __init__(
        self,
        *,
        logs: "LogStore",
        habits: "HabitRepository",
        categories: "CategoryRepository",
        users: "UserRepository",
        window_days: int = DEFAULT_WINDOW_DAYS,
        watermark_policy: str = WATERMARK_MONOTONIC,
        retries: int = 1,
        clock: Callable[[], date] = utc_today,
        locks: Optional[HabitLocks] = None,
    ):
        self.logs = logs
        self.habits = habits
        self.categories = categories
        self.users = users
        self.watermark_policy = watermark_policy

        self.habit_aggregator = HabitAggregator(
            habits=habits,
            logs=logs,
            window_days=window_days,
            policy=watermark_policy,
            clock=clock,
        )
        self.category_aggregator = CategoryAggregator(
            categories=categories,
            habits=habits,
            logs=logs,
            window_days=window_days,
            clock=clock,
        )
        self.user_aggregator = UserAggregator(
            users=users,
            habits=habits,
            logs=logs,
            policy=watermark_policy,
            clock=clock,
        )
        self.analytics = AnalyticsQueryEngine(
            logs=logs, habits=habits, categories=categories, clock=clock
        )
        self.coordinator = CascadeCoordinator(
            logs=logs,
            habits=habits,
            categories=categories,
            users=users,
            habit_aggregator=self.habit_aggregator,
            retries=retries,
            locks=locks,
        )

    @classmethod
    def from_config(
        cls,
        config: BaseConfig,
        *,
        logs: "LogStore",
        habits: "HabitRepository",
        categories: "CategoryRepository",
        users: "UserRepository",
        clock: Callable[[], date] = utc_today,
    ) -> "StatsEngine":
        return cls(
            logs=logs,
            habits=habits,
            categories=categories,
            users=users,
            window_days=config.STATS_WINDOW_DAYS,
            watermark_policy=config.WATERMARK_POLICY,
            retries=config.RECOMPUTE_RETRIES,
            clock=clock,
        )

    # -- invocation interface ------------------------------------------------

    def recompute_habit_stats(self, habit_id: int) -> HabitSnapshot:
        return self.coordinator.recompute_habit(habit_id)

    def recompute_category_stats(self, category_id: int) -> CategoryStats:
        return self.category_aggregator.recompute(category_id)

    def recompute_user_stats(self, user_id: int) -> UserStats:
        return self.user_aggregator.recompute(user_id)

    def query_analytics(
        self, user_id: int, kind: str, params: Optional[Mapping[str, Any]] = None
    ) -> Any:
        if self.users.get_by_id(user_id) is None:
            raise NotFound("user", user_id)
        return self.analytics.query(user_id, kind, params)

    # -- lazy readers ---------------------------------------------------------

    def category_stats(self, category_id: int) -> CategoryStats:
        """Cached rollup, recomputed first if a mutation left it stale."""

        category = self.categories.get_by_id(category_id)
        if category is None:
            raise NotFound("category", category_id)
        if category.stats_dirty:
            return self.recompute_category_stats(category_id)
        return CategoryStats(
            total_habits=category.total_habits,
            active_habits=category.active_habits,
            completion_rate=category.completion_rate,
        )

    def user_stats(self, user_id: int) -> UserStats:
        """Cached rollup, recomputed first if a mutation left it stale."""

        user = self.users.get_by_id(user_id)
        if user is None:
            raise NotFound("user", user_id)
        if user.stats_dirty:
            return self.recompute_user_stats(user_id)
        return UserStats(
            total_habits=user.total_habits,
            total_completions=user.total_completions,
            current_streak=user.current_streak,
            longest_streak=user.longest_streak,
        )

    # -- mutation hooks -------------------------------------------------------

    def record_log(self, entry: HabitLog) -> CascadeOutcome:
        return self.coordinator.record_log(entry)

    def record_logs(self, entries: Iterable[HabitLog]) -> CascadeOutcome:
        return self.coordinator.record_logs(entries)

    def delete_log(self, log_id: int) -> CascadeOutcome:
        return self.coordinator.delete_log(log_id)

    def add_habit(self, habit: Habit) -> CascadeOutcome:
        return self.coordinator.habit_created(habit)

    def update_habit(self, habit: Habit) -> CascadeOutcome:
        return self.coordinator.habit_changed(habit)

    def delete_habit(self, habit_id: int) -> CascadeOutcome:
        return self.coordinator.habit_deleted(habit_id)

    def delete_category(self, category_id: int) -> CascadeOutcome:
        return self.coordinator.category_deleted(category_id)

    def delete_user(self, user_id: int) -> CascadeOutcome:
        return self.coordinator.user_deleted(user_id)

    def seed_default_categories(self, user_id: int) -> list[Category]:
        if self.users.get_by_id(user_id) is None:
            raise NotFound("user", user_id)
        return seed_default_categories(self.categories, user_id)

    # -- save retry -----------------------------------------------------------

    def retry_save(self, error: AggregateSaveError) -> Any:
        """Write the value carried by a failed save again, without recomputing.

        The retry is guarded by the version the value was computed against. A
        habit whose logs changed since raises ``ConcurrentModification``; a
        category or user invalidated since is written but stays stale.
        """

        logger.info(
            "Retrying aggregate save",
            extra={"level": error.level, "identifier": error.identifier, "version": error.version},
        )
        if error.level == "habit":
            with self.coordinator.locks.hold(error.identifier):
                self.habit_aggregator.save(error.computed, expected_version=error.version)
        elif error.level == "category":
            self.categories.save_category_stats(
                error.identifier, error.computed, expected_generation=error.version
            )
        elif error.level == "user":
            self.users.save_user_stats(
                error.identifier, error.computed, expected_generation=error.version
            )
        else:
            raise ValueError(f"Unknown aggregate level: {error.level}")
        return error.computed


__all__ = ["StatsEngine"]
