"""Per-habit statistics: completion rate, average value and watermarked streaks."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from ..config import WATERMARK_MONOTONIC, WATERMARK_RECOMPUTE
from ..errors import AggregateSaveError, ConcurrentModification, NotFound
from ..logging_config import get_logger
from ..models.habit import Habit
from ..models.habit_log import HabitLog
from .streaks import StreakInfo, compute_streak
from .windows import DEFAULT_WINDOW_DAYS, round_half_up, utc_today, whole_percentage, window_start

if TYPE_CHECKING:  # pragma: no cover
    from ..domain.repositories import HabitRepository, LogStore

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class HabitStats:
    """Cached statistics stored on a habit."""

    total_completions: int = 0
    completion_rate: int = 0
    average_value: float = 0.0
    best_streak: int = 0


@dataclass(frozen=True, slots=True)
class HabitSnapshot:
    """Result of a habit recompute: the persisted streak and stats."""

    habit_id: int
    streak: StreakInfo
    stats: HabitStats


def apply_watermark(stored: int, fresh: int, policy: str) -> int:
    """Combine a stored high-water mark with a freshly computed value."""

    if policy == WATERMARK_MONOTONIC:
        return max(stored or 0, fresh)
    if policy == WATERMARK_RECOMPUTE:
        return fresh
    raise ValueError(f"Unknown watermark policy: {policy}")


def compute_habit_stats(
    habit: Habit,
    logs: Iterable[HabitLog],
    *,
    today: date,
    window_days: int = DEFAULT_WINDOW_DAYS,
    policy: str = WATERMARK_MONOTONIC,
) -> tuple[HabitStats, StreakInfo]:
    """Derive stats and streak for ``habit`` from its full log history.

    ``habit`` supplies the target type and the stored watermarks; nothing else
    on it is read.
    """

    logs = list(logs)
    completed = [log for log in logs if log.completed]

    start = window_start(today, window_days)
    recent = [log for log in logs if start <= log.log_date <= today]
    recent_completed = sum(1 for log in recent if log.completed)
    completion_rate = whole_percentage(recent_completed, len(recent))

    average_value = 0.0
    if habit.target_type != "boolean" and completed:
        total_value = sum(log.value or 0 for log in completed)
        average_value = round_half_up(total_value / len(completed), 2)

    fresh = compute_streak(logs, today=today)
    longest = apply_watermark(habit.streak_longest, fresh.longest, policy)
    streak = replace(fresh, longest=longest)

    stats = HabitStats(
        total_completions=len(completed),
        completion_rate=completion_rate,
        average_value=average_value,
        best_streak=apply_watermark(habit.best_streak, fresh.longest, policy),
    )
    return stats, streak


class HabitAggregator:
    """Recompute and persist one habit's cached stats from its logs."""

    def __init__(
        self,
        *,
        habits: "HabitRepository",
        logs: "LogStore",
        window_days: int = DEFAULT_WINDOW_DAYS,
        policy: str = WATERMARK_MONOTONIC,
        clock: Callable[[], date] = utc_today,
    ):
        self.habits = habits
        self.logs = logs
        self.window_days = window_days
        self.policy = policy
        self.clock = clock

    def compute(self, habit_id: int) -> tuple[Habit, HabitSnapshot]:
        """Read the habit and its logs and compute a snapshot without saving."""

        habit = self.habits.get_by_id(habit_id)
        if habit is None:
            raise NotFound("habit", habit_id)
        history = self.logs.find_logs_for_habit(habit_id)
        stats, streak = compute_habit_stats(
            habit,
            history,
            today=self.clock(),
            window_days=self.window_days,
            policy=self.policy,
        )
        return habit, HabitSnapshot(habit_id=habit_id, streak=streak, stats=stats)

    def recompute(self, habit_id: int) -> HabitSnapshot:
        """Compute and persist; the save is refused if logs changed meanwhile."""

        habit, snapshot = self.compute(habit_id)
        self.save(snapshot, expected_version=habit.log_version)
        logger.info(
            "Habit stats recomputed",
            extra={
                "habit_id": habit_id,
                "current_streak": snapshot.streak.current,
                "best_streak": snapshot.stats.best_streak,
                "completion_rate": snapshot.stats.completion_rate,
            },
        )
        return snapshot

    def save(self, snapshot: HabitSnapshot, *, expected_version: Optional[int] = None) -> None:
        try:
            self.habits.save_habit_stats(
                snapshot.habit_id,
                snapshot.stats,
                snapshot.streak,
                expected_version=expected_version,
            )
        except (ConcurrentModification, NotFound):
            raise
        except Exception as exc:
            logger.error(
                "Saving habit stats failed",
                extra={"habit_id": snapshot.habit_id},
                exc_info=True,
            )
            raise AggregateSaveError(
                "habit", snapshot.habit_id, snapshot, exc, version=expected_version
            ) from exc


__all__ = [
    "HabitAggregator",
    "HabitSnapshot",
    "HabitStats",
    "apply_watermark",
    "compute_habit_stats",
]
