"""Read-side reporting over raw logs.

Nothing here reads or writes the cached stats on habits, categories or users;
every query regroups the logs in its range.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional, Sequence

from ..errors import InvalidRange
from ..logging_config import get_logger
from ..models.category import Category
from ..models.habit import Habit
from ..models.habit_log import MOODS, HabitLog, to_log_date
from .streaks import compute_streak
from .windows import (
    days_in_range,
    percentage,
    resolve_range,
    round_half_up,
    utc_today,
    whole_percentage,
)

if TYPE_CHECKING:  # pragma: no cover
    from ..domain.repositories import CategoryRepository, HabitRepository, LogStore

logger = get_logger(__name__)

# Sunday first, matching the weekday labels users see.
WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
DEFAULT_TOP_LIMIT = 5


def _weekday_index(day: date) -> int:
    """0 for Sunday through 6 for Saturday."""
    return (day.weekday() + 1) % 7


@dataclass(frozen=True, slots=True)
class AnalyticsParams:
    """Normalised query parameters."""

    days: Optional[int] = None
    start: Optional[date] = None
    end: Optional[date] = None
    habit_id: Optional[int] = None
    limit: int = DEFAULT_TOP_LIMIT

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any] | None) -> "AnalyticsParams":
        params = dict(params or {})
        try:
            days = int(params["days"]) if params.get("days") is not None else None
            limit = int(params["limit"]) if params.get("limit") is not None else DEFAULT_TOP_LIMIT
            habit_id = int(params["habit_id"]) if params.get("habit_id") is not None else None
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid analytics parameters: {exc}") from exc
        return cls(
            days=days,
            start=_parse_day(params.get("start")),
            end=_parse_day(params.get("end")),
            habit_id=habit_id,
            limit=limit,
        )


def _parse_day(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return to_log_date(value)
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise InvalidRange(None, None, f"unparseable date {value!r}") from exc


# ---------------------------------------------------------------------------
# Pure groupings
# ---------------------------------------------------------------------------


def completion_trend(logs: Iterable[HabitLog], start: date, end: date) -> list[dict]:
    """Daily totals for every day from ``start`` to ``end``."""

    totals: Counter[date] = Counter()
    completed: Counter[date] = Counter()
    for log in logs:
        totals[log.log_date] += 1
        if log.completed:
            completed[log.log_date] += 1

    trend = []
    day = start
    while day <= end:
        trend.append(
            {
                "date": day.isoformat(),
                "total": totals[day],
                "completed": completed[day],
                "percentage": percentage(completed[day], totals[day]),
            }
        )
        day += timedelta(days=1)
    return trend


def weekly_pattern(logs: Iterable[HabitLog]) -> list[dict]:
    totals = [0] * 7
    completed = [0] * 7
    for log in logs:
        idx = _weekday_index(log.log_date)
        totals[idx] += 1
        if log.completed:
            completed[idx] += 1
    return [
        {
            "day": WEEKDAY_LABELS[idx],
            "total": totals[idx],
            "completed": completed[idx],
            "percentage": percentage(completed[idx], totals[idx]),
        }
        for idx in range(7)
    ]


def top_habits(
    logs: Iterable[HabitLog], habits: Sequence[Habit], *, limit: int = DEFAULT_TOP_LIMIT
) -> list[dict]:
    """Habits with the most completions; ties go to the habit created first."""

    counts = Counter(log.habit_id for log in logs if log.completed)
    by_id = {habit.id: habit for habit in habits}
    ranked = sorted(
        (habit_id for habit_id in counts if habit_id in by_id),
        key=lambda habit_id: (-counts[habit_id], by_id[habit_id].created_at, habit_id),
    )
    return [
        {
            "habit_id": habit_id,
            "name": by_id[habit_id].name,
            "color": by_id[habit_id].color,
            "completions": counts[habit_id],
        }
        for habit_id in ranked[: max(limit, 0)]
    ]


def category_performance(
    logs: Iterable[HabitLog], habits: Sequence[Habit], categories: Sequence[Category]
) -> dict[str, list[dict]]:
    """Completion percentage per category plus the current habit distribution."""

    category_of = {habit.id: habit.category_id for habit in habits}
    totals: Counter[int] = Counter()
    completed: Counter[int] = Counter()
    for log in logs:
        category_id = category_of.get(log.habit_id)
        if category_id is None:
            continue
        totals[category_id] += 1
        if log.completed:
            completed[category_id] += 1

    performance = [
        {
            "category_id": category.id,
            "name": category.name,
            "color": category.color,
            "total": totals[category.id],
            "completed": completed[category.id],
            "percentage": percentage(completed[category.id], totals[category.id]),
        }
        for category in categories
        if totals[category.id]
    ]
    performance.sort(key=lambda row: (-row["percentage"], row["name"]))

    habit_counts: Counter[int] = Counter()
    active_counts: Counter[int] = Counter()
    for habit in habits:
        habit_counts[habit.category_id] += 1
        if habit.is_active:
            active_counts[habit.category_id] += 1

    distribution = [
        {
            "category_id": category.id,
            "name": category.name,
            "habit_count": habit_counts[category.id],
            "active_habits": active_counts[category.id],
        }
        for category in categories
    ]
    distribution.sort(key=lambda row: -row["habit_count"])

    return {"performance": performance, "distribution": distribution}


def mood_report(logs: Iterable[HabitLog]) -> dict[str, list[dict]]:
    """Mood distribution, per-day mood counts and completion rate per mood."""

    tagged = [log for log in logs if log.mood is not None]
    mood_rank = {mood: idx for idx, mood in enumerate(MOODS)}

    counts = Counter(log.mood for log in tagged)
    distribution = [
        {"mood": mood, "count": count}
        for mood, count in sorted(
            counts.items(), key=lambda item: (-item[1], mood_rank.get(item[0], len(MOODS)))
        )
    ]

    per_day: dict[date, Counter[str]] = defaultdict(Counter)
    for log in tagged:
        per_day[log.log_date][log.mood] += 1
    trend = [
        {"date": day.isoformat(), "moods": dict(per_day[day])} for day in sorted(per_day)
    ]

    completed = Counter(log.mood for log in tagged if log.completed)
    correlation = [
        {
            "mood": mood,
            "total": total,
            "completed": completed[mood],
            "completion_rate": percentage(completed[mood], total),
        }
        for mood, total in counts.items()
    ]
    correlation.sort(key=lambda row: (-row["completion_rate"], mood_rank.get(row["mood"], 0)))

    return {"distribution": distribution, "trend": trend, "correlation": correlation}


def consistency(logs: Iterable[HabitLog], start: date, end: date) -> dict[str, int]:
    """Share of days in the window with at least one completion (whole percent)."""

    active_days = {log.log_date for log in logs if log.completed and start <= log.log_date <= end}
    total_days = days_in_range(start, end)
    return {
        "active_days": len(active_days),
        "total_days": total_days,
        "score": whole_percentage(len(active_days), total_days),
    }


def habit_daily(logs: Iterable[HabitLog]) -> list[dict]:
    """Per-day totals including summed values, only for days with logs."""

    buckets: dict[date, list[HabitLog]] = defaultdict(list)
    for log in logs:
        buckets[log.log_date].append(log)

    rows = []
    for day in sorted(buckets):
        day_logs = buckets[day]
        done = sum(1 for log in day_logs if log.completed)
        rows.append(
            {
                "date": day.isoformat(),
                "total": len(day_logs),
                "completed": done,
                "completion_rate": percentage(done, len(day_logs)),
                "total_value": sum(log.value or 0 for log in day_logs),
            }
        )
    return rows


def streak_board(
    habits: Sequence[Habit], logs_by_habit: Mapping[int, Sequence[HabitLog]], *, today: date
) -> dict[str, Any]:
    """Current/longest streak per active habit plus a summary."""

    rows = []
    for habit in habits:
        if not habit.is_active:
            continue
        streak = compute_streak(logs_by_habit.get(habit.id, ()), today=today)
        rows.append(
            {
                "habit_id": habit.id,
                "name": habit.name,
                "current": streak.current,
                "longest": streak.longest,
                "last_completed_date": (
                    streak.last_completed_date.isoformat() if streak.last_completed_date else None
                ),
            }
        )
    rows.sort(key=lambda row: -row["current"])

    total_current = sum(row["current"] for row in rows)
    overview = {
        "total_habits": len(rows),
        "active_streaks": sum(1 for row in rows if row["current"] > 0),
        "average_streak": int(round_half_up(total_current / len(rows), 0)) if rows else 0,
        "longest_overall": max((row["longest"] for row in rows), default=0),
    }
    return {"overview": overview, "streaks": rows}


# ---------------------------------------------------------------------------
# Query engine
# ---------------------------------------------------------------------------


class AnalyticsQueryEngine:
    """Dispatch analytics kinds for one user over a date range."""

    KINDS = (
        "completion_trend",
        "weekly_pattern",
        "top_habits",
        "category_performance",
        "mood",
        "consistency",
        "streaks",
        "habit_daily",
        "dashboard",
    )

    def __init__(
        self,
        *,
        logs: "LogStore",
        habits: "HabitRepository",
        categories: "CategoryRepository",
        clock: Callable[[], date] = utc_today,
    ):
        self.logs = logs
        self.habits = habits
        self.categories = categories
        self.clock = clock

    def query(self, user_id: int, kind: str, params: Mapping[str, Any] | None = None) -> Any:
        if kind not in self.KINDS:
            raise ValueError(f"Unknown analytics kind: {kind}")
        options = AnalyticsParams.from_mapping(params)
        start, end = resolve_range(
            today=self.clock(), days=options.days, start=options.start, end=options.end
        )
        logger.debug(
            "Analytics query",
            extra={"user_id": user_id, "kind": kind, "start": start, "end": end},
        )
        handler = getattr(self, f"_{kind}")
        return handler(user_id, start, end, options)

    def _range_logs(
        self, user_id: int, start: date, end: date, options: AnalyticsParams
    ) -> list[HabitLog]:
        habit_ids = [options.habit_id] if options.habit_id is not None else None
        return self.logs.find_logs_in_range(user_id, start, end, habit_ids=habit_ids)

    def _completion_trend(self, user_id, start, end, options):
        return completion_trend(self._range_logs(user_id, start, end, options), start, end)

    def _weekly_pattern(self, user_id, start, end, options):
        return weekly_pattern(self._range_logs(user_id, start, end, options))

    def _top_habits(self, user_id, start, end, options):
        habits = self.habits.list_for_user(user_id, include_inactive=True)
        return top_habits(self._range_logs(user_id, start, end, options), habits, limit=options.limit)

    def _category_performance(self, user_id, start, end, options):
        habits = self.habits.list_for_user(user_id, include_inactive=True)
        categories = self.categories.list_for_user(user_id)
        return category_performance(self._range_logs(user_id, start, end, options), habits, categories)

    def _mood(self, user_id, start, end, options):
        return mood_report(self._range_logs(user_id, start, end, options))

    def _consistency(self, user_id, start, end, options):
        return consistency(self._range_logs(user_id, start, end, options), start, end)

    def _habit_daily(self, user_id, start, end, options):
        return habit_daily(self._range_logs(user_id, start, end, options))

    def _streaks(self, user_id, start, end, options):
        habits = self.habits.list_for_user(user_id, include_inactive=False)
        logs_by_habit = {habit.id: self.logs.find_logs_for_habit(habit.id) for habit in habits}
        return streak_board(habits, logs_by_habit, today=self.clock())

    def _dashboard(self, user_id, start, end, options):
        logs = self._range_logs(user_id, start, end, options)
        habits = self.habits.list_for_user(user_id, include_inactive=True)
        categories = self.categories.list_for_user(user_id)
        trend = completion_trend(logs, start, end)
        logged_days = [row["percentage"] for row in trend if row["total"]]
        window = consistency(logs, start, end)
        all_time = self.logs.find_logs_in_range(user_id, date.min, end)

        return {
            "overview": {
                "total_habits": sum(1 for habit in habits if habit.is_active),
                "total_categories": len(categories),
                "total_completions": sum(1 for log in all_time if log.completed),
                "average_completion_rate": (
                    int(round_half_up(sum(logged_days) / len(logged_days), 0)) if logged_days else 0
                ),
                "consistency_score": window["score"],
                "active_days": window["active_days"],
                "period": window["total_days"],
            },
            "completion_trend": trend,
            "top_habits": top_habits(logs, habits, limit=options.limit),
            "category_performance": category_performance(logs, habits, categories)["performance"],
        }


__all__ = [
    "AnalyticsParams",
    "AnalyticsQueryEngine",
    "WEEKDAY_LABELS",
    "category_performance",
    "completion_trend",
    "consistency",
    "habit_daily",
    "mood_report",
    "streak_board",
    "top_habits",
    "weekly_pattern",
]
