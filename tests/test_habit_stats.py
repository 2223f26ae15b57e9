"""Tests for per-habit statistics and the habit recompute path."""

from __future__ import annotations

import pytest

from streakline.config import WATERMARK_MONOTONIC, WATERMARK_RECOMPUTE
from streakline.errors import NotFound
from streakline.models import Habit, HabitLog
from streakline.services.habit_stats import apply_watermark, compute_habit_stats

from conftest import TODAY, days_ago, new_log


def make_habit(**overrides) -> Habit:
    fields = {"id": 1, "user_id": 1, "category_id": 1, "name": "Run", "target_type": "number"}
    fields.update(overrides)
    return Habit(**fields)


def make_log(day, completed=True, value=None) -> HabitLog:
    return HabitLog(habit_id=1, user_id=1, log_date=day, completed=completed, value=value)


class TestComputeHabitStats:
    """Pure calculation over an in-memory log history."""

    def test_empty_history(self):
        """No logs: everything is zero, including the rate."""
        stats, streak = compute_habit_stats(make_habit(), [], today=TODAY)

        assert stats.total_completions == 0
        assert stats.completion_rate == 0
        assert stats.average_value == 0.0
        assert stats.best_streak == 0
        assert streak.current == 0

    def test_completion_rate_uses_trailing_window(self):
        """Logs older than the window count towards totals but not the rate."""
        logs = [
            make_log(TODAY),
            make_log(days_ago(1)),
            make_log(days_ago(2)),
            make_log(days_ago(3), completed=False),
            make_log(days_ago(45)),
        ]

        stats, _ = compute_habit_stats(make_habit(), logs, today=TODAY, window_days=30)

        assert stats.completion_rate == 75
        assert stats.total_completions == 4

    def test_window_edges_are_inclusive(self):
        """A 7 day window ending today starts six days ago."""
        logs = [make_log(days_ago(6)), make_log(days_ago(7), completed=False)]

        stats, _ = compute_habit_stats(make_habit(), logs, today=TODAY, window_days=7)

        assert stats.completion_rate == 100

    def test_completion_rate_rounds_half_up(self):
        """1 of 8 is 12.5%, stored as 13."""
        logs = [make_log(TODAY)] + [make_log(days_ago(i), completed=False) for i in range(1, 8)]

        stats, _ = compute_habit_stats(make_habit(), logs, today=TODAY)

        assert stats.completion_rate == 13

    def test_average_value_of_completed_logs(self):
        """Incomplete logs never contribute a value."""
        logs = [
            make_log(TODAY, value=10),
            make_log(days_ago(1), value=20),
            make_log(days_ago(2), value=25),
            make_log(days_ago(3), completed=False, value=100),
        ]

        stats, _ = compute_habit_stats(make_habit(), logs, today=TODAY)

        assert stats.average_value == 18.33

    def test_boolean_habit_has_no_average(self):
        logs = [make_log(TODAY, value=3)]
        stats, _ = compute_habit_stats(make_habit(target_type="boolean"), logs, today=TODAY)
        assert stats.average_value == 0.0

    def test_stored_watermark_kept_when_monotonic(self):
        """A shorter fresh streak never lowers best_streak under the default policy."""
        habit = make_habit(best_streak=5, streak_longest=5)
        logs = [make_log(TODAY), make_log(days_ago(1))]

        stats, streak = compute_habit_stats(habit, logs, today=TODAY, policy=WATERMARK_MONOTONIC)

        assert stats.best_streak == 5
        assert streak.longest == 5
        assert streak.current == 2

    def test_stored_watermark_replaced_when_recomputing(self):
        habit = make_habit(best_streak=5, streak_longest=5)
        logs = [make_log(TODAY), make_log(days_ago(1))]

        stats, streak = compute_habit_stats(habit, logs, today=TODAY, policy=WATERMARK_RECOMPUTE)

        assert stats.best_streak == 2
        assert streak.longest == 2


class TestApplyWatermark:
    def test_monotonic_keeps_maximum(self):
        assert apply_watermark(4, 2, WATERMARK_MONOTONIC) == 4
        assert apply_watermark(4, 6, WATERMARK_MONOTONIC) == 6

    def test_recompute_takes_fresh_value(self):
        assert apply_watermark(4, 2, WATERMARK_RECOMPUTE) == 2

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            apply_watermark(1, 1, "sometimes")


class TestRecomputeHabitStats:
    """Recompute through the engine against a real database."""

    def test_recompute_persists_cached_columns(self, stats_engine, habit_repo, habit_factory, log_factory):
        """Cached columns on the habit row match the returned snapshot."""
        habit = habit_factory(name="Read", target_type="number", target_unit="pages")
        for i, pages in enumerate([10, 12, 14]):
            log_factory(habit, days_ago(i), value=pages)

        snapshot = stats_engine.recompute_habit_stats(habit.id)
        stored = habit_repo.get_by_id(habit.id)

        assert snapshot.streak.current == 3
        assert stored.streak_current == 3
        assert stored.streak_longest == 3
        assert stored.best_streak == 3
        assert stored.total_completions == 3
        assert stored.completion_rate == 100
        assert stored.average_value == 12.0
        assert stored.last_completed_date == TODAY

    def test_recompute_is_idempotent(self, stats_engine, habit_repo, habit_factory, log_factory):
        """Two recomputes with no log changes store identical values."""
        habit = habit_factory()
        log_factory(habit, TODAY)
        log_factory(habit, days_ago(2), completed=False)
        log_factory(habit, days_ago(3))

        first = stats_engine.recompute_habit_stats(habit.id)
        stored_first = habit_repo.get_by_id(habit.id)
        second = stats_engine.recompute_habit_stats(habit.id)
        stored_second = habit_repo.get_by_id(habit.id)

        assert first == second
        assert stored_first.model_dump() == stored_second.model_dump()

    def test_incremental_matches_from_scratch(self, engine_factory, habit_repo, habit_factory):
        """Stats after a series of log writes equal a recompute over the same logs."""
        stats_engine = engine_factory()
        habit = habit_factory(target_type="duration", target_unit="minutes")
        for i, minutes in [(4, 20), (3, 25), (1, 30), (0, 15)]:
            stats_engine.record_log(new_log(habit, days_ago(i), value=minutes))
        stats_engine.record_log(new_log(habit, days_ago(2), completed=False))
        incremental = habit_repo.get_by_id(habit.id)

        fresh = engine_factory().recompute_habit_stats(habit.id)

        assert incremental.streak_current == fresh.streak.current == 2
        assert incremental.streak_longest == fresh.streak.longest == 2
        assert incremental.total_completions == fresh.stats.total_completions == 4
        assert incremental.average_value == fresh.stats.average_value == 22.5
        assert incremental.completion_rate == fresh.stats.completion_rate == 80

    def test_deleting_logs_keeps_best_streak_by_default(self, stats_engine, habit_repo, habit_factory):
        """Monotonic watermarks survive log deletion."""
        habit = habit_factory()
        outcomes = [stats_engine.record_log(new_log(habit, days_ago(i))) for i in range(3)]
        middle = outcomes[1].log

        outcome = stats_engine.delete_log(middle.id)
        stored = habit_repo.get_by_id(habit.id)

        assert outcome.snapshot.streak.current == 1
        assert stored.streak_current == 1
        assert stored.streak_longest == 3
        assert stored.best_streak == 3

    def test_deleting_logs_lowers_best_streak_when_recomputing(
        self, engine_factory, habit_repo, habit_factory
    ):
        """With the recompute policy watermarks follow the remaining logs."""
        stats_engine = engine_factory(watermark_policy=WATERMARK_RECOMPUTE)
        habit = habit_factory()
        outcomes = [stats_engine.record_log(new_log(habit, days_ago(i))) for i in range(3)]

        stats_engine.delete_log(outcomes[1].log.id)
        stored = habit_repo.get_by_id(habit.id)

        assert stored.streak_longest == 1
        assert stored.best_streak == 1

    def test_window_days_configurable(self, engine_factory, habit_factory, log_factory):
        habit = habit_factory()
        log_factory(habit, TODAY)
        log_factory(habit, days_ago(10), completed=False)

        assert engine_factory(window_days=7).recompute_habit_stats(habit.id).stats.completion_rate == 100
        assert engine_factory(window_days=30).recompute_habit_stats(habit.id).stats.completion_rate == 50

    def test_unknown_habit_raises_not_found(self, stats_engine):
        with pytest.raises(NotFound) as exc_info:
            stats_engine.recompute_habit_stats(999)
        assert exc_info.value.kind == "habit"
