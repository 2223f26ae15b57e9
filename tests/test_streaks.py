"""Tests for streak calculation.

Covers:
- Consecutive days and gaps
- Anchoring on "today" vs the most recent entry
- Incomplete records vs missing days
- Duplicate records for one day
- Empty habit data
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from streakline.services.streaks import StreakInfo, compute_streak

from conftest import TODAY, days_ago


@dataclass
class Entry:
    log_date: date
    completed: bool = True


def completed_days(*days: date) -> list[Entry]:
    return [Entry(day) for day in days]


class TestCurrentStreak:
    """Tests for the run that touches the anchor day."""

    def test_no_entries_returns_zero_streak(self):
        """Habit with no entries should have zero streaks and no last completion."""
        assert compute_streak([]) == StreakInfo(current=0, longest=0, last_completed_date=None)
        assert compute_streak([], today=TODAY) == StreakInfo()

    def test_single_entry_today_returns_one(self):
        """Single completed entry for today gives a streak of 1."""
        streak = compute_streak(completed_days(TODAY), today=TODAY)

        assert streak.current == 1
        assert streak.longest == 1
        assert streak.last_completed_date == TODAY

    def test_consecutive_days_returns_correct_streak(self):
        """Seven consecutive days ending today."""
        entries = completed_days(*(days_ago(i) for i in range(7)))

        streak = compute_streak(entries, today=TODAY)

        assert streak.current == 7
        assert streak.longest == 7

    def test_gap_breaks_streak_without_today(self):
        """Days 1, 2, 3 and 5: current counts from the newest entry only."""
        entries = completed_days(date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3), date(2024, 3, 5))

        streak = compute_streak(entries)

        assert streak.current == 1
        assert streak.longest == 3
        assert streak.last_completed_date == date(2024, 3, 5)

    def test_weekday_gap_anchored_on_latest_entry(self):
        """Mon, Tue, Thu with no explicit today: current 1, longest 2."""
        monday = date(2024, 3, 11)
        entries = completed_days(monday, monday + timedelta(days=1), monday + timedelta(days=3))

        streak = compute_streak(entries)

        assert streak.current == 1
        assert streak.longest == 2

    def test_missing_today_resets_current(self):
        """Mon, Tue, Thu evaluated on Friday: nothing touches today."""
        monday = date(2024, 3, 11)
        entries = completed_days(monday, monday + timedelta(days=1), monday + timedelta(days=3))

        streak = compute_streak(entries, today=TODAY)

        assert streak.current == 0
        assert streak.longest == 2
        assert streak.last_completed_date == date(2024, 3, 14)

    def test_input_order_does_not_matter(self):
        """Entries are sorted internally."""
        days = [days_ago(2), TODAY, days_ago(1)]
        assert compute_streak(completed_days(*days), today=TODAY).current == 3

    def test_entry_after_today_does_not_cancel_current(self):
        """A log dated tomorrow counts toward the longest run only."""
        tomorrow = TODAY + timedelta(days=1)
        entries = completed_days(tomorrow, TODAY, days_ago(1))

        streak = compute_streak(entries, today=TODAY)

        assert streak.current == 2
        assert streak.longest == 3

    def test_only_future_entries(self):
        streak = compute_streak(completed_days(TODAY + timedelta(days=2)), today=TODAY)

        assert streak.current == 0
        assert streak.longest == 1


class TestIncompleteRecords:
    """Tests for records with completed=False."""

    def test_incomplete_record_breaks_run(self):
        """An explicit miss between two completions splits the run."""
        entries = [Entry(TODAY), Entry(days_ago(1), completed=False), Entry(days_ago(2))]

        streak = compute_streak(entries, today=TODAY)

        assert streak.current == 1
        assert streak.longest == 1

    def test_missing_day_equals_incomplete_day(self):
        """No record and a completed=False record give the same streak."""
        with_gap = [Entry(TODAY), Entry(days_ago(2)), Entry(days_ago(3))]
        with_miss = [Entry(TODAY), Entry(days_ago(1), completed=False), Entry(days_ago(2)), Entry(days_ago(3))]

        assert compute_streak(with_gap, today=TODAY) == compute_streak(with_miss, today=TODAY)

    def test_incomplete_today_keeps_history(self):
        """A miss logged today zeroes current but keeps longest and last completion."""
        entries = [Entry(TODAY, completed=False), Entry(days_ago(1)), Entry(days_ago(2))]

        streak = compute_streak(entries, today=TODAY)

        assert streak.current == 0
        assert streak.longest == 2
        assert streak.last_completed_date == days_ago(1)

    def test_only_incomplete_records(self):
        """Nothing completed: zeros and no last completion."""
        entries = [Entry(days_ago(i), completed=False) for i in range(3)]

        assert compute_streak(entries, today=TODAY) == StreakInfo()


class TestLongestStreak:
    """Tests for the longest run anywhere in history."""

    def test_longest_run_in_the_past(self):
        """A long historic run outlives a short current one."""
        entries = completed_days(TODAY, *(days_ago(i) for i in range(5, 15)))

        streak = compute_streak(entries, today=TODAY)

        assert streak.current == 1
        assert streak.longest == 10

    def test_duplicate_day_counts_once(self):
        """Two records on the same day never double count; the first one wins."""
        entries = [Entry(TODAY), Entry(TODAY, completed=False), Entry(days_ago(1))]

        streak = compute_streak(entries, today=TODAY)

        assert streak.current == 2
        assert streak.longest == 2

    def test_longest_never_below_current(self):
        entries = completed_days(*(days_ago(i) for i in range(4)))
        streak = compute_streak(entries, today=TODAY)
        assert streak.longest >= streak.current
