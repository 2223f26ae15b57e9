"""Streak calculation over a habit's completion log.

This is the only place streaks are derived; habit, user and analytics
code all call :func:`compute_streak`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Protocol


class DatedEntry(Protocol):
    """Anything with a calendar day and a completed flag."""

    log_date: date
    completed: bool


@dataclass(frozen=True, slots=True)
class StreakInfo:
    """Current/longest run of completed days for one habit."""

    current: int = 0
    longest: int = 0
    last_completed_date: Optional[date] = None


def compute_streak(entries: Iterable[DatedEntry], *, today: date | None = None) -> StreakInfo:
    """Return the streak for a single habit's log entries.

    Entries are walked most-recent-first. A day without a record breaks a run
    exactly like a record with ``completed=False``. The current streak is the
    run that starts on the anchor day, which is ``today`` when given and the
    most recent entry's day otherwise. Entries dated after the anchor count
    toward the longest run but never toward the current one.
    """

    by_day: dict[date, bool] = {}
    for entry in entries:
        by_day.setdefault(entry.log_date, bool(entry.completed))

    if not by_day:
        return StreakInfo()

    days = sorted(by_day, reverse=True)
    anchor = today or days[0]

    current = 0
    longest = 0
    running = 0
    last_completed: date | None = None
    # Inside the run that starts on the anchor day.
    touching_anchor = False
    previous: date | None = None

    for day in days:
        if previous is not None and (previous - day).days > 1:
            running = 0
            touching_anchor = False
        if day == anchor:
            touching_anchor = True

        if by_day[day]:
            running += 1
            if last_completed is None:
                last_completed = day
            if touching_anchor:
                current += 1
        else:
            running = 0
            touching_anchor = False

        longest = max(longest, running)
        previous = day

    return StreakInfo(current=current, longest=longest, last_completed_date=last_completed)


__all__ = ["DatedEntry", "StreakInfo", "compute_streak"]
