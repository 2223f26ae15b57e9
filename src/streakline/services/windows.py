"""Date windows and percentage rounding shared by the aggregators."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from ..errors import InvalidRange

DEFAULT_WINDOW_DAYS = 30


def utc_today() -> date:
    """Current calendar day in UTC."""

    return datetime.now(timezone.utc).date()


def window_start(today: date, days: int) -> date:
    """First day of a trailing window of ``days`` days ending on ``today``."""

    if days <= 0:
        raise InvalidRange(None, today, f"window must cover at least one day, got {days}")
    return today - timedelta(days=days - 1)


def resolve_range(
    *,
    today: date,
    days: int | None = None,
    start: date | None = None,
    end: date | None = None,
) -> tuple[date, date]:
    """Return an inclusive (start, end) pair from explicit bounds or a trailing window."""

    end = end or today
    if start is None:
        start = window_start(end, days if days is not None else DEFAULT_WINDOW_DAYS)
    if start > end:
        raise InvalidRange(start, end)
    return start, end


def days_in_range(start: date, end: date) -> int:
    return (end - start).days + 1


def round_half_up(value: float, places: int = 2) -> float:
    """Round like a pocket calculator: halves go away from zero."""

    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(part: int | float, whole: int | float, places: int = 2) -> float:
    """``part / whole * 100`` rounded half-up; 0 when ``whole`` is zero."""

    if not whole:
        return 0.0
    return round_half_up(part / whole * 100, places)


def whole_percentage(part: int | float, whole: int | float) -> int:
    return int(percentage(part, whole, places=0))


__all__ = [
    "DEFAULT_WINDOW_DAYS",
    "days_in_range",
    "percentage",
    "resolve_range",
    "round_half_up",
    "utc_today",
    "whole_percentage",
    "window_start",
]
