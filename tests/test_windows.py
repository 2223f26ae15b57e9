"""Tests for date windows and rounding helpers."""

from __future__ import annotations

from datetime import date

import pytest

from streakline.errors import InvalidRange
from streakline.services.windows import (
    days_in_range,
    percentage,
    resolve_range,
    round_half_up,
    whole_percentage,
    window_start,
)

from conftest import TODAY, days_ago


def test_window_start_is_inclusive():
    assert window_start(TODAY, 1) == TODAY
    assert window_start(TODAY, 30) == days_ago(29)
    assert days_in_range(window_start(TODAY, 30), TODAY) == 30


@pytest.mark.parametrize("days", [0, -3])
def test_window_must_cover_a_day(days):
    with pytest.raises(InvalidRange):
        window_start(TODAY, days)


def test_resolve_range_defaults_to_trailing_thirty_days():
    assert resolve_range(today=TODAY) == (days_ago(29), TODAY)
    assert resolve_range(today=TODAY, days=7) == (days_ago(6), TODAY)


def test_resolve_range_explicit_bounds():
    start, end = date(2024, 2, 1), date(2024, 2, 29)
    assert resolve_range(today=TODAY, start=start, end=end) == (start, end)
    assert resolve_range(today=TODAY, days=3, end=start) == (date(2024, 1, 30), start)


def test_resolve_range_rejects_inverted_bounds():
    with pytest.raises(InvalidRange) as exc_info:
        resolve_range(today=TODAY, start=TODAY, end=days_ago(1))
    assert exc_info.value.start == TODAY


@pytest.mark.parametrize(
    "value, places, expected",
    [
        (2.5, 0, 3.0),
        (0.125, 2, 0.13),
        (33.333333, 2, 33.33),
        (66.665, 2, 66.67),
    ],
)
def test_round_half_up(value, places, expected):
    assert round_half_up(value, places) == expected


def test_percentage_of_nothing_is_zero():
    assert percentage(3, 0) == 0.0
    assert whole_percentage(0, 0) == 0


def test_percentage_rounding():
    assert percentage(1, 3) == 33.33
    assert whole_percentage(1, 8) == 13
    assert whole_percentage(7, 10) == 70
