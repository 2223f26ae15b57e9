"""Error taxonomy for the stats engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional


class StreaklineError(Exception):
    """Base class for engine errors."""


class NotFound(StreaklineError):
    """A habit, category, user or log referenced by an operation does not exist."""

    def __init__(self, kind: str, identifier: Any):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier!r} not found")


class InvalidRange(StreaklineError):
    """A requested date range or window is malformed."""

    def __init__(self, start: date | None, end: date | None, reason: str | None = None):
        self.start = start
        self.end = end
        self.reason = reason or "start date is after end date"
        super().__init__(f"Invalid range {start} .. {end}: {self.reason}")


class ConcurrentModification(StreaklineError):
    """The habit's log set changed while its stats were being recomputed."""

    def __init__(self, habit_id: int, expected: int, actual: int):
        self.habit_id = habit_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Habit {habit_id} log version moved from {expected} to {actual} during recompute"
        )


class AggregateSaveError(StreaklineError):
    """Persisting a computed aggregate failed.

    ``computed`` holds the value that was about to be written so the caller can
    retry the save without paying for the recompute again. ``version`` is the
    habit log version or rollup generation the value was computed against.
    """

    def __init__(
        self,
        level: str,
        identifier: int,
        computed: Any,
        cause: BaseException,
        version: Optional[int] = None,
    ):
        self.level = level
        self.identifier = identifier
        self.computed = computed
        self.cause = cause
        self.version = version
        super().__init__(f"Saving {level} stats for {identifier} failed: {cause}")


@dataclass(frozen=True, slots=True)
class ComputationSkipped:
    """Notice that a dependent rollup was invalidated but not recomputed.

    Not an error: category and user rollups are pulled lazily, so every
    mutation reports the levels it left dirty.
    """

    level: str
    identifier: int
    reason: str = "invalidated; recomputed on next read"


__all__ = [
    "AggregateSaveError",
    "ComputationSkipped",
    "ConcurrentModification",
    "InvalidRange",
    "NotFound",
    "StreaklineError",
]
