"""Service module exports."""

from . import (
    analytics,
    cascade,
    defaults,
    engine,
    habit_stats,
    rollups,
    streaks,
    windows,
)

__all__ = [
    "analytics",
    "cascade",
    "defaults",
    "engine",
    "habit_stats",
    "rollups",
    "streaks",
    "windows",
]
