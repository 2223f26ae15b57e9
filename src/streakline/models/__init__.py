"""SQLModel table exports."""

from .category import Category
from .habit import Habit
from .habit_log import HabitLog
from .user import User

__all__ = [
    "Category",
    "Habit",
    "HabitLog",
    "User",
]
