"""Concrete repository implementations using SQLModel."""

from .category import SQLModelCategoryRepository
from .habit import SQLModelHabitRepository
from .log import SQLModelLogRepository
from .user import SQLModelUserRepository

__all__ = [
    "SQLModelCategoryRepository",
    "SQLModelHabitRepository",
    "SQLModelLogRepository",
    "SQLModelUserRepository",
]
