"""Repository protocol definitions for domain layer."""

from .category import CategoryRepository
from .habit import HabitRepository
from .log import LogStore
from .user import UserRepository

__all__ = [
    "CategoryRepository",
    "HabitRepository",
    "LogStore",
    "UserRepository",
]
