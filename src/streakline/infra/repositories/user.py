"""SQLModel implementation of User repository."""

from __future__ import annotations

from typing import Callable, Optional

from sqlmodel import Session, select

from ...errors import NotFound
from ...models.user import User
from ...services.rollups import UserStats


class SQLModelUserRepository:
    """SQLModel-based user repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve a user by ID."""
        with self.session_factory() as session:
            obj = session.get(User, user_id)
            if obj:
                session.expunge(obj)
            return obj

    def get_by_username(self, username: str) -> Optional[User]:
        """Retrieve a user by username."""
        with self.session_factory() as session:
            obj = session.exec(select(User).where(User.username == username)).first()
            if obj:
                session.expunge(obj)
            return obj

    def create(self, user: User) -> User:
        """Create a new user."""
        with self.session_factory() as session:
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user

    def delete(self, user_id: int) -> None:
        """Delete a user with all owned categories, habits and logs."""
        with self.session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFound("user", user_id)
            session.delete(user)
            session.commit()

    def mark_dirty(self, user_id: int) -> None:
        """Flag the cached rollup as stale and bump its generation."""
        with self.session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                raise NotFound("user", user_id)
            user.stats_dirty = True
            user.stats_generation = User.stats_generation + 1  # type: ignore[assignment]
            session.add(user)
            session.commit()

    def save_user_stats(
        self,
        user_id: int,
        stats: UserStats,
        *,
        expected_generation: Optional[int] = None,
    ) -> User:
        """Persist the rollup; the stale flag survives a generation bump."""
        with self.session_factory() as session:
            user = session.exec(select(User).where(User.id == user_id).with_for_update()).first()
            if user is None:
                raise NotFound("user", user_id)
            user.total_habits = stats.total_habits
            user.total_completions = stats.total_completions
            user.current_streak = stats.current_streak
            user.longest_streak = stats.longest_streak
            if expected_generation is None or user.stats_generation == expected_generation:
                user.stats_dirty = False
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)
            return user
