"""User repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.user import User
from ...services.rollups import UserStats


class UserRepository(Protocol):
    """Repository for users and their cached rollups."""

    def get_by_id(self, user_id: int) -> Optional[User]:
        """Retrieve a user by ID."""
        ...

    def get_by_username(self, username: str) -> Optional[User]:
        """Retrieve a user by username."""
        ...

    def create(self, user: User) -> User:
        """Create a new user."""
        ...

    def delete(self, user_id: int) -> None:
        """Delete a user and everything they own."""
        ...

    def mark_dirty(self, user_id: int) -> None:
        """Flag the cached rollup as stale and bump its generation."""
        ...

    def save_user_stats(
        self,
        user_id: int,
        stats: UserStats,
        *,
        expected_generation: Optional[int] = None,
    ) -> User:
        """Persist the rollup; clear the stale flag if the generation is unchanged."""
        ...
