"""User model owning categories, habits and their logs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .category import Category


class User(SQLModel, table=True):
    """Habit tracker account with cached rollup stats."""

    __tablename__: ClassVar[str] = "user"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(nullable=False, unique=True, index=True, max_length=64)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Cached rollup across every active habit the user owns.
    total_habits: int = Field(default=0, nullable=False)
    total_completions: int = Field(default=0, nullable=False)
    current_streak: int = Field(default=0, nullable=False)
    longest_streak: int = Field(default=0, nullable=False)
    stats_dirty: bool = Field(default=True, nullable=False)
    stats_generation: int = Field(default=0, nullable=False)

    categories: list["Category"] = Relationship(
        back_populates="user",
        sa_relationship=relationship(
            "Category", back_populates="user", cascade="all, delete-orphan"
        ),
    )
