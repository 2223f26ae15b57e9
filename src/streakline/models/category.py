"""Habit category definitions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .habit import Habit
    from .user import User


class Category(SQLModel, table=True):
    """Grouping of habits with a cached completion rollup."""

    __tablename__: ClassVar[str] = "category"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_category_user_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    name: str = Field(nullable=False, max_length=30, index=True)
    description: str = Field(default="", max_length=200)
    color: str = Field(default="#3b82f6", max_length=7)
    icon: str = Field(default="📝", max_length=16)
    is_default: bool = Field(default=False, nullable=False)
    sort_order: int = Field(default=0, nullable=False)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    total_habits: int = Field(default=0, nullable=False)
    active_habits: int = Field(default=0, nullable=False)
    completion_rate: int = Field(default=0, nullable=False)
    stats_dirty: bool = Field(default=True, nullable=False)
    # Bumped by every invalidation; a rollup save only clears the flag if unchanged.
    stats_generation: int = Field(default=0, nullable=False)

    habits: list["Habit"] = Relationship(
        back_populates="category",
        sa_relationship=relationship(
            "Habit", back_populates="category", cascade="all, delete-orphan"
        ),
    )

    user: "User" = Relationship(sa_relationship=relationship("User", back_populates="categories"))
