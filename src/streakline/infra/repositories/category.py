"""SQLModel implementation of Category repository."""

from __future__ import annotations

from typing import Callable, Optional

from sqlmodel import Session, select

from ...errors import NotFound
from ...models.category import Category
from ...services.rollups import CategoryStats


class SQLModelCategoryRepository:
    """SQLModel-based category repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    def get_by_id(self, category_id: int) -> Optional[Category]:
        """Retrieve a category by ID."""
        with self.session_factory() as session:
            obj = session.get(Category, category_id)
            if obj:
                session.expunge(obj)
            return obj

    def get_by_name(self, name: str, *, user_id: int) -> Optional[Category]:
        """Retrieve a category by name."""
        with self.session_factory() as session:
            statement = select(Category).where(Category.name == name, Category.user_id == user_id)
            obj = session.exec(statement).first()
            if obj:
                session.expunge(obj)
            return obj

    def list_for_user(self, user_id: int) -> list[Category]:
        """List a user's categories in display order."""
        with self.session_factory() as session:
            statement = (
                select(Category)
                .where(Category.user_id == user_id)
                .order_by(Category.sort_order, Category.name)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, category: Category) -> Category:
        """Create a new category."""
        with self.session_factory() as session:
            session.add(category)
            session.commit()
            session.refresh(category)
            session.expunge(category)
            return category

    def update(self, category: Category) -> Category:
        """Update an existing category."""
        with self.session_factory() as session:
            existing = session.get(Category, category.id) if category.id is not None else None
            if existing is None:
                raise NotFound("category", category.id)
            for field in ("name", "description", "color", "icon", "sort_order"):
                setattr(existing, field, getattr(category, field))
            session.add(existing)
            session.commit()
            session.refresh(existing)
            session.expunge(existing)
            return existing

    def delete(self, category_id: int) -> None:
        """Delete a category; its habits and their logs are deleted too."""
        with self.session_factory() as session:
            category = session.get(Category, category_id)
            if category is None:
                raise NotFound("category", category_id)
            session.delete(category)
            session.commit()

    def mark_dirty(self, category_id: int) -> None:
        """Flag the cached rollup as stale and bump its generation."""
        with self.session_factory() as session:
            category = session.get(Category, category_id)
            if category is None:
                raise NotFound("category", category_id)
            category.stats_dirty = True
            category.stats_generation = Category.stats_generation + 1  # type: ignore[assignment]
            session.add(category)
            session.commit()

    def save_category_stats(
        self,
        category_id: int,
        stats: CategoryStats,
        *,
        expected_generation: Optional[int] = None,
    ) -> Category:
        """Persist the rollup.

        The stale flag is cleared only when the generation still matches
        ``expected_generation``; an invalidation that landed meanwhile keeps it set.
        """
        with self.session_factory() as session:
            category = session.exec(
                select(Category).where(Category.id == category_id).with_for_update()
            ).first()
            if category is None:
                raise NotFound("category", category_id)
            category.total_habits = stats.total_habits
            category.active_habits = stats.active_habits
            category.completion_rate = stats.completion_rate
            if expected_generation is None or category.stats_generation == expected_generation:
                category.stats_dirty = False
            session.add(category)
            session.commit()
            session.refresh(category)
            session.expunge(category)
            return category
