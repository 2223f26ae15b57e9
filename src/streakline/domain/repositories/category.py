"""Category repository protocol."""

from __future__ import annotations

from typing import Optional, Protocol

from ...models.category import Category
from ...services.rollups import CategoryStats


class CategoryRepository(Protocol):
    """Repository for categories and their cached rollups."""

    def get_by_id(self, category_id: int) -> Optional[Category]:
        """Retrieve a category by ID."""
        ...

    def get_by_name(self, name: str, *, user_id: int) -> Optional[Category]:
        """Retrieve a category by name."""
        ...

    def list_for_user(self, user_id: int) -> list[Category]:
        """List a user's categories in display order."""
        ...

    def create(self, category: Category) -> Category:
        """Create a new category."""
        ...

    def update(self, category: Category) -> Category:
        """Update an existing category."""
        ...

    def delete(self, category_id: int) -> None:
        """Delete a category together with its habits and their logs."""
        ...

    def mark_dirty(self, category_id: int) -> None:
        """Flag the cached rollup as stale and bump its generation."""
        ...

    def save_category_stats(
        self,
        category_id: int,
        stats: CategoryStats,
        *,
        expected_generation: Optional[int] = None,
    ) -> Category:
        """Persist the rollup; clear the stale flag if the generation is unchanged."""
        ...
