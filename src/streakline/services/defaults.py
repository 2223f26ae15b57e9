"""Starter categories handed to new users."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..logging_config import get_logger
from ..models.category import Category

if TYPE_CHECKING:  # pragma: no cover
    from ..domain.repositories import CategoryRepository

logger = get_logger(__name__)

DEFAULT_CATEGORIES: tuple[dict, ...] = (
    {
        "name": "Health & Fitness",
        "description": "Physical health, exercise, and wellness habits",
        "color": "#10b981",
        "icon": "💪",
    },
    {
        "name": "Learning",
        "description": "Education, reading, and skill development",
        "color": "#3b82f6",
        "icon": "📚",
    },
    {
        "name": "Productivity",
        "description": "Work, organization, and efficiency habits",
        "color": "#8b5cf6",
        "icon": "⚡",
    },
    {
        "name": "Mindfulness",
        "description": "Mental health, meditation, and self-care",
        "color": "#06b6d4",
        "icon": "🧘",
    },
    {
        "name": "Social",
        "description": "Relationships, communication, and social activities",
        "color": "#f59e0b",
        "icon": "👥",
    },
)


def seed_default_categories(categories: "CategoryRepository", user_id: int) -> list[Category]:
    """Create any missing default categories for ``user_id``; idempotent."""

    created = []
    for order, preset in enumerate(DEFAULT_CATEGORIES, start=1):
        if categories.get_by_name(preset["name"], user_id=user_id) is not None:
            continue
        created.append(
            categories.create(
                Category(user_id=user_id, is_default=True, sort_order=order, **preset)
            )
        )
    if created:
        logger.info(
            "Default categories seeded",
            extra={"user_id": user_id, "seeded": [c.name for c in created]},
        )
    return created
