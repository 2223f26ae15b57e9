"""Pytest configuration and shared fixtures for Streakline tests.

This module provides database fixtures, entity factories and a stats engine
pinned to a fixed "today", so streak and window maths are deterministic.
"""

from __future__ import annotations

import tempfile
from datetime import date, timedelta
from pathlib import Path

import pytest
from sqlmodel import Session, SQLModel, create_engine

from streakline.infra.database import session_scope
from streakline.infra.repositories import (
    SQLModelCategoryRepository,
    SQLModelHabitRepository,
    SQLModelLogRepository,
    SQLModelUserRepository,
)
from streakline.models import Category, Habit, HabitLog, User  # registers tables on SQLModel.metadata
from streakline.services.engine import StatsEngine

# Friday, 15 March 2024
TODAY = date(2024, 3, 15)


def days_ago(n: int) -> date:
    """Calendar day ``n`` days before TODAY."""
    return TODAY - timedelta(days=n)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine connected to test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(
        f"sqlite:///{db_path}", echo=False, connect_args={"check_same_thread": False, "timeout": 30}
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def db_session(db_engine):
    """Database session used by the factories.

    Yields:
        Session: SQLModel session for test
    """
    session = Session(db_engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching what the repositories expect.

    Returns:
        Callable: Factory returning transactional session context managers
    """

    def factory():
        return session_scope(db_engine)

    return factory


# =============================================================================
# Repositories and engine
# =============================================================================


@pytest.fixture
def log_repo(session_factory) -> SQLModelLogRepository:
    return SQLModelLogRepository(session_factory)


@pytest.fixture
def habit_repo(session_factory) -> SQLModelHabitRepository:
    return SQLModelHabitRepository(session_factory)


@pytest.fixture
def category_repo(session_factory) -> SQLModelCategoryRepository:
    return SQLModelCategoryRepository(session_factory)


@pytest.fixture
def user_repo(session_factory) -> SQLModelUserRepository:
    return SQLModelUserRepository(session_factory)


@pytest.fixture
def engine_factory(log_repo, habit_repo, category_repo, user_repo):
    """Build a StatsEngine over the test repositories.

    Returns:
        Callable: Function accepting StatsEngine keyword overrides
    """

    def _build(**overrides) -> StatsEngine:
        options = {
            "logs": log_repo,
            "habits": habit_repo,
            "categories": category_repo,
            "users": user_repo,
            "clock": lambda: TODAY,
        }
        options.update(overrides)
        return StatsEngine(**options)

    return _build


@pytest.fixture
def stats_engine(engine_factory) -> StatsEngine:
    """Engine with default window, monotonic watermarks and a fixed clock."""
    return engine_factory()


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user_factory(db_session):
    """Factory for creating users.

    Returns:
        Callable: Function that creates and persists User instances
    """
    counter = {"n": 0}

    def _create_user(username: str | None = None) -> User:
        counter["n"] += 1
        user = User(username=username or f"tester-{counter['n']}")
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def user(user_factory) -> User:
    """Default owner for test data."""
    return user_factory("tester")


@pytest.fixture
def category_factory(db_session, user):
    """Factory for creating categories.

    Returns:
        Callable: Function that creates and persists Category instances
    """

    def _create_category(
        name: str = "Health",
        color: str = "#10b981",
        sort_order: int = 0,
        owner: User | None = None,
    ) -> Category:
        owner = owner or user
        category = Category(user_id=owner.id, name=name, color=color, sort_order=sort_order)
        db_session.add(category)
        db_session.commit()
        db_session.refresh(category)
        return category

    return _create_category


@pytest.fixture
def category(category_factory) -> Category:
    return category_factory()


@pytest.fixture
def habit_factory(db_session, user, category):
    """Factory for creating habits.

    Returns:
        Callable: Function that creates and persists Habit instances
    """
    default_category = category

    def _create_habit(
        name: str = "Test Habit",
        target_type: str = "boolean",
        target_unit: str = "times",
        is_active: bool = True,
        category: Category | None = None,
        owner: User | None = None,
    ) -> Habit:
        """Create a habit with sensible defaults.

        Args:
            name: Habit name
            target_type: boolean, number or duration
            target_unit: Unit copied to new logs
            is_active: Whether the habit counts towards rollups
            category: Owning category (defaults to the shared test category)
            owner: Owning user (defaults to the category's owner)
        """
        owning_category = category or default_category
        habit = Habit(
            user_id=(owner.id if owner else owning_category.user_id),
            category_id=owning_category.id,
            name=name,
            target_type=target_type,
            target_unit=target_unit,
            is_active=is_active,
        )
        db_session.add(habit)
        db_session.commit()
        db_session.refresh(habit)
        return habit

    return _create_habit


@pytest.fixture
def log_factory(db_session):
    """Factory for writing logs straight to the database, bypassing the engine.

    Returns:
        Callable: Function that creates and persists HabitLog instances
    """

    def _create_log(
        habit: Habit,
        log_date: date,
        completed: bool = True,
        value: float | None = None,
        mood: str | None = None,
    ) -> HabitLog:
        log = HabitLog(
            habit_id=habit.id,
            user_id=habit.user_id,
            log_date=log_date,
            completed=completed,
            value=value,
            mood=mood,
        )
        db_session.add(log)
        db_session.commit()
        db_session.refresh(log)
        return log

    return _create_log


def new_log(habit: Habit, log_date: date, completed: bool = True, **fields) -> HabitLog:
    """Unsaved log for handing to the engine."""
    return HabitLog(habit_id=habit.id, user_id=habit.user_id, log_date=log_date, completed=completed, **fields)
