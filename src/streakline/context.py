"""Engine context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

from .config import BaseConfig
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories import (
    SQLModelCategoryRepository,
    SQLModelHabitRepository,
    SQLModelLogRepository,
    SQLModelUserRepository,
)
from .services.engine import StatsEngine
from .services.windows import utc_today


@dataclass
class EngineContext:
    """Configured repositories plus the stats engine built on them."""

    config: BaseConfig
    db_engine: Any
    session_factory: Callable[[], Any]

    log_repo: SQLModelLogRepository
    habit_repo: SQLModelHabitRepository
    category_repo: SQLModelCategoryRepository
    user_repo: SQLModelUserRepository

    stats: StatsEngine

    def dispose(self) -> None:
        """Release pooled connections."""
        self.db_engine.dispose()


def create_engine_context(
    config: Optional[BaseConfig] = None,
    *,
    clock: Callable[[], date] = utc_today,
) -> EngineContext:
    """Create the database, repositories and stats engine from configuration."""

    if config is None:
        config = BaseConfig()

    db_engine = create_db_engine(config)
    init_database(db_engine)
    session_factory = create_session_factory(db_engine)

    log_repo = SQLModelLogRepository(session_factory)
    habit_repo = SQLModelHabitRepository(session_factory)
    category_repo = SQLModelCategoryRepository(session_factory)
    user_repo = SQLModelUserRepository(session_factory)

    stats = StatsEngine.from_config(
        config,
        logs=log_repo,
        habits=habit_repo,
        categories=category_repo,
        users=user_repo,
        clock=clock,
    )

    return EngineContext(
        config=config,
        db_engine=db_engine,
        session_factory=session_factory,
        log_repo=log_repo,
        habit_repo=habit_repo,
        category_repo=category_repo,
        user_repo=user_repo,
        stats=stats,
    )
