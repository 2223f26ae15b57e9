"""Engine configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

WATERMARK_MONOTONIC = "monotonic"
WATERMARK_RECOMPUTE = "recompute"
WATERMARK_POLICIES = frozenset({WATERMARK_MONOTONIC, WATERMARK_RECOMPUTE})


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, rejecting junk early."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "Streakline"
    DB_FILENAME = "streakline.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    def __init__(self) -> None:
        self.DEV_MODE = _env_bool("STREAKLINE_DEV_MODE", default=True)
        self.DATA_DIR = self._resolve_data_dir()
        self.DATABASE_URL = os.getenv("STREAKLINE_DATABASE_URL", self._build_sqlite_url())
        self.STATS_WINDOW_DAYS = _env_int("STREAKLINE_STATS_WINDOW_DAYS", 30)
        self.WATERMARK_POLICY = (
            os.getenv("STREAKLINE_WATERMARK_POLICY", WATERMARK_MONOTONIC).strip().lower()
        )
        self.RECOMPUTE_RETRIES = _env_int("STREAKLINE_RECOMPUTE_RETRIES", 1)
        self.validate()

    def validate(self) -> None:
        """Reject settings the engine cannot honour."""

        if self.STATS_WINDOW_DAYS <= 0:
            raise ValueError("STREAKLINE_STATS_WINDOW_DAYS must be a positive number of days.")
        if self.WATERMARK_POLICY not in WATERMARK_POLICIES:
            raise ValueError(
                f"STREAKLINE_WATERMARK_POLICY must be one of {sorted(WATERMARK_POLICIES)}, "
                f"got {self.WATERMARK_POLICY!r}"
            )
        if self.RECOMPUTE_RETRIES < 0:
            raise ValueError("STREAKLINE_RECOMPUTE_RETRIES cannot be negative.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("STREAKLINE_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        """Construct the default SQLite URL inside the data directory."""

        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.DATABASE_URL.startswith("sqlite"):
            return {}
        connect_args: dict[str, Any] = {"check_same_thread": False}
        return {"connect_args": connect_args}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Configuration for test runs; callers usually override DATABASE_URL."""

    __test__ = False

    DEBUG = False
    TESTING = True

    def __init__(self, database_url: str | None = None, **overrides: Any) -> None:
        super().__init__()
        if database_url is not None:
            self.DATABASE_URL = database_url
        for key, value in overrides.items():
            setattr(self, key.upper(), value)
        self.validate()
