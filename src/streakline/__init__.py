"""Streak and rollup statistics engine for habit tracking."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .context import EngineContext, create_engine_context
from .services.engine import StatsEngine

__all__ = ["BaseConfig", "DevConfig", "EngineContext", "StatsEngine", "create_engine_context"]
