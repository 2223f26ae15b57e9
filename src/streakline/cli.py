"""Operator CLI for recomputing stats and running analytics queries."""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass

import click

from .config import BaseConfig
from .errors import StreaklineError
from .logging_config import setup_logging


def _echo_json(payload) -> None:
    if is_dataclass(payload):
        payload = asdict(payload)
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.option("--database-url", envvar="STREAKLINE_DATABASE_URL", default=None, help="SQLAlchemy URL")
@click.pass_context
def cli(ctx: click.Context, database_url: str | None) -> None:
    """Streakline stats engine commands."""

    from .context import create_engine_context

    config = BaseConfig()
    if database_url:
        config.DATABASE_URL = database_url
    setup_logging(config)
    engine_ctx = create_engine_context(config)
    ctx.obj = engine_ctx
    ctx.call_on_close(engine_ctx.dispose)


@cli.command("recompute-habit")
@click.argument("habit_id", type=int)
@click.pass_obj
def recompute_habit(engine_ctx, habit_id: int) -> None:
    """Recompute streak and stats for one habit."""

    _run(lambda: engine_ctx.stats.recompute_habit_stats(habit_id))


@cli.command("recompute-category")
@click.argument("category_id", type=int)
@click.pass_obj
def recompute_category(engine_ctx, category_id: int) -> None:
    """Recompute the rollup for one category."""

    _run(lambda: engine_ctx.stats.recompute_category_stats(category_id))


@cli.command("recompute-user")
@click.argument("user_id", type=int)
@click.pass_obj
def recompute_user(engine_ctx, user_id: int) -> None:
    """Recompute the rollup for one user."""

    _run(lambda: engine_ctx.stats.recompute_user_stats(user_id))


@cli.command("analytics")
@click.argument("user_id", type=int)
@click.argument("kind")
@click.option("--days", type=int, default=None, help="Trailing window length")
@click.option("--start", default=None, help="First day (YYYY-MM-DD)")
@click.option("--end", default=None, help="Last day (YYYY-MM-DD)")
@click.option("--habit", "habit_id", type=int, default=None, help="Limit to one habit")
@click.option("--limit", type=int, default=None, help="Row limit for top habits")
@click.pass_obj
def analytics(engine_ctx, user_id: int, kind: str, **params) -> None:
    """Run an analytics query (completion_trend, mood, dashboard, ...)."""

    params = {key: value for key, value in params.items() if value is not None}
    _run(lambda: engine_ctx.stats.query_analytics(user_id, kind, params))


@cli.command("seed-categories")
@click.argument("user_id", type=int)
@click.pass_obj
def seed_categories(engine_ctx, user_id: int) -> None:
    """Create the default categories for a user."""

    _run(lambda: [category.name for category in engine_ctx.stats.seed_default_categories(user_id)])


def _run(action) -> None:
    try:
        result = action()
    except (StreaklineError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_json(result)


def main() -> None:
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
