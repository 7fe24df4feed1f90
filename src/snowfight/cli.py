"""Command line entrypoint for the Snowfight leaderboard."""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Awaitable, Callable

import click
from sqlalchemy.exc import SQLAlchemyError

from .core.config import get_settings
from .core.logging import setup_logging
from .db.session import configure_engine, init_db
from .reconcile.jobs import (
    ReconcileReport,
    migrate_puuids,
    remove_invalid_entries,
    repair_entries,
    scrape_matches,
    update_scores,
)
from .riot.client import RiotClient

logger = logging.getLogger("snowfight.cli")


def _run_job(job: Callable[[RiotClient], Awaitable[ReconcileReport]]) -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    try:
        configure_engine()
        init_db()
        report = asyncio.run(job(RiotClient()))
    except SQLAlchemyError as exc:
        logger.error("Error connecting to DB: %s", exc)
        sys.exit(1)
    click.echo(json.dumps(report.as_dict()))


@click.group()
def cli():
    """Snowfight leaderboard tools.

    Reconciliation jobs walk the stored players one by one against the
    Riot API. A failed record is logged and skipped.
    """


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Restart on code changes.")
def serve(host: str, port: int, reload: bool):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("snowfight.api.main:app", host=host, port=port, reload=reload)


@cli.command("update-scores")
def update_scores_command():
    """Refresh every player's snowballs-hit score."""
    _run_job(update_scores)


@cli.command("migrate-puuids")
def migrate_puuids_command():
    """Re-resolve every stored PUUID after an API key change."""
    _run_job(migrate_puuids)


@cli.command("repair")
def repair_command():
    """Rebuild PUUID, profile icon and score from each stored Riot ID."""
    _run_job(repair_entries)


@cli.command("remove-invalid")
def remove_invalid_command():
    """Delete malformed entries and Riot IDs that no longer exist."""
    _run_job(remove_invalid_entries)


@cli.command("scrape-matches")
@click.argument("game_name")
@click.argument("tagline")
@click.argument("region")
@click.argument("count", type=click.IntRange(1, 100))
def scrape_matches_command(game_name: str, tagline: str, region: str, count: int):
    """Add every participant of GAME_NAME#TAGLINE's last COUNT ARAM games."""
    _run_job(lambda riot: scrape_matches(riot, game_name, tagline, region, count))


if __name__ == "__main__":
    cli()
