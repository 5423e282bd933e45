"""Command line entry point: ``ai-tools-catalog``."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import click

from . import config
from .catalog import CatalogStore
from .classifier import build_classifier
from .logging_config import setup_logging
from .orchestrator import run_all_scrapers
from .orchestrator import run_single_scraper
from .scrapers import SCRAPER_SLUGS
from .scrapers import get_all_scrapers
from .scrapers import get_scraper
from .storage import synced_catalog

logger = logging.getLogger(__name__)


def _open_store(db_path: Path) -> CatalogStore:
    store = CatalogStore(db_path)
    store.initialize()
    return store


def _echo_json(payload) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


@click.group()
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Catalog database (defaults to CATALOG_DB_PATH)",
)
@click.option("--log-level", default=None, help="Root log level (defaults to LOG_LEVEL)")
@click.pass_context
def cli(ctx: click.Context, db_path: Optional[Path], log_level: Optional[str]) -> None:
    """Aggregate AI tool announcements into a deduplicated catalog."""
    setup_logging(log_level or config.log_level())
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path or config.catalog_db_path()


@cli.command("init-db")
@click.pass_context
def init_db(ctx: click.Context) -> None:
    """Create the catalog schema and seed categories."""
    with synced_catalog(ctx.obj["db_path"]) as db_path:
        _open_store(db_path)
    click.echo(f"Catalog ready at {ctx.obj['db_path']}")


@cli.command("run")
@click.option("--mode", type=click.Choice(["parallel", "sequential"]), default=None, help="Defaults to SCRAPE_MODE")
@click.option("--delay", type=float, default=None, help="Seconds between scrapers in sequential mode")
@click.pass_context
def run(ctx: click.Context, mode: Optional[str], delay: Optional[float]) -> None:
    """Run every scraper and record a run log."""
    with synced_catalog(ctx.obj["db_path"]) as db_path:
        store = _open_store(db_path)
        scrapers = get_all_scrapers(store, build_classifier())
        outcome = asyncio.run(run_all_scrapers(store, scrapers, mode=mode, delay=delay))
    _echo_json(outcome["summary"])


@cli.command("scrape")
@click.argument("source", type=click.Choice(SCRAPER_SLUGS, case_sensitive=False))
@click.pass_context
def scrape(ctx: click.Context, source: str) -> None:
    """Run a single scraper by name."""
    with synced_catalog(ctx.obj["db_path"]) as db_path:
        store = _open_store(db_path)
        outcome = asyncio.run(run_single_scraper(get_scraper(source, store, build_classifier())))
    _echo_json(outcome)
    if not outcome["success"]:
        ctx.exit(1)


@cli.command("stats")
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show catalog totals."""
    store = _open_store(ctx.obj["db_path"])
    _echo_json(store.get_platform_stats().model_dump())


@cli.command("logs")
@click.option("--limit", default=20, show_default=True, help="Number of recent runs to show")
@click.pass_context
def logs(ctx: click.Context, limit: int) -> None:
    """Show recent scraping runs."""
    store = _open_store(ctx.obj["db_path"])
    for log in store.get_run_logs(limit):
        summary = log.summary
        click.echo(
            f"{log.run_date:%Y-%m-%d %H:%M} "
            f"run={summary.get('scrapers_run', 0)} "
            f"failed={summary.get('scrapers_failed', 0)} "
            f"added={summary.get('total_tools_added', 0)} "
            f"duplicates={summary.get('total_duplicates', 0)} "
            f"errors={summary.get('total_errors', 0)}"
        )
    _echo_json(store.get_run_log_stats().model_dump())


if __name__ == "__main__":
    cli()
