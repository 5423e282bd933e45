"""Run scrapers, aggregate their outcomes and persist a run log."""

import asyncio
import logging
import time
from typing import Any
from typing import Optional
from typing import Sequence

from . import config
from .catalog import CatalogStore
from .logging_utils import pipeline_summary
from .scrapers import BaseScraper

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def _run_envelope(scraper: BaseScraper) -> dict[str, Any]:
    """Run one scraper and capture its outcome; never raises."""
    started = time.perf_counter()
    try:
        results = await scraper.run()
    except Exception as exc:
        logger.error(f"{scraper.name} scraper failed: {exc}")
        return {
            "scraper": scraper.name,
            "success": False,
            "error": str(exc) or exc.__class__.__name__,
            "duration": _elapsed_ms(started),
        }
    return {
        "scraper": scraper.name,
        "success": True,
        "results": results.to_dict(),
        "duration": _elapsed_ms(started),
    }


def _sum_counter(details: Sequence[dict[str, Any]], key: str) -> int:
    total = 0
    for entry in details:
        results = entry.get("results") or {}
        total += results.get(key) or 0
    return total


def summarize(details: Sequence[dict[str, Any]], total_duration: int) -> dict[str, Any]:
    """Aggregate counters over per-scraper outcomes; missing counters count as zero."""
    successful = sum(1 for entry in details if entry.get("success"))
    return {
        "total_duration": total_duration,
        "scrapers_run": len(details),
        "scrapers_successful": successful,
        "scrapers_failed": len(details) - successful,
        "total_tools_added": _sum_counter(details, "added"),
        "total_duplicates": _sum_counter(details, "duplicates"),
        "total_errors": _sum_counter(details, "errors"),
    }


async def run_all_scrapers(
    store: CatalogStore,
    scrapers: Sequence[BaseScraper],
    mode: Optional[str] = None,
    delay: Optional[float] = None,
) -> dict[str, Any]:
    """Run every scraper and record one run log.

    ``mode`` is ``parallel`` (all scrapers at once) or ``sequential`` (one at
    a time, ``delay`` seconds apart); both default to configuration.
    """
    mode = mode or config.scrape_mode()
    delay = config.scrape_delay_seconds() if delay is None else delay

    with pipeline_summary("scrape") as summary_log:
        summary_log.set_attribute("mode", mode)
        logger.info(f"Starting {mode} scraping run with {len(scrapers)} scrapers...")

        started = time.perf_counter()
        if mode == "sequential":
            details = []
            for index, scraper in enumerate(scrapers):
                if index and delay > 0:
                    await asyncio.sleep(delay)
                details.append(await _run_envelope(scraper))
        else:
            details = list(await asyncio.gather(*(_run_envelope(scraper) for scraper in scrapers)))

        summary = summarize(details, _elapsed_ms(started))

        try:
            store.record_run_log(summary, details)
        except Exception as exc:
            logger.error(f"Failed to log scraping run: {exc}")

        summary_log.record_outcome(summary, details)

    logger.info(
        f"Scraping run finished: {summary['scrapers_successful']}/{summary['scrapers_run']} scrapers succeeded, "
        f"{summary['total_tools_added']} tools added"
    )
    return {"summary": summary, "results": details}


async def run_single_scraper(scraper: BaseScraper) -> dict[str, Any]:
    """Run one scraper on its own; returns ``{success, results}`` or ``{success, error}``."""
    envelope = await _run_envelope(scraper)
    if envelope["success"]:
        return {"success": True, "results": envelope["results"]}
    return {"success": False, "error": envelope["error"]}
