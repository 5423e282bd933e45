"""Next-run calculation for the scraping schedule."""

import logging
from datetime import datetime
from datetime import timezone
from typing import Dict
from typing import Optional

from croniter import croniter

from . import config

logger = logging.getLogger(__name__)


def _format_delta(seconds: int) -> str:
    days, remainder = divmod(max(seconds, 0), 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def calculate_next_run(cron_expression: str, now: Optional[datetime] = None) -> Optional[Dict[str, str]]:
    """Next UTC run time for ``cron_expression``, or None if it does not parse."""
    now = now or datetime.now(timezone.utc)
    try:
        next_run = croniter(cron_expression, now).get_next(datetime)
    except (ValueError, KeyError) as e:
        logger.warning(f"Failed to calculate next run for cron '{cron_expression}': {e}")
        return None

    return {
        "schedule": cron_expression,
        "next_run": next_run.isoformat(),
        "next_run_in": _format_delta(int((next_run - now).total_seconds())),
    }


def next_scrape_run() -> Optional[Dict[str, str]]:
    return calculate_next_run(config.scrape_cron())
