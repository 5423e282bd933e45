"""JSON HTTP interface: scraping triggers and the catalog read API."""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from fasthtml.fastapp import fast_app
from starlette.responses import JSONResponse

from . import config
from .catalog import CatalogStore
from .classifier import Classifier
from .classifier import build_classifier
from .cron_utils import next_scrape_run
from .logging_config import setup_logging
from .models import ToolFilters
from .orchestrator import run_all_scrapers
from .orchestrator import run_single_scraper
from .scrapers import get_all_scrapers
from .scrapers import get_scraper

load_dotenv()
setup_logging(config.log_level())

logger = logging.getLogger(__name__)

# Lazily created so tests and deployments can point CATALOG_DB_PATH elsewhere
_store: Optional[CatalogStore] = None
_classifier: Optional[Classifier] = None


def get_store() -> CatalogStore:
    global _store
    if _store is None:
        _store = CatalogStore(config.catalog_db_path())
        _store.initialize()
        logger.info(f"Serving catalog from {_store.db_path}")
    return _store


def get_classifier() -> Classifier:
    global _classifier
    if _classifier is None:
        _classifier = build_classifier()
    return _classifier


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def _parse_tags(tags: Optional[str]) -> list[str]:
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]


app, rt = fast_app()


@rt("/health")
def health():
    return {"status": "ok"}


@rt("/scrape", methods=["post"])
async def scrape_all():
    """Run every scraper and return the orchestrator summary."""
    store = get_store()
    try:
        outcome = await run_all_scrapers(store, get_all_scrapers(store, get_classifier()))
    except Exception as exc:
        logger.error(f"Orchestrator error: {exc}")
        return _error(str(exc), 500)
    return {"success": True, **outcome}


@rt("/scrape/{source}", methods=["post"])
async def scrape_source(source: str):
    store = get_store()
    try:
        scraper = get_scraper(source, store, get_classifier())
    except KeyError:
        return _error(f"Unknown source: {source}", 404)

    outcome = await run_single_scraper(scraper)
    if not outcome["success"]:
        return JSONResponse(outcome, status_code=500)
    return outcome


@rt("/api/tools")
def list_tools(page: int = 0, category: str = None, search: str = None, tags: str = None):
    filters = ToolFilters(category=category, search=search, tags=_parse_tags(tags))
    tools = get_store().get_tools(page, filters)
    return {"page": page, "tools": [tool.model_dump(mode="json") for tool in tools]}


@rt("/api/tools/{tool_id}")
def tool_detail(tool_id: int):
    tool = get_store().get_tool_by_id(tool_id)
    if tool is None:
        return _error(f"Tool {tool_id} not found", 404)
    return tool.model_dump(mode="json")


@rt("/api/tools/{tool_id}/related")
def related_tools(tool_id: int):
    store = get_store()
    tool = store.get_tool_by_id(tool_id)
    if tool is None:
        return _error(f"Tool {tool_id} not found", 404)
    related = store.get_related_tools(tool.id, tool.category)
    return {"tools": [item.model_dump(mode="json") for item in related]}


@rt("/api/recent")
def recent_tools():
    return {"tools": [tool.model_dump(mode="json") for tool in get_store().get_recent_tools()]}


@rt("/api/categories")
def categories():
    return {"categories": [category.model_dump(mode="json") for category in get_store().get_categories()]}


@rt("/api/tags")
def tags():
    return {"tags": get_store().get_all_tags()}


@rt("/api/stats")
def stats():
    return get_store().get_platform_stats().model_dump()


@rt("/api/logs")
def run_logs():
    """Recent scraping runs with aggregate stats and the next scheduled run."""
    store = get_store()
    return {
        "logs": [log.model_dump(mode="json") for log in store.get_run_logs()],
        "stats": store.get_run_log_stats().model_dump(),
        "next_run": next_scrape_run(),
    }


# For direct script execution
if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("WEB_PORT", "8000"))
    logger.info(f"Starting server on port {port}")
    uvicorn.run("ai_tools_catalog.web:app", host="0.0.0.0", port=port)
