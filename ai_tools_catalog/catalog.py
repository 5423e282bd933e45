"""SQLite catalog store for tools, categories and scraping run logs."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from datetime import timezone
from pathlib import Path
from typing import Any
from typing import Dict
from typing import Iterator
from typing import List
from typing import Optional
from typing import Union

from .categorization import CATEGORY_SEED
from .models import Category
from .models import InsertResult
from .models import NewTool
from .models import PlatformStats
from .models import RunLog
from .models import RunLogStats
from .models import Tool
from .models import ToolFilters

logger = logging.getLogger(__name__)

ITEMS_PER_PAGE = 12

SCHEMA = """
CREATE TABLE IF NOT EXISTS ai_tools (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT,
    url TEXT NOT NULL,                -- normalized form
    category TEXT NOT NULL DEFAULT 'Other',
    tags TEXT NOT NULL DEFAULT '[]',  -- JSON array
    image_url TEXT,
    release_date TEXT,                -- ISO date
    source TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_ai_tools_url ON ai_tools (url);
CREATE INDEX IF NOT EXISTS idx_ai_tools_created_at ON ai_tools (created_at);

CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    icon TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS scraping_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_date TEXT NOT NULL,
    summary TEXT NOT NULL,            -- JSON object
    details TEXT NOT NULL,            -- JSON array, one entry per scraper
    created_at TEXT NOT NULL
);
"""


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_tool(row: sqlite3.Row) -> Tool:
    data = dict(row)
    data["tags"] = json.loads(data["tags"] or "[]")
    return Tool.model_validate(data)


def _row_to_run_log(row: sqlite3.Row) -> RunLog:
    data = dict(row)
    data["summary"] = json.loads(data["summary"])
    data["details"] = json.loads(data["details"])
    return RunLog.model_validate(data)


class CatalogStore:
    """Catalog persistence backed by a single SQLite file.

    A short-lived connection is opened per operation, so one store instance
    can be shared by concurrently running scrapers.
    """

    def __init__(self, db_path: Union[str, Path]) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection, committing on success and rolling back on error."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row  # Enable dict-like access
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the schema and seed the reference categories."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            conn.executescript(SCHEMA)
            existing = conn.execute("SELECT COUNT(*) FROM categories").fetchone()[0]
            if not existing:
                now = _utcnow()
                conn.executemany(
                    "INSERT INTO categories (name, description, icon, created_at) VALUES (?, ?, ?, ?)",
                    [(name, description, icon, now) for name, description, icon in CATEGORY_SEED],
                )
                logger.info(f"Seeded {len(CATEGORY_SEED)} categories")
        logger.debug(f"Catalog schema ready at {self.db_path}")

    # Write API

    def insert_tool(self, tool: NewTool) -> InsertResult:
        """Insert a tool row. Database errors are reported, not raised."""
        now = _utcnow()
        try:
            with self.connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO ai_tools
                    (name, description, url, category, tags, image_url, release_date, source, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        tool.name,
                        tool.description,
                        tool.url,
                        tool.category,
                        json.dumps(tool.tags),
                        tool.image_url,
                        tool.release_date.isoformat() if tool.release_date else None,
                        tool.source,
                        now,
                        now,
                    ],
                )
                tool_id = cursor.lastrowid
        except sqlite3.Error as exc:
            logger.error(f"Failed to insert tool {tool.name}: {exc}")
            return InsertResult(error=str(exc))

        logger.info(f"Added tool: {tool.name} ({tool.source})")
        return InsertResult(tool_id=tool_id)

    def record_run_log(self, summary: Dict[str, Any], details: List[Dict[str, Any]]) -> int:
        """Persist one orchestrator run. Raises on database errors."""
        now = _utcnow()
        with self.connect() as conn:
            cursor = conn.execute(
                "INSERT INTO scraping_logs (run_date, summary, details, created_at) VALUES (?, ?, ?, ?)",
                [now, json.dumps(summary), json.dumps(details, default=str), now],
            )
            log_id = cursor.lastrowid
        logger.info(f"Recorded scraping run #{log_id}")
        return log_id

    # Lookups used by deduplication

    def find_tool_by_url(self, url: str) -> Optional[Tool]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM ai_tools WHERE url = ? LIMIT 1", [url]).fetchone()
        return _row_to_tool(row) if row else None

    def find_tool_by_name(self, name: str) -> Optional[Tool]:
        """Case-insensitive exact name lookup."""
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM ai_tools WHERE name = ? COLLATE NOCASE LIMIT 1", [name]).fetchone()
        return _row_to_tool(row) if row else None

    def list_tool_identities(self) -> List[tuple[int, str, str]]:
        """All ``(id, name, url)`` triples, for the fuzzy duplicate scan."""
        with self.connect() as conn:
            rows = conn.execute("SELECT id, name, url FROM ai_tools").fetchall()
        return [(row["id"], row["name"], row["url"]) for row in rows]

    # Read API

    def get_tools(self, page: int = 0, filters: Optional[ToolFilters] = None) -> List[Tool]:
        """One page of tools, newest first."""
        filters = filters or ToolFilters()
        clauses: List[str] = []
        params: List[Any] = []

        if filters.category and filters.category != "all":
            clauses.append("category = ?")
            params.append(filters.category)

        if filters.search:
            pattern = f"%{_escape_like(filters.search)}%"
            clauses.append("(name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\')")
            params.extend([pattern, pattern])

        for tag in filters.tags:
            clauses.append("EXISTS (SELECT 1 FROM json_each(ai_tools.tags) WHERE json_each.value = ?)")
            params.append(tag)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        params.extend([ITEMS_PER_PAGE, max(page, 0) * ITEMS_PER_PAGE])

        with self.connect() as conn:
            rows = conn.execute(
                f"SELECT * FROM ai_tools {where} ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                params,
            ).fetchall()
        return [_row_to_tool(row) for row in rows]

    def get_tool_by_id(self, tool_id: int) -> Optional[Tool]:
        with self.connect() as conn:
            row = conn.execute("SELECT * FROM ai_tools WHERE id = ?", [tool_id]).fetchone()
        return _row_to_tool(row) if row else None

    def get_recent_tools(self, limit: int = 6) -> List[Tool]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM ai_tools ORDER BY created_at DESC, id DESC LIMIT ?",
                [limit],
            ).fetchall()
        return [_row_to_tool(row) for row in rows]

    def get_related_tools(self, tool_id: int, category: str, limit: int = 4) -> List[Tool]:
        """Other tools in the same category."""
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM ai_tools WHERE category = ? AND id != ? ORDER BY created_at DESC, id DESC LIMIT ?",
                [category, tool_id, limit],
            ).fetchall()
        return [_row_to_tool(row) for row in rows]

    def get_categories(self) -> List[Category]:
        with self.connect() as conn:
            rows = conn.execute("SELECT * FROM categories ORDER BY name ASC").fetchall()
        return [Category.model_validate(dict(row)) for row in rows]

    def get_all_tags(self) -> List[str]:
        with self.connect() as conn:
            rows = conn.execute("SELECT tags FROM ai_tools").fetchall()
        tags: set[str] = set()
        for row in rows:
            tags.update(json.loads(row["tags"] or "[]"))
        return sorted(tags)

    def get_platform_stats(self) -> PlatformStats:
        midnight = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        with self.connect() as conn:
            total_tools = conn.execute("SELECT COUNT(*) FROM ai_tools").fetchone()[0]
            total_categories = conn.execute("SELECT COUNT(*) FROM categories").fetchone()[0]
            new_today = conn.execute(
                "SELECT COUNT(*) FROM ai_tools WHERE created_at >= ?",
                [midnight.isoformat()],
            ).fetchone()[0]
        return PlatformStats(
            total_tools=total_tools,
            total_categories=total_categories,
            new_today=new_today,
            total_tags=len(self.get_all_tags()),
        )

    def get_run_logs(self, limit: int = 20) -> List[RunLog]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM scraping_logs ORDER BY run_date DESC, id DESC LIMIT ?",
                [limit],
            ).fetchall()
        return [_row_to_run_log(row) for row in rows]

    def get_run_log_stats(self, limit: int = 20) -> RunLogStats:
        """Aggregate figures over the most recent runs."""
        logs = self.get_run_logs(limit)
        total_runs = len(logs)
        total_added = sum(log.summary.get("total_tools_added", 0) or 0 for log in logs)
        successful = sum(1 for log in logs if not log.summary.get("scrapers_failed"))
        return RunLogStats(
            total_runs=total_runs,
            total_tools_added=total_added,
            avg_tools_per_run=round(total_added / total_runs) if total_runs else 0,
            success_rate=round(successful / total_runs * 100) if total_runs else 0,
        )
