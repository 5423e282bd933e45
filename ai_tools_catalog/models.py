"""Catalog data shapes shared by the store, the scrapers and the read API."""

from datetime import date
from datetime import datetime
from typing import Any
from typing import Optional

from pydantic import BaseModel
from pydantic import Field


class NewTool(BaseModel):
    """A tool accepted by a scraper, ready to be inserted."""

    name: str
    description: Optional[str] = None
    url: str
    category: str = "Other"
    tags: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    release_date: Optional[date] = None
    source: str


class Tool(NewTool):
    """A persisted catalog row."""

    id: int
    created_at: datetime
    updated_at: datetime


class Category(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    created_at: datetime


class RunLog(BaseModel):
    """Outcome of one orchestrator invocation."""

    id: int
    run_date: datetime
    summary: dict[str, Any]
    details: list[dict[str, Any]]
    created_at: datetime


class ToolFilters(BaseModel):
    category: Optional[str] = None
    search: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class PlatformStats(BaseModel):
    total_tools: int
    total_categories: int
    new_today: int
    total_tags: int


class RunLogStats(BaseModel):
    total_runs: int
    total_tools_added: int
    avg_tools_per_run: int
    success_rate: int  # percent of runs with no failed scraper


class InsertResult(BaseModel):
    tool_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ClassificationResult(BaseModel):
    """Structured view of a candidate produced by the classifier."""

    is_tool: bool
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
