"""Newly created AI repositories from the GitHub search API."""

import logging
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Optional

import httpx
from pydantic import BaseModel
from pydantic import Field

from .. import config
from ..retry import retry_with_backoff
from .base import BaseScraper
from .base import Candidate
from .base import ScrapeResults

logger = logging.getLogger(__name__)

GITHUB_SEARCH_URL = "https://api.github.com/search/repositories"
LOOKBACK = timedelta(hours=48)
PER_PAGE = 20
MAX_TOPIC_TAGS = 5


class GitHubRepo(BaseModel):
    name: str
    full_name: str
    html_url: str
    description: Optional[str] = None
    topics: list[str] = Field(default_factory=list)
    stargazers_count: int = 0
    created_at: datetime


class GitHubSearchResponse(BaseModel):
    total_count: int = 0
    items: list[GitHubRepo] = Field(default_factory=list)


def _get_headers() -> dict[str, str]:
    """Build headers for GitHub API requests."""
    headers = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": config.USER_AGENT,
    }
    token = config.github_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def build_search_query(now: Optional[datetime] = None) -> str:
    """``topic:ai`` repositories created in the last 48 hours.

    No star threshold: fresh repositories rarely have any yet.
    """
    now = now or datetime.now(timezone.utc)
    since = (now - LOOKBACK).date().isoformat()
    return f"topic:ai created:>{since}"


class GitHubScraper(BaseScraper):
    name = "GitHub"
    slug = "github"

    async def scrape(self, client: httpx.AsyncClient, results: ScrapeResults) -> None:
        params = {
            "q": build_search_query(),
            "sort": "stars",
            "order": "desc",
            "per_page": PER_PAGE,
        }
        response: GitHubSearchResponse = await retry_with_backoff(
            lambda: self.fetch_json(client, GITHUB_SEARCH_URL, GitHubSearchResponse, params=params, headers=_get_headers())
        )
        results.total = len(response.items)
        await self.process_items(results, response.items, self._to_candidate, lambda repo: repo.full_name)

    async def _to_candidate(self, repo: GitHubRepo) -> Candidate:
        return Candidate(
            name=repo.name,
            url=repo.html_url,
            description=repo.description or f"GitHub repository for {repo.name}",
            source=self.name,
            source_tags=("github", "open-source"),
            extra_tags=repo.topics[:MAX_TOPIC_TAGS],
            release_date=repo.created_at.date(),
            trusted=True,
        )
