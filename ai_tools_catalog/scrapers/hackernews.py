"""Show HN launches from the Hacker News Firebase API."""

import logging
import re
from datetime import datetime
from datetime import timezone
from typing import Optional

import httpx
from pydantic import BaseModel

from .base import BaseScraper
from .base import Candidate
from .base import ScrapeResults

logger = logging.getLogger(__name__)

HN_API_BASE = "https://hacker-news.firebaseio.com/v0"
MAX_STORIES = 30


class HNItem(BaseModel):
    id: int
    type: Optional[str] = None
    title: str = ""
    url: Optional[str] = None
    text: Optional[str] = None
    score: int = 0
    time: Optional[int] = None
    by: Optional[str] = None


def clean_hn_title(title: str) -> str:
    """Drop the ``Show HN:`` prefix and any `` - tagline`` suffix."""
    title = re.sub(r"^Show HN:\s*", "", title, flags=re.IGNORECASE)
    title = re.sub(r"\s-\s.*$", "", title)
    return title.strip()


class HackerNewsScraper(BaseScraper):
    name = "Hacker News"
    slug = "hackernews"

    async def scrape(self, client: httpx.AsyncClient, results: ScrapeResults) -> None:
        story_ids: list[int] = await self.fetch_json(client, f"{HN_API_BASE}/showstories.json", list[int])
        story_ids = story_ids[:MAX_STORIES]
        results.total = len(story_ids)

        async def build(story_id: int) -> Optional[Candidate]:
            item: Optional[HNItem] = await self.fetch_json(client, f"{HN_API_BASE}/item/{story_id}.json", Optional[HNItem])
            if item is None or item.type != "story" or not item.url:
                return None
            return self._to_candidate(item)

        await self.process_items(results, story_ids, build, lambda story_id: f"Item {story_id}")

    def _to_candidate(self, item: HNItem) -> Candidate:
        released = datetime.fromtimestamp(item.time, tz=timezone.utc).date() if item.time else None
        return Candidate(
            name=clean_hn_title(item.title),
            url=item.url,
            description=item.text or f"{item.title} (via Hacker News)",
            source=self.name,
            source_tags=("show hn", "hacker news"),
            release_date=released,
            trusted=True,
        )
