"""Fresh project showcases from Dev.to's ``ai`` tag."""

import logging
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Optional

import httpx
from pydantic import BaseModel
from pydantic import Field
from pydantic import field_validator

from ..categorization import MAX_TOOL_TAGS
from ..retry import retry_with_backoff
from .base import BaseScraper
from .base import Candidate
from .base import ScrapeResults

logger = logging.getLogger(__name__)

DEVTO_ARTICLES_URL = "https://dev.to/api/articles"
RECENT_WINDOW = timedelta(hours=48)
TOOL_KEYWORDS = ("built", "create", "tool", "library", "app", "project", "launch", "introducing")


class DevToArticle(BaseModel):
    id: int
    title: str
    description: str = ""
    url: str
    published_timestamp: datetime
    tag_list: list[str] = Field(default_factory=list)
    social_image: Optional[str] = None
    public_reactions_count: int = 0

    @field_validator("tag_list", mode="before")
    @classmethod
    def split_tag_string(cls, value):
        # The single-article endpoint returns tags as "a, b, c"
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value


def is_recent(article: DevToArticle, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return article.published_timestamp > now - RECENT_WINDOW


def is_likely_tool(article: DevToArticle) -> bool:
    text = f"{article.title} {article.description}".lower()
    return any(keyword in text for keyword in TOOL_KEYWORDS)


class DevToScraper(BaseScraper):
    name = "Dev.to"
    slug = "devto"

    async def scrape(self, client: httpx.AsyncClient, results: ScrapeResults) -> None:
        params = {"tag": "ai", "state": "fresh", "per_page": 30}
        articles: list[DevToArticle] = await retry_with_backoff(
            lambda: self.fetch_json(client, DEVTO_ARTICLES_URL, list[DevToArticle], params=params)
        )
        results.total = len(articles)
        await self.process_items(results, articles, self._to_candidate, lambda article: article.title)

    async def _to_candidate(self, article: DevToArticle) -> Optional[Candidate]:
        if not is_recent(article) or not is_likely_tool(article):
            return None

        return Candidate(
            name=article.title,
            url=article.url,
            description=article.description,
            content=f"{article.description}\n\nTags: {', '.join(article.tag_list)}",
            source=self.name,
            source_tags=("dev.to",),
            extra_tags=article.tag_list[:MAX_TOOL_TAGS],
            image_url=article.social_image or None,
            release_date=article.published_timestamp.date(),
            default_category="Code & Development",
        )
