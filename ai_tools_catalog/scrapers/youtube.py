"""AI tool review videos from the YouTube Data API.

Requires ``YOUTUBE_API_KEY``; running without it fails the scraper. The
tool itself is taken to be the first link in the video description that
does not lead to YouTube or a social network.
"""

import logging
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Optional

import httpx
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .. import config
from ..url_utils import find_urls
from ..url_utils import first_external_url
from .base import BaseScraper
from .base import Candidate
from .base import ScrapeResults

logger = logging.getLogger(__name__)

YOUTUBE_API_BASE = "https://www.googleapis.com/youtube/v3"
SEARCH_QUERY = "new ai tool review"
SEARCH_WINDOW = timedelta(hours=24)
MAX_RESULTS = 50  # API maximum per page
EXCLUDED_LINK_HOSTS = ("youtube.com", "youtu.be", "twitter.com", "x.com", "facebook.com", "instagram.com")
MAX_FALLBACK_DESCRIPTION = 200


class VideoSnippet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    description: str = ""
    published_at: datetime = Field(alias="publishedAt")


class SearchResultId(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_id: Optional[str] = Field(default=None, alias="videoId")


class SearchResult(BaseModel):
    id: SearchResultId


class SearchResponse(BaseModel):
    items: list[SearchResult] = Field(default_factory=list)


class VideoItem(BaseModel):
    id: str
    snippet: VideoSnippet


class VideosResponse(BaseModel):
    items: list[VideoItem] = Field(default_factory=list)


def extract_tool_link(description: str) -> Optional[str]:
    return first_external_url(find_urls(description), EXCLUDED_LINK_HOSTS)


class YouTubeScraper(BaseScraper):
    name = "YouTube"
    slug = "youtube"

    async def scrape(self, client: httpx.AsyncClient, results: ScrapeResults) -> None:
        api_key = config.youtube_api_key()
        if not api_key:
            raise ValueError("YOUTUBE_API_KEY not configured")

        published_after = (datetime.now(timezone.utc) - SEARCH_WINDOW).strftime("%Y-%m-%dT%H:%M:%SZ")
        params = {
            "part": "snippet",
            "q": SEARCH_QUERY,
            "type": "video",
            "order": "date",
            "publishedAfter": published_after,
            "maxResults": MAX_RESULTS,
            "key": api_key,
        }
        search: SearchResponse = await self.fetch_json(client, f"{YOUTUBE_API_BASE}/search", SearchResponse, params=params)
        video_ids = [item.id.video_id for item in search.items if item.id.video_id]
        results.total = len(video_ids)

        async def build(video_id: str) -> Optional[Candidate]:
            videos: VideosResponse = await self.fetch_json(
                client,
                f"{YOUTUBE_API_BASE}/videos",
                VideosResponse,
                params={"part": "snippet", "id": video_id, "key": api_key},
            )
            if not videos.items:
                return None
            return self._to_candidate(videos.items[0].snippet)

        await self.process_items(results, video_ids, build, lambda video_id: f"Video {video_id}")

    def _to_candidate(self, snippet: VideoSnippet) -> Optional[Candidate]:
        tool_url = extract_tool_link(snippet.description)
        if not tool_url:
            return None

        return Candidate(
            name=snippet.title,
            url=tool_url,
            description=snippet.description[:MAX_FALLBACK_DESCRIPTION],
            content=snippet.description,
            source=self.name,
            source_tags=("youtube", "review"),
            release_date=snippet.published_at.date(),
            default_category="Video & Audio",
        )
