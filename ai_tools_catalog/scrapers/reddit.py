"""Tool announcements from AI subreddits.

Uses OAuth client credentials when ``REDDIT_CLIENT_ID``/``REDDIT_CLIENT_SECRET``
are configured and the public JSON listing otherwise. A failing subreddit is
recorded as an error entry and, when rate limited, the scraper waits out the
``Retry-After`` window before moving on to the next one.
"""

import logging
import re
from datetime import datetime
from datetime import timezone
from typing import Optional

import httpx
from pydantic import BaseModel
from pydantic import Field

from .. import config
from ..retry import handle_rate_limit
from ..retry import retry_with_backoff
from ..url_utils import find_urls
from ..url_utils import first_external_url
from .base import BaseScraper
from .base import Candidate
from .base import ScrapeResults

logger = logging.getLogger(__name__)

SUBREDDITS = ("artificial", "MachineLearning", "ArtificialIntelligence")
POSTS_PER_SUBREDDIT = 25

REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
REDDIT_OAUTH_BASE = "https://oauth.reddit.com"
REDDIT_PUBLIC_BASE = "https://www.reddit.com"
REDDIT_HOSTS = ("reddit.com", "redd.it")

ANNOUNCEMENT_KEYWORDS = (
    "launch",
    "released",
    "introducing",
    "new tool",
    "built",
    "created",
    "made",
    "check out",
    "announcement",
    "available",
)
DISCUSSION_KEYWORDS = ("question", "help", "discussion", "opinion", "what do you think")


class RedditPost(BaseModel):
    title: str
    selftext: str = ""
    url: Optional[str] = None
    created_utc: float
    subreddit: str
    permalink: Optional[str] = None


class RedditChild(BaseModel):
    data: RedditPost


class RedditListingData(BaseModel):
    children: list[RedditChild] = Field(default_factory=list)


class RedditListing(BaseModel):
    data: RedditListingData


class RedditToken(BaseModel):
    access_token: str


def extract_tool_url(post: RedditPost) -> Optional[str]:
    """The post's link when external, otherwise the first external URL in its body."""
    candidates = [post.url] if post.url else []
    candidates.extend(find_urls(post.selftext))
    return first_external_url(candidates, REDDIT_HOSTS)


def is_tool_announcement(post: RedditPost) -> bool:
    title = post.title.lower()
    text = post.selftext.lower()
    has_announcement = any(keyword in title or keyword in text for keyword in ANNOUNCEMENT_KEYWORDS)
    is_discussion = any(keyword in title for keyword in DISCUSSION_KEYWORDS)
    return has_announcement and not is_discussion


def extract_tool_name(title: str) -> str:
    """``[P] Introducing Foo - a bar`` -> ``Foo``."""
    name = re.sub(r"^\[.*?\]\s*", "", title)
    name = re.sub(r"^(Introducing|Launched|Released|New|Check out)\s+", "", name, flags=re.IGNORECASE).strip()
    name = re.split(r"[-–—:]", name)[0].strip()
    return name or title.strip()


class RedditScraper(BaseScraper):
    name = "Reddit"
    slug = "reddit"

    async def scrape(self, client: httpx.AsyncClient, results: ScrapeResults) -> None:
        headers = {"User-Agent": config.USER_AGENT}
        credentials = config.reddit_credentials()
        base_url = REDDIT_PUBLIC_BASE
        if credentials:
            token = await self._get_access_token(client, *credentials)
            headers["Authorization"] = f"Bearer {token}"
            base_url = REDDIT_OAUTH_BASE

        for subreddit in SUBREDDITS:
            try:
                posts = await retry_with_backoff(lambda: self._fetch_posts(client, base_url, subreddit, headers))
            except Exception as exc:
                logger.warning(f"Failed to fetch r/{subreddit}: {exc}")
                results.record_error(f"Subreddit {subreddit}", exc)
                await handle_rate_limit(exc)
                continue

            results.total += len(posts)
            await self.process_items(results, posts, self._to_candidate, lambda post: post.title)

    async def _get_access_token(self, client: httpx.AsyncClient, client_id: str, client_secret: str) -> str:
        token: RedditToken = await self.fetch_json(
            client,
            REDDIT_TOKEN_URL,
            RedditToken,
            method="POST",
            auth=(client_id, client_secret),
            data={"grant_type": "client_credentials"},
        )
        return token.access_token

    async def _fetch_posts(
        self, client: httpx.AsyncClient, base_url: str, subreddit: str, headers: dict[str, str]
    ) -> list[RedditPost]:
        suffix = "new" if base_url == REDDIT_OAUTH_BASE else "new.json"
        listing: RedditListing = await self.fetch_json(
            client,
            f"{base_url}/r/{subreddit}/{suffix}",
            RedditListing,
            params={"limit": POSTS_PER_SUBREDDIT},
            headers=headers,
        )
        return [child.data for child in listing.data.children]

    async def _to_candidate(self, post: RedditPost) -> Optional[Candidate]:
        tool_url = extract_tool_url(post)
        if not tool_url or not is_tool_announcement(post):
            return None

        return Candidate(
            name=extract_tool_name(post.title),
            url=tool_url,
            description=post.selftext or post.title,
            content=f"{post.title}\n\n{post.selftext}",
            source=f"Reddit r/{post.subreddit}",
            source_tags=(post.subreddit.lower(),),
            release_date=datetime.fromtimestamp(post.created_utc, tz=timezone.utc).date(),
            trusted=True,
        )
