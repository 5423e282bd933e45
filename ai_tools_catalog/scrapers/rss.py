"""Launch coverage from tech news RSS feeds.

Feed items only describe a tool; the tool's own URL is recovered from the
article page as its first outbound link that does not point back at a
publisher, social network or video site.
"""

import logging
import re
from datetime import date
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import NamedTuple
from typing import Optional

import feedparser
import httpx
from bs4 import BeautifulSoup

from ..retry import retry_with_backoff
from ..url_utils import first_external_url
from .base import BaseScraper
from .base import Candidate
from .base import ScrapeResults
from .base import SourceFetchError

logger = logging.getLogger(__name__)


class Feed(NamedTuple):
    name: str
    url: str


FEEDS = (
    Feed("TechCrunch AI", "https://techcrunch.com/category/artificial-intelligence/feed/"),
    Feed("The Verge AI", "https://www.theverge.com/ai-artificial-intelligence/rss/index.xml"),
    Feed("VentureBeat AI", "https://venturebeat.com/category/ai/feed/"),
)

LAUNCH_KEYWORDS = (
    "launch",
    "releases",
    "introduces",
    "unveils",
    "announces",
    "debuts",
    "rolls out",
    "new tool",
    "new ai",
    "startup",
)
EXCLUDE_KEYWORDS = ("opinion", "analysis", "interview", "podcast", "video")

EXCLUDED_LINK_HOSTS = (
    "techcrunch.com",
    "theverge.com",
    "venturebeat.com",
    "twitter.com",
    "x.com",
    "facebook.com",
    "linkedin.com",
    "youtube.com",
    "youtu.be",
)


class FeedItem(NamedTuple):
    title: str
    description: str
    link: str
    published: Optional[date]


def _strip_html(value: str) -> str:
    return BeautifulSoup(value, "html.parser").get_text(" ", strip=True)


def _published_date(entry: Any) -> Optional[date]:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return date(parsed.tm_year, parsed.tm_mon, parsed.tm_mday)


def parse_feed(xml: str) -> list[FeedItem]:
    """Items with both a title and a link, HTML stripped from the text fields."""
    parsed = feedparser.parse(xml)
    items: list[FeedItem] = []
    for entry in parsed.entries:
        title = _strip_html(entry.get("title") or "")
        link = (entry.get("link") or "").strip()
        if not title or not link:
            continue
        items.append(
            FeedItem(
                title=title,
                description=_strip_html(entry.get("summary") or ""),
                link=link,
                published=_published_date(entry),
            )
        )
    return items


def is_tool_launch(item: FeedItem) -> bool:
    text = f"{item.title} {item.description}".lower()
    has_launch = any(keyword in text for keyword in LAUNCH_KEYWORDS)
    has_exclude = any(keyword in text for keyword in EXCLUDE_KEYWORDS)
    return has_launch and not has_exclude


def extract_tool_name(title: str) -> str:
    """``Acme launches Widget, an AI helper`` -> ``Widget``."""
    name = re.sub(r"^.*?(launches|releases|introduces|unveils|announces)\s+", "", title, flags=re.IGNORECASE)
    name = re.sub(r",.*$", "", name).strip()
    name = re.split(r"[-–—]", name)[0].strip()
    return name or title.strip()


def extract_external_link(html: str) -> Optional[str]:
    """First absolute outbound link in an article page."""
    soup = BeautifulSoup(html, "html.parser")
    hrefs = [anchor["href"].strip() for anchor in soup.find_all("a", href=True)]
    return first_external_url([href for href in hrefs if href.startswith(("http://", "https://"))], EXCLUDED_LINK_HOSTS)


class RSSScraper(BaseScraper):
    name = "RSS"
    slug = "rss"

    async def scrape(self, client: httpx.AsyncClient, results: ScrapeResults) -> None:
        for feed in FEEDS:
            try:
                xml = await retry_with_backoff(lambda: self.fetch_text(client, feed.url))
            except Exception as exc:
                logger.warning(f"Failed to fetch feed {feed.name}: {exc}")
                results.record_error(f"Feed {feed.name}", exc)
                continue

            items = parse_feed(xml)
            results.total += len(items)

            async def build(item: FeedItem, feed: Feed = feed) -> Optional[Candidate]:
                return await self._to_candidate(client, feed, item)

            await self.process_items(results, items, build, lambda item: item.title)

    async def _find_tool_url(self, client: httpx.AsyncClient, article_url: str) -> Optional[str]:
        try:
            html = await self.fetch_text(client, article_url)
        except (httpx.HTTPError, SourceFetchError) as exc:
            logger.debug(f"Could not fetch article {article_url}: {exc}")
            return None
        return extract_external_link(html)

    async def _to_candidate(self, client: httpx.AsyncClient, feed: Feed, item: FeedItem) -> Optional[Candidate]:
        if not is_tool_launch(item):
            return None

        tool_url = await self._find_tool_url(client, item.link)
        if not tool_url:
            return None

        return Candidate(
            name=extract_tool_name(item.title),
            url=tool_url,
            description=item.description,
            content=f"{item.title}\n\n{item.description}",
            source=feed.name,
            release_date=item.published or datetime.now(timezone.utc).date(),
            trusted=True,
        )
