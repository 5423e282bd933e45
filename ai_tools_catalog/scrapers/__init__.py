"""Source scrapers and the registry used by the orchestrator, CLI and web app."""

from typing import Optional

import httpx

from ..catalog import CatalogStore
from ..classifier import Classifier
from .base import BaseScraper
from .base import Candidate
from .base import ScrapeResults
from .base import SourceFetchError
from .devto import DevToScraper
from .github import GitHubScraper
from .hackernews import HackerNewsScraper
from .huggingface import HuggingFaceScraper
from .producthunt import ProductHuntScraper
from .reddit import RedditScraper
from .rss import RSSScraper
from .youtube import YouTubeScraper

SCRAPER_CLASSES: tuple[type[BaseScraper], ...] = (
    GitHubScraper,
    HackerNewsScraper,
    RedditScraper,
    RSSScraper,
    DevToScraper,
    HuggingFaceScraper,
    ProductHuntScraper,
    YouTubeScraper,
)

SCRAPER_SLUGS: tuple[str, ...] = tuple(cls.slug for cls in SCRAPER_CLASSES)


def get_all_scrapers(
    store: CatalogStore,
    classifier: Classifier,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[BaseScraper]:
    return [cls(store, classifier, transport=transport) for cls in SCRAPER_CLASSES]


def get_scraper(
    slug: str,
    store: CatalogStore,
    classifier: Classifier,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseScraper:
    """Instantiate one scraper by slug. Raises KeyError for unknown slugs."""
    for cls in SCRAPER_CLASSES:
        if cls.slug == slug.lower():
            return cls(store, classifier, transport=transport)
    raise KeyError(slug)


__all__ = [
    "BaseScraper",
    "Candidate",
    "SCRAPER_CLASSES",
    "SCRAPER_SLUGS",
    "ScrapeResults",
    "SourceFetchError",
    "get_all_scrapers",
    "get_scraper",
]
