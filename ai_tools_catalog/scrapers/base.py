"""Shared scraper machinery: HTTP client, response validation and the candidate pipeline.

Every source adapter subclasses :class:`BaseScraper` and implements
``scrape()``, which fetches raw items, applies the source's cheap pre-filter
and hands each surviving item to :meth:`BaseScraper.process_candidate`:

    dedup on raw identity -> classify -> skip non-tools -> dedup a renamed tool -> insert
"""

import logging
from abc import ABC
from abc import abstractmethod
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace
from datetime import date
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Iterable
from typing import Optional
from typing import TypeVar

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError

from .. import config
from ..catalog import CatalogStore
from ..categorization import categorize
from ..categorization import clean_description
from ..categorization import extract_tags
from ..categorization import merge_tags
from ..classifier import Classifier
from ..dedupe import DeduplicationEngine
from ..models import NewTool
from ..url_utils import normalize_url

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SourceFetchError(Exception):
    """A source API or feed returned an unusable response."""

    def __init__(self, message: str, status_code: Optional[int] = None, headers: Optional[httpx.Headers] = None):
        super().__init__(message)
        self.status_code = status_code
        self.headers = headers


@dataclass
class ScrapeResults:
    total: int = 0
    added: int = 0
    duplicates: int = 0
    errors: int = 0
    errors_detail: list[str] = field(default_factory=list)

    def record_error(self, label: str, exc: BaseException) -> None:
        self.errors += 1
        self.errors_detail.append(f"{label}: {exc}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Candidate:
    """A pre-filtered source item on its way into the catalog."""

    name: str
    url: str
    source: str
    description: Optional[str] = None
    content: Optional[str] = None  # text given to the classifier, defaults to the description
    source_tags: tuple[str, ...] = ()
    extra_tags: list[str] = field(default_factory=list)
    image_url: Optional[str] = None
    release_date: Optional[date] = None
    default_category: Optional[str] = None
    trusted: bool = False  # kept even when the classifier says it is not a tool

    @property
    def classifier_text(self) -> str:
        return self.content if self.content is not None else (self.description or "")


class BaseScraper(ABC):
    """Abstract source adapter.

    ``name`` is the display name stored as the tool ``source``; ``slug`` is
    the identifier used by the CLI and the HTTP interface.
    """

    name: str = "base"
    slug: str = "base"

    def __init__(
        self,
        store: CatalogStore,
        classifier: Classifier,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.store = store
        self.classifier = classifier
        self.dedupe = DeduplicationEngine(store)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport,
            timeout=config.HTTP_TIMEOUT,
            follow_redirects=True,
            headers={"User-Agent": config.USER_AGENT},
        )

    async def run(self) -> ScrapeResults:
        """Run one scrape against the live source. Source-level failures raise."""
        results = ScrapeResults()
        logger.info(f"Starting {self.name} scraper...")
        async with self._client() as client:
            await self.scrape(client, results)
        logger.info(
            f"{self.name}: {results.total} items, {results.added} added, "
            f"{results.duplicates} duplicates, {results.errors} errors"
        )
        return results

    @abstractmethod
    async def scrape(self, client: httpx.AsyncClient, results: ScrapeResults) -> None:
        """Fetch, pre-filter and process the source's items into ``results``."""

    async def fetch_json(
        self,
        client: httpx.AsyncClient,
        url: str,
        shape: Any,
        *,
        method: str = "GET",
        **kwargs: Any,
    ) -> Any:
        """Request ``url`` and validate the JSON body against ``shape``."""
        response = await client.request(method, url, **kwargs)
        if not response.is_success:
            raise SourceFetchError(
                f"{self.name} API error: {response.status_code}",
                status_code=response.status_code,
                headers=response.headers,
            )
        try:
            return TypeAdapter(shape).validate_json(response.content)
        except ValidationError as exc:
            raise SourceFetchError(f"Unexpected {self.name} response from {url}: {exc.error_count()} errors") from exc

    async def fetch_text(self, client: httpx.AsyncClient, url: str, **kwargs: Any) -> str:
        response = await client.get(url, **kwargs)
        if not response.is_success:
            raise SourceFetchError(
                f"{self.name} fetch error: {response.status_code}",
                status_code=response.status_code,
                headers=response.headers,
            )
        return response.text

    async def process_items(
        self,
        results: ScrapeResults,
        items: Iterable[T],
        build: Callable[[T], Awaitable[Optional[Candidate]]],
        label: Callable[[T], str],
    ) -> None:
        """Build and process each item; per-item failures are recorded and skipped."""
        for item in items:
            try:
                candidate = await build(item)
                if candidate is None:
                    continue
                await self.process_candidate(results, candidate)
            except Exception as exc:
                logger.warning(f"{self.name}: failed to process {label(item)}: {exc}")
                results.record_error(label(item), exc)

    async def process_candidate(self, results: ScrapeResults, candidate: Candidate) -> bool:
        """Dedup, classify and insert one candidate. Returns True when added."""
        url = normalize_url(candidate.url)

        match = self.dedupe.find_match(candidate)
        if match:
            logger.debug(f"Skipping duplicate {candidate.name} ({match.reason} match with {match.tool_name})")
            results.duplicates += 1
            return False

        text = candidate.classifier_text
        classification = await self.classifier.classify(candidate.name, text)

        if not classification.is_tool and not candidate.trusted:
            logger.debug(f"Not a tool, skipping: {candidate.name}")
            return False

        # Trusted sources keep their own name and description
        if candidate.trusted:
            name = candidate.name
            description = clean_description(candidate.description)
        else:
            name = classification.name or candidate.name
            description = classification.description or clean_description(candidate.description)

        # A classifier rename can collide with a tool the raw title did not match
        if name.lower() != candidate.name.lower():
            match = self.dedupe.find_match(replace(candidate, name=name, url=url))
            if match:
                logger.debug(f"Skipping duplicate {name} ({match.reason} match with {match.tool_name})")
                results.duplicates += 1
                return False

        if classification.is_tool:
            category = classification.category or candidate.default_category or categorize(candidate.name, text)
            classifier_tags = classification.tags
        else:
            category = candidate.default_category or categorize(candidate.name, text)
            classifier_tags = extract_tags(candidate.name, text)

        tool = NewTool(
            name=name,
            description=description or None,
            url=url,
            category=category,
            tags=merge_tags(classifier_tags, candidate.source_tags, candidate.extra_tags),
            image_url=candidate.image_url,
            release_date=candidate.release_date,
            source=candidate.source,
        )
        inserted = self.store.insert_tool(tool)
        if not inserted.ok:
            results.errors += 1
            results.errors_detail.append(f"{name}: {inserted.error}")
            return False

        results.added += 1
        return True
