"""Catalog-level duplicate detection for scraped candidates."""

import logging
from typing import NamedTuple
from typing import Optional
from typing import Protocol

from .catalog import CatalogStore
from .url_utils import normalize_url
from .url_utils import same_site
from .url_utils import similarity

logger = logging.getLogger(__name__)

NAME_SIMILARITY_THRESHOLD = 0.85


class CandidateIdentity(Protocol):
    name: str
    url: str


class DuplicateMatch(NamedTuple):
    reason: str  # url | name | similar_name | domain
    tool_id: int
    tool_name: str


class DeduplicationEngine:
    """Check candidates against the catalog, first match wins.

    1. exact normalized URL
    2. case-insensitive exact name
    3. full scan: name similarity above the threshold, or the same site
    """

    def __init__(self, store: CatalogStore) -> None:
        self.store = store

    def find_match(self, candidate: CandidateIdentity) -> Optional[DuplicateMatch]:
        url = normalize_url(candidate.url)

        existing = self.store.find_tool_by_url(url)
        if existing:
            return DuplicateMatch("url", existing.id, existing.name)

        existing = self.store.find_tool_by_name(candidate.name)
        if existing:
            return DuplicateMatch("name", existing.id, existing.name)

        name = candidate.name.lower()
        for tool_id, tool_name, tool_url in self.store.list_tool_identities():
            if similarity(name, tool_name.lower()) > NAME_SIMILARITY_THRESHOLD:
                return DuplicateMatch("similar_name", tool_id, tool_name)
            if same_site(url, tool_url):
                return DuplicateMatch("domain", tool_id, tool_name)

        return None

    def is_duplicate(self, candidate: CandidateIdentity) -> bool:
        match = self.find_match(candidate)
        if match:
            logger.debug(f"Duplicate ({match.reason}): {candidate.name} matches #{match.tool_id} {match.tool_name}")
            return True
        return False
