"""Actively maintained Hugging Face Spaces, most liked first."""

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
from .base import BaseScraper
from .base import Candidate
from .base import ScrapeResults

logger = logging.getLogger(__name__)

HF_SPACES_URL = "https://huggingface.co/api/spaces"
ACTIVE_WINDOW = timedelta(days=7)
TRUSTED_LIKES = 50  # popular spaces are kept even when not classified as tools


class SpaceCardData(BaseModel):
    title: Optional[str] = None
    emoji: Optional[str] = None
    short_description: Optional[str] = None


class HFSpace(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    likes: int = 0
    last_modified: datetime = Field(alias="lastModified")
    card_data: Optional[SpaceCardData] = Field(default=None, alias="cardData")

    @property
    def owner(self) -> str:
        return self.id.split("/")[0]

    @property
    def space_name(self) -> str:
        parts = self.id.split("/")
        return parts[1] if len(parts) > 1 else parts[0]


def _get_headers() -> dict[str, str]:
    headers: dict[str, str] = {}
    token = config.huggingface_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class HuggingFaceScraper(BaseScraper):
    name = "Hugging Face"
    slug = "huggingface"

    async def scrape(self, client: httpx.AsyncClient, results: ScrapeResults) -> None:
        params = {"sort": "likes", "direction": -1, "limit": 25, "full": "true"}
        spaces: list[HFSpace] = await self.fetch_json(
            client, HF_SPACES_URL, list[HFSpace], params=params, headers=_get_headers()
        )
        results.total = len(spaces)
        await self.process_items(results, spaces, self._to_candidate, lambda space: f"HF Space {space.id}")

    async def _to_candidate(self, space: HFSpace) -> Optional[Candidate]:
        if space.last_modified < datetime.now(timezone.utc) - ACTIVE_WINDOW:
            return None

        card = space.card_data or SpaceCardData()
        return Candidate(
            name=card.title or space.space_name,
            url=f"https://huggingface.co/spaces/{space.id}",
            description=card.short_description or f"AI Space by {space.owner}",
            source=self.name,
            source_tags=("hugging-face", "demo"),
            release_date=space.last_modified.date(),
            trusted=space.likes >= TRUSTED_LIKES,
        )
