"""Newest AI launches from the ProductHunt GraphQL API.

Requires ``PRODUCTHUNT_API_TOKEN``; running without it fails the scraper.
"""

import logging
from datetime import datetime
from typing import Optional

import httpx
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .. import config
from ..retry import retry_with_backoff
from .base import BaseScraper
from .base import Candidate
from .base import ScrapeResults

logger = logging.getLogger(__name__)

PRODUCTHUNT_GRAPHQL_URL = "https://api.producthunt.com/v2/api/graphql"

POSTS_QUERY = """
query {
  posts(first: 20, order: NEWEST) {
    edges {
      node {
        id
        name
        tagline
        description
        url
        thumbnail { url }
        createdAt
        topics(first: 5) {
          edges { node { name } }
        }
      }
    }
  }
}
"""

AI_KEYWORDS = (
    "ai",
    "artificial intelligence",
    "machine learning",
    "ml",
    "deep learning",
    "neural",
    "gpt",
    "llm",
    "chatbot",
    "automation",
    "intelligent",
    "smart",
    "cognitive",
)


class Thumbnail(BaseModel):
    url: Optional[str] = None


class TopicNode(BaseModel):
    name: str


class TopicEdge(BaseModel):
    node: TopicNode


class TopicConnection(BaseModel):
    edges: list[TopicEdge] = Field(default_factory=list)


class ProductHuntPost(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    tagline: str = ""
    description: Optional[str] = None
    url: str
    thumbnail: Optional[Thumbnail] = None
    created_at: datetime = Field(alias="createdAt")
    topics: Optional[TopicConnection] = None

    @property
    def topic_names(self) -> list[str]:
        if not self.topics:
            return []
        return [edge.node.name.lower() for edge in self.topics.edges if edge.node.name]


class PostEdge(BaseModel):
    node: ProductHuntPost


class PostConnection(BaseModel):
    edges: list[PostEdge] = Field(default_factory=list)


class PostsData(BaseModel):
    posts: PostConnection


class PostsResponse(BaseModel):
    data: PostsData


def is_ai_related(post: ProductHuntPost) -> bool:
    text = f"{post.name} {post.tagline} {post.description or ''}".lower()
    return any(keyword in text for keyword in AI_KEYWORDS)


class ProductHuntScraper(BaseScraper):
    name = "ProductHunt"
    slug = "producthunt"

    async def scrape(self, client: httpx.AsyncClient, results: ScrapeResults) -> None:
        token = config.producthunt_token()
        if not token:
            raise ValueError("ProductHunt API token not configured (PRODUCTHUNT_API_TOKEN)")

        headers = {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        response: PostsResponse = await retry_with_backoff(
            lambda: self.fetch_json(
                client,
                PRODUCTHUNT_GRAPHQL_URL,
                PostsResponse,
                method="POST",
                headers=headers,
                json={"query": POSTS_QUERY},
            )
        )
        posts = [edge.node for edge in response.data.posts.edges]
        results.total = len(posts)
        await self.process_items(results, posts, self._to_candidate, lambda post: post.name)

    async def _to_candidate(self, post: ProductHuntPost) -> Optional[Candidate]:
        if not is_ai_related(post):
            return None

        return Candidate(
            name=post.name,
            url=post.url,
            description=post.description or post.tagline,
            content=f"{post.tagline}\n\n{post.description or ''}",
            source=self.name,
            extra_tags=post.topic_names,
            image_url=post.thumbnail.url if post.thumbnail else None,
            release_date=post.created_at.date(),
            trusted=True,
        )
