"""Decide whether a scraped item describes a real AI tool and extract its fields.

Two strategies implement the same ``classify(title, content)`` contract:

1. HeuristicClassifier - keyword matching against the fixed taxonomy, always available
2. OpenAIClassifier - structured-output call to the OpenAI Responses API

``Classifier`` composes them: the external strategy is tried when configured
and any failure falls back to the heuristic result, so callers never see
whether the model was reached.
"""

import hashlib
import logging
from typing import Any
from typing import Literal
from typing import Optional
from typing import Protocol

from diskcache import Cache
from openai import APIError
from openai import AsyncOpenAI
from openai import RateLimitError
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError

from . import config
from .categorization import CATEGORIES
from .categorization import MAX_CLASSIFIER_TAGS
from .categorization import categorize
from .categorization import clean_description
from .categorization import extract_tags
from .categorization import has_tool_keywords
from .categorization import normalize_category
from .models import ClassificationResult
from .openai_utils import read_json_output

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 4000
MAX_NAME_WORDS = 6
CACHE_TTL_SECONDS = 60 * 60 * 24

CategoryType = Literal[
    "Image Generation",
    "Text & Writing",
    "Code & Development",
    "Video & Audio",
    "Data Analysis",
    "Chatbots & Assistants",
    "Productivity",
    "Design & Creative",
    "Research & Education",
    "Other",
]


class ExtractedTool(BaseModel):
    """Structured output contract for the external classifier."""

    model_config = ConfigDict(extra="forbid")

    is_tool: bool = Field(description="True only if the text describes a specific software tool, library or AI model")
    name: str = Field(description="Canonical product name, at most 6 words, no tagline")
    description: str = Field(description="Objective 2-3 sentence summary without promotional language")
    category: CategoryType = Field(description="Single best category from the fixed list")
    tags: list[str] = Field(description="3-5 short lowercase tags")


CLASSIFICATION_SYSTEM_PROMPT = f"""\
You are an AI tools extractor. You receive the title and text of a post, article, video or repository.

1. Decide whether it describes one specific software tool, library, API, app or AI model.
   News commentary, opinion pieces, tutorials and questions are not tools.
2. If it is a tool, extract:
   - name: the concise canonical product name (at most {MAX_NAME_WORDS} words). Strip taglines,
     version boilerplate and phrases like "Show HN" or "Introducing".
   - description: an objective 2-3 sentence summary of what it does. No marketing language.
   - category: exactly one of: {", ".join(CATEGORIES)}. Use "Other" if none fits.
   - tags: 3-5 short lowercase tags.
3. If it is not a tool, set is_tool to false and return empty strings, "Other" and an empty tag list.

Return strictly valid JSON matching the schema."""


class ClassifierStrategy(Protocol):
    """Anything that can turn a title/content pair into a ClassificationResult."""

    async def classify(self, title: str, content: str) -> ClassificationResult: ...


class HeuristicClassifier:
    """Keyword-based classification with no external calls."""

    async def classify(self, title: str, content: str) -> ClassificationResult:
        return self.classify_sync(title, content)

    def classify_sync(self, title: str, content: str) -> ClassificationResult:
        if not has_tool_keywords(f"{title} {content}"):
            return ClassificationResult(is_tool=False)

        return ClassificationResult(
            is_tool=True,
            name=title.strip(),
            description=clean_description(content or title),
            category=categorize(title, content),
            tags=extract_tags(title, content),
        )


def _get_cache_key(model: str, title: str, content: str) -> str:
    return hashlib.md5(f"{model}:{title}:{content}".encode()).hexdigest()


class OpenAIClassifier:
    """Classification through the OpenAI Responses API with a strict JSON schema."""

    def __init__(self, client: Any, model: Optional[str] = None, cache: Optional[Cache] = None) -> None:
        self.client = client
        self.model = model or config.classifier_model()
        self.cache = cache

    async def classify(self, title: str, content: str) -> ClassificationResult:
        cache_key = _get_cache_key(self.model, title, content)
        if self.cache is not None and cache_key in self.cache:
            logger.debug(f"Cache hit for classification: {title[:60]}")
            return ClassificationResult.model_validate(self.cache[cache_key])

        prompt = f"Title: {title}\n\nContent:\n{content[:MAX_INPUT_CHARS]}"
        response = await self.client.responses.create(
            model=self.model,
            instructions=CLASSIFICATION_SYSTEM_PROMPT,
            input=[{"role": "user", "content": [{"type": "input_text", "text": prompt}]}],
            temperature=0.3,
            text={
                "format": {
                    "type": "json_schema",
                    "name": "tool_extraction",
                    "strict": True,
                    "schema": ExtractedTool.model_json_schema(),
                }
            },
        )

        payload = read_json_output(response, context="tool classification")
        extracted = ExtractedTool.model_validate(payload)
        result = self._to_result(extracted)

        if self.cache is not None:
            self.cache.set(cache_key, result.model_dump(), expire=CACHE_TTL_SECONDS)
        return result

    @staticmethod
    def _to_result(extracted: ExtractedTool) -> ClassificationResult:
        if not extracted.is_tool:
            return ClassificationResult(is_tool=False)

        name = " ".join(extracted.name.split()[:MAX_NAME_WORDS]) or None
        tags = [tag.strip().lower() for tag in extracted.tags if tag.strip()][:MAX_CLASSIFIER_TAGS]
        return ClassificationResult(
            is_tool=True,
            name=name,
            description=clean_description(extracted.description) or None,
            category=normalize_category(extracted.category),
            tags=tags,
        )


class Classifier:
    """External strategy first (when configured), heuristics on any failure."""

    def __init__(
        self,
        external: Optional[ClassifierStrategy] = None,
        fallback: Optional[HeuristicClassifier] = None,
    ) -> None:
        self.external = external
        self.fallback = fallback or HeuristicClassifier()

    @property
    def uses_external(self) -> bool:
        return self.external is not None

    async def classify(self, title: str, content: str) -> ClassificationResult:
        if self.external is not None:
            try:
                return await self.external.classify(title, content)
            except RateLimitError as exc:
                logger.warning(f"Rate limit hit for classifier: {exc}, falling back to heuristics")
            except APIError as exc:
                logger.warning(f"API error in classifier: {exc}, falling back to heuristics")
            except (ValidationError, ValueError) as exc:
                logger.warning(f"Unusable classifier output for {title[:60]!r}: {exc}, falling back to heuristics")
            except Exception as exc:
                logger.error(f"Unexpected error in classifier: {exc}, falling back to heuristics")

        return await self.fallback.classify(title, content)


def build_classifier() -> Classifier:
    """Build the classifier from configuration.

    The external strategy is enabled only when an OpenAI key is configured.
    In DEV_MODE its results are cached on disk for 24 hours.
    """
    api_key = config.openai_api_key()
    if not api_key:
        logger.info("OPENAI_API_KEY not set, using heuristic classification only")
        return Classifier()

    cache = Cache("dev_cache", size_limit=int(1e9)) if config.dev_mode() else None
    external = OpenAIClassifier(AsyncOpenAI(api_key=api_key, timeout=config.HTTP_TIMEOUT), cache=cache)
    logger.info(f"Using OpenAI classifier ({external.model}) with heuristic fallback")
    return Classifier(external=external)
