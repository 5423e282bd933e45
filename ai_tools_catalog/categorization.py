"""Fixed category taxonomy and the keyword heuristics built on it.

The tables here are the single source of truth for category names: the
heuristic scorer, the external classifier's allowed values and the seeded
``categories`` rows all read from them.
"""

import re
from types import MappingProxyType
from typing import Iterable
from typing import Mapping
from typing import Optional

OTHER_CATEGORY = "Other"

# Declaration order matters: score ties go to the earlier category.
CATEGORY_KEYWORDS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "Image Generation": (
            "image",
            "photo",
            "picture",
            "art",
            "visual",
            "graphic",
            "illustration",
            "midjourney",
            "dalle",
            "stable diffusion",
            "generate image",
            "create image",
        ),
        "Text & Writing": (
            "text",
            "writing",
            "content",
            "copy",
            "article",
            "blog",
            "essay",
            "gpt",
            "writer",
            "copywriting",
            "generate text",
            "write",
        ),
        "Code & Development": (
            "code",
            "programming",
            "developer",
            "coding",
            "software",
            "github",
            "copilot",
            "debug",
            "development",
            "api",
            "function",
        ),
        "Video & Audio": (
            "video",
            "audio",
            "voice",
            "speech",
            "sound",
            "music",
            "podcast",
            "tts",
            "text-to-speech",
            "voice synthesis",
            "video editing",
        ),
        "Data Analysis": (
            "data",
            "analytics",
            "analysis",
            "visualization",
            "chart",
            "graph",
            "statistics",
            "insights",
            "business intelligence",
            "dashboard",
        ),
        "Chatbots & Assistants": (
            "chatbot",
            "chat",
            "assistant",
            "conversation",
            "dialogue",
            "bot",
            "virtual assistant",
            "ai assistant",
            "conversational",
        ),
        "Productivity": (
            "productivity",
            "workflow",
            "automation",
            "task",
            "organize",
            "management",
            "efficiency",
            "workspace",
            "collaboration",
        ),
        "Design & Creative": (
            "design",
            "creative",
            "ui",
            "ux",
            "interface",
            "prototype",
            "mockup",
            "template",
            "branding",
            "logo",
        ),
        "Research & Education": (
            "research",
            "education",
            "learning",
            "study",
            "academic",
            "search",
            "knowledge",
            "discovery",
            "analysis",
            "paper",
        ),
    }
)

CATEGORIES: tuple[str, ...] = (*CATEGORY_KEYWORDS.keys(), OTHER_CATEGORY)

# (name, description, icon) rows inserted when the catalog is initialised
CATEGORY_SEED: tuple[tuple[str, str, str], ...] = (
    ("Image Generation", "Create and edit images, art and illustrations", "image"),
    ("Text & Writing", "Writing assistants, copywriting and text generation", "pen-tool"),
    ("Code & Development", "Coding assistants, SDKs and developer tooling", "code"),
    ("Video & Audio", "Video editing, speech synthesis and music generation", "video"),
    ("Data Analysis", "Analytics, visualization and business intelligence", "bar-chart"),
    ("Chatbots & Assistants", "Conversational agents and virtual assistants", "message-square"),
    ("Productivity", "Workflow automation and task management", "zap"),
    ("Design & Creative", "UI/UX design, prototyping and branding", "palette"),
    ("Research & Education", "Research, learning and knowledge discovery", "book-open"),
    (OTHER_CATEGORY, "Tools that do not fit another category", "box"),
)

TOOL_KEYWORDS: tuple[str, ...] = (
    "launch",
    "release",
    "tool",
    "library",
    "model",
    "platform",
    "api",
    "sdk",
    "generator",
)

COMMON_TAGS: tuple[str, ...] = (
    "ai",
    "ml",
    "machine learning",
    "deep learning",
    "neural network",
    "automation",
    "api",
    "saas",
    "cloud",
    "web",
    "mobile",
    "free",
    "open source",
    "enterprise",
    "startup",
    "productivity",
    "creative",
    "business",
    "marketing",
    "analytics",
    "visualization",
    "generation",
    "synthesis",
)

MAX_DESCRIPTION_LENGTH = 500
MAX_CLASSIFIER_TAGS = 5
MAX_TOOL_TAGS = 8


def _combined_text(*parts: Optional[str]) -> str:
    return " ".join(part for part in parts if part).lower()


def has_tool_keywords(text: str) -> bool:
    """Cheap check for launch/tool vocabulary."""
    text_lower = text.lower()
    return any(keyword in text_lower for keyword in TOOL_KEYWORDS)


def categorize(title: str, content: Optional[str] = None) -> str:
    """Pick the category whose keywords occur most often in the text."""
    text = _combined_text(title, content)
    best_category = OTHER_CATEGORY
    best_score = 0
    for category, keywords in CATEGORY_KEYWORDS.items():
        score = sum(1 for keyword in keywords if keyword in text)
        # Strict comparison keeps the first declared category on ties
        if score > best_score:
            best_category = category
            best_score = score
    return best_category


def extract_tags(title: str, content: Optional[str] = None, limit: int = MAX_CLASSIFIER_TAGS) -> list[str]:
    """Common tags present in the text, in vocabulary order."""
    text = _combined_text(title, content)
    return [tag for tag in COMMON_TAGS if tag in text][:limit]


def clean_description(description: Optional[str], limit: int = MAX_DESCRIPTION_LENGTH) -> str:
    """Collapse whitespace and truncate with an ellipsis."""
    if not description:
        return ""
    cleaned = re.sub(r"\s+", " ", description).strip()
    if len(cleaned) > limit:
        cleaned = cleaned[: limit - 3] + "..."
    return cleaned


def normalize_category(category: Optional[str]) -> str:
    """Map a free-form category onto the taxonomy, case-insensitively."""
    if not category:
        return OTHER_CATEGORY
    for known in CATEGORIES:
        if known.lower() == category.strip().lower():
            return known
    return OTHER_CATEGORY


def merge_tags(*groups: Optional[Iterable[str]], limit: int = MAX_TOOL_TAGS) -> list[str]:
    """Concatenate tag groups, dropping blanks and case-insensitive repeats."""
    merged: list[str] = []
    seen: set[str] = set()
    for group in groups:
        for tag in group or ():
            cleaned = tag.strip().lower()
            if not cleaned or cleaned in seen:
                continue
            seen.add(cleaned)
            merged.append(cleaned)
    return merged[:limit]
