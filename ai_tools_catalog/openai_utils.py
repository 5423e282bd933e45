"""Reading structured output back from OpenAI Responses API calls."""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\n?|\n?```$")


def _output_text(response: Any) -> str:
    # ``output_text`` is the SDK convenience property; older payloads only carry message items
    text = getattr(response, "output_text", "") or ""
    if text:
        return text

    pieces = []
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) in ("output_text", "text") and getattr(part, "text", ""):
                pieces.append(part.text)
    return "".join(pieces)


def read_json_output(response: Any, context: str) -> dict[str, Any]:
    """Return the JSON object a model produced.

    Markdown fences around the object are tolerated. Raises ValueError for
    empty output, invalid JSON or a non-object payload.
    """
    raw = _output_text(response).strip()
    if not raw:
        raise ValueError(f"empty {context} output")

    try:
        parsed = json.loads(_FENCE_RE.sub("", raw).strip())
    except json.JSONDecodeError as exc:
        logger.warning(f"Malformed {context} JSON: {exc}")
        raise ValueError(f"malformed {context} JSON") from exc

    if not isinstance(parsed, dict):
        raise ValueError(f"expected a JSON object for {context}, got {type(parsed).__name__}")
    return parsed
