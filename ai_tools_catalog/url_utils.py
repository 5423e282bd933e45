"""URL canonicalisation and name/domain similarity helpers used for deduplication."""

import re
from typing import Optional
from urllib.parse import urlparse
from urllib.parse import urlsplit
from urllib.parse import urlunsplit

from rapidfuzz.distance import Levenshtein

# Hosts where many unrelated tools live side by side. The owner part of the
# path is kept so that two projects on github.com are not one "site".
SHARED_HOST_PATH_DEPTH: dict[str, int] = {
    "github.com": 1,
    "gitlab.com": 1,
    "huggingface.co": 2,
    "dev.to": 1,
    "medium.com": 1,
    "producthunt.com": 2,
    "youtube.com": 1,
}

URL_PATTERN = re.compile(r"https?://[^\s<>\"'()\[\]]+")


def normalize_url(url: str) -> str:
    """Canonicalise a URL for stable comparison.

    Lowercases scheme and host, strips trailing slashes from the path and
    drops the query string and fragment. Anything that does not parse as an
    absolute URL is returned unchanged.

    Examples:
        https://Example.com/tool/?utm_source=x#top -> https://example.com/tool
        https://example.com/ -> https://example.com
    """
    try:
        # urlsplit keeps ";params" inside the path so trailing slashes are stripped once
        parsed = urlsplit(url.strip())
        if not parsed.scheme or not parsed.netloc:
            return url
        return urlunsplit((parsed.scheme.lower(), parsed.netloc.lower(), parsed.path.rstrip("/"), "", ""))
    except (ValueError, AttributeError):
        return url


def similarity(s1: str, s2: str) -> float:
    """Normalised edit-distance similarity in [0, 1]; two empty strings are identical."""
    return Levenshtein.normalized_similarity(s1, s2)


def _hostname(url: str) -> Optional[str]:
    try:
        host = urlparse(url.strip()).hostname
    except (ValueError, AttributeError):
        return None
    if not host:
        return None
    return host.removeprefix("www.")


def same_domain(url1: str, url2: str) -> bool:
    """Compare hostnames ignoring a leading ``www.``; malformed URLs never match."""
    host1 = _hostname(url1)
    host2 = _hostname(url2)
    if host1 is None or host2 is None:
        return False
    return host1 == host2


def site_key(url: str) -> Optional[str]:
    """Identify the site a URL belongs to.

    Examples:
        https://www.acme.com/pricing -> acme.com
        https://github.com/acme/widget -> github.com/acme
        https://huggingface.co/spaces/acme/demo -> huggingface.co/spaces/acme
    """
    host = _hostname(url)
    if host is None:
        return None

    depth = SHARED_HOST_PATH_DEPTH.get(host)
    if not depth:
        return host

    segments = [part for part in urlparse(url.strip()).path.lower().split("/") if part]
    if not segments:
        return host
    return "/".join([host, *segments[:depth]])


def same_site(url1: str, url2: str) -> bool:
    """Like :func:`same_domain`, but owner-aware on shared hosting platforms."""
    key1 = site_key(url1)
    key2 = site_key(url2)
    if key1 is None or key2 is None:
        return False
    return key1 == key2


def find_urls(text: Optional[str]) -> list[str]:
    """Return every http(s) URL in free text, trailing punctuation removed."""
    if not text:
        return []
    return [match.rstrip(".,;:!?") for match in URL_PATTERN.findall(text)]


def is_excluded_host(url: str, excluded: tuple[str, ...]) -> bool:
    """True when the URL's host is one of ``excluded`` or a subdomain of one."""
    host = _hostname(url)
    if host is None:
        return True
    return any(host == domain or host.endswith(f".{domain}") for domain in excluded)


def first_external_url(candidates: list[str], excluded: tuple[str, ...]) -> Optional[str]:
    """Pick the first URL whose host is not in ``excluded``."""
    for candidate in candidates:
        if not is_excluded_host(candidate, excluded):
            return candidate
    return None
