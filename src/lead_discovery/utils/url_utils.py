"""URL parsing and validation utilities."""
from typing import Callable, List, Optional, TypeVar
from urllib.parse import urlparse, urlunparse
import re
from ..core.logging import logger

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}

T = TypeVar("T")


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is an absolute http(s) URL.

    Args:
        url: URL string to validate

    Returns:
        True if URL is valid, False otherwise
    """
    if not url or not isinstance(url, str):
        return False
    try:
        result = urlparse(url.strip())
        hostname = result.hostname
        if result.scheme.lower() not in ALLOWED_SCHEMES or not hostname:
            return False
        # Raises ValueError for non-numeric or out-of-range ports
        result.port
        return all(hostname.split("."))
    except ValueError:
        return False


def _resolve_dot_segments(path: str) -> str:
    """Collapse duplicate slashes and resolve '.' and '..' segments."""
    segments = []
    for segment in re.sub(r"/+", "/", path).split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)
    return "/" + "/".join(segments)


def normalize_url(url: str) -> str:
    """
    Normalize a URL for deduplication.

    Lowercases scheme and host, drops credentials, default ports and the
    fragment, collapses duplicate slashes, resolves dot segments and strips
    the trailing slash. The query string is kept as-is.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL

    Raises:
        ValueError: If the URL is not an absolute http(s) URL
    """
    if not is_valid_url(url):
        raise ValueError(f"Invalid URL: {url!r}")

    parsed = urlparse(url.strip())
    scheme = parsed.scheme.lower()
    host = parsed.hostname.lower()

    try:
        port = parsed.port
    except ValueError:
        raise ValueError(f"Invalid URL: {url!r}")

    netloc = host
    if ":" in host:
        netloc = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    path = _resolve_dot_segments(parsed.path or "/")

    normalized = urlunparse((scheme, netloc, path, parsed.params, parsed.query, ""))
    logger.debug(f"Normalized URL {url} -> {normalized}")
    return normalized


def try_normalize_url(url: str) -> Optional[str]:
    """Normalize a URL, returning None instead of raising for invalid input."""
    try:
        return normalize_url(url)
    except ValueError:
        return None


def get_domain(url: str) -> Optional[str]:
    """
    Extract the lowercased host from a URL.

    Args:
        url: URL to extract domain from

    Returns:
        Host name or None if invalid URL
    """
    try:
        hostname = urlparse(url).hostname
        return hostname.lower() if hostname else None
    except ValueError:
        return None


def is_same_domain(url1: str, url2: str) -> bool:
    """
    Check if two URLs belong to the same domain.

    Args:
        url1: First URL
        url2: Second URL

    Returns:
        True if same domain, False otherwise
    """
    domain1 = get_domain(url1)
    domain2 = get_domain(url2)
    return domain1 == domain2 and domain1 is not None


def deduplicate_urls(items: List[T], url_of: Optional[Callable[[T], str]] = None) -> List[T]:
    """
    Remove items whose normalized URL was already seen, preserving order.

    Invalid URLs are compared verbatim.

    Args:
        items: URLs, or records carrying a URL
        url_of: Returns the URL of an item; items are URLs themselves when omitted

    Returns:
        Items with the first occurrence of each URL kept
    """
    seen = set()
    result = []

    for item in items:
        url = url_of(item) if url_of is not None else item
        key = try_normalize_url(url) or url
        if key not in seen:
            seen.add(key)
            result.append(item)

    return result
