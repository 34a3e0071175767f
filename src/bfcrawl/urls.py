"""
URL normalization and scope checks.
"""
from __future__ import annotations

from typing import Optional, Tuple
from urllib.parse import urldefrag, urljoin, urlparse, urlunparse

# Static assets never worth fetching for links
SKIP_EXTENSIONS: frozenset[str] = frozenset((
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg",
    ".pdf", ".zip", ".rar", ".7z", ".gz", ".tar",
    ".mp4", ".mp3", ".wav", ".webm",
    ".css", ".js", ".map", ".ico",
    ".woff", ".woff2", ".ttf", ".eot",
))

Origin = Tuple[str, str]


def normalize_url(url: str, base: str) -> Optional[str]:
    """
    Normalize URL so equal pages compare equal.

    - Joins relative URLs against base
    - Drops fragments (#...)
    - Lowercases scheme and host
    - Removes default ports (:80, :443)
    - Keeps querystrings (they matter for uniqueness)

    Returns None for non-http(s) URLs and static assets.
    """
    if not url:
        return None

    try:
        joined, _ = urldefrag(urljoin(base, url.strip()))
        parsed = urlparse(joined)
    except ValueError:
        # e.g. unbalanced IPv6 brackets
        return None
    scheme = parsed.scheme.lower()

    if scheme not in ("http", "https"):
        return None

    path_lower = (parsed.path or "").lower()
    if any(path_lower.endswith(ext) for ext in SKIP_EXTENSIONS):
        return None

    hostname = (parsed.hostname or "").lower()
    if not hostname:
        return None
    if ":" in hostname:
        hostname = f"[{hostname}]"

    try:
        port = parsed.port
    except ValueError:
        return None

    if (scheme == "http" and port == 80) or (scheme == "https" and port == 443):
        netloc = hostname
    elif port:
        netloc = f"{hostname}:{port}"
    else:
        netloc = hostname

    return urlunparse((
        scheme,
        netloc,
        parsed.path or "/",
        parsed.params,
        parsed.query,
        "",
    ))


def origin_of(url: str) -> Origin:
    parsed = urlparse(url)
    return parsed.scheme, parsed.netloc


def is_local(url: str, origin: Origin) -> bool:
    """Check if URL has the given scheme and netloc."""
    return origin_of(url) == origin


def matches_path_prefix(url: str, path_prefix: Optional[str]) -> bool:
    """Check if URL path starts with the given prefix."""
    if path_prefix is None:
        return True
    return urlparse(url).path.startswith(path_prefix)
