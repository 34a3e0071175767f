"""
Link discovery for the traversal engine: fetch a page, return its links.
"""
from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Set

import requests
from bs4 import BeautifulSoup, SoupStrainer

from bfcrawl.robots import RobotsRules
from bfcrawl.urls import Origin, is_local, matches_path_prefix, normalize_url, origin_of

logger = logging.getLogger(__name__)

# SoupStrainer to parse only <a> tags (faster link extraction)
LINK_STRAINER = SoupStrainer("a", href=True)


class FetchError(Exception):
    """A page was fetched but cannot be used for link discovery."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass(slots=True)
class CrawlSettings:
    timeout_s: float = 15.0
    user_agent: str = "bfcrawl/1.0"
    same_origin: bool = False
    path_prefix: Optional[str] = None
    respect_robots: bool = False
    max_pages: int = 0


@dataclass(slots=True)
class PageResult:
    """Outcome of a single discover call."""
    url: str
    scanned_at: Optional[str] = None
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    links_found: int = 0
    error: Optional[str] = None


@dataclass(slots=True)
class CrawlStats:
    """Statistics collected during crawl for summary output."""
    pages_visited: int = 0
    pages_failed: int = 0
    links_found: int = 0
    error_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def admit_visit(self, max_pages: int = 0) -> Optional[int]:
        """
        Count a visit and return the running total, or None once
        max_pages visits have been admitted (0 means no limit).
        """
        with self._lock:
            if max_pages and self.pages_visited >= max_pages:
                return None
            self.pages_visited += 1
            return self.pages_visited

    def record_error(self, kind: str) -> None:
        with self._lock:
            self.pages_failed += 1
            self.error_counts[kind] += 1

    def record_links(self, count: int) -> None:
        with self._lock:
            self.links_found += count


def utc_now_iso() -> str:
    """Return current UTC time in ISO format."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def extract_links(html: str) -> List[str]:
    """Extract all href values from <a> tags, in document order."""
    soup = BeautifulSoup(html, "lxml", parse_only=LINK_STRAINER)
    return [a["href"] for a in soup.find_all("a") if a.get("href")]


class LinkDiscoverer:
    """
    Discoverer that turns a URL into the URLs it links to.

    Fetch failures (connection errors, non-200 responses, non-HTML content)
    are logged and yield no links, so one bad page never stops a crawl.
    A failed URL is not retried: the engine has already marked it seen.
    """

    def __init__(
        self,
        settings: Optional[CrawlSettings] = None,
        session: Optional[requests.Session] = None,
        on_visit: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.settings = settings or CrawlSettings()
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = self.settings.user_agent
        self.on_visit = on_visit
        self.stop = threading.Event()
        self.stats = CrawlStats()
        self.results: List[PageResult] = []
        self._results_lock = threading.Lock()
        self._origins: Set[Origin] = set()
        self._robots = (
            RobotsRules(self.session, self.settings.timeout_s) if self.settings.respect_robots else None
        )

    def add_seed_origins(self, urls: Iterable[str]) -> None:
        """Register origins that same_origin scoping keeps links within."""
        self._origins.update(origin_of(u) for u in urls)

    def in_scope(self, url: str) -> bool:
        if self.settings.same_origin and not any(is_local(url, o) for o in self._origins):
            return False
        return matches_path_prefix(url, self.settings.path_prefix)

    def discover(self, url: str) -> List[str]:
        max_pages = self.settings.max_pages
        visited = self.stats.admit_visit(max_pages)
        if visited is None:
            return []
        if max_pages and visited == max_pages:
            self.stop.set()

        if self.on_visit is not None:
            self.on_visit(url)

        result = PageResult(url=url, scanned_at=utc_now_iso())
        with self._results_lock:
            self.results.append(result)

        if self._robots is not None and not self._robots.allowed(url):
            logger.info("Skipping %s: disallowed by robots.txt", url)
            result.error = "robots"
            self.stats.record_error("robots")
            return []

        try:
            links = self._fetch_links(url, result)
        except FetchError as e:
            logger.warning("%s: %s", url, e)
            result.error = str(e)
            self.stats.record_error(e.kind)
            return []
        except requests.RequestException as e:
            logger.warning("%s: %s", url, e)
            result.error = str(e)
            self.stats.record_error("connection_error")
            return []

        result.links_found = len(links)
        self.stats.record_links(len(links))
        logger.debug("%s: %d links", url, len(links))
        return links

    def _fetch_links(self, url: str, result: PageResult) -> List[str]:
        resp = self.session.get(url, timeout=self.settings.timeout_s, allow_redirects=True)
        result.status_code = resp.status_code
        content_type = (resp.headers.get("content-type") or "").lower()
        result.content_type = content_type or None

        if resp.status_code != 200:
            raise FetchError(str(resp.status_code), f"getting {url}: HTTP {resp.status_code}")
        if "text/html" not in content_type:
            raise FetchError("not_html", f"getting {url}: content type {content_type or 'unknown'}")

        # Relative links resolve against where redirects ended up
        base = resp.url or url
        links = []
        for href in extract_links(resp.text):
            target = normalize_url(href, base=base)
            if target and self.in_scope(target):
                links.append(target)
        return links
