"""
Minimal robots.txt support: Disallow prefixes for User-agent: *.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, FrozenSet
from urllib.parse import urlparse, urlunparse

import requests

from bfcrawl.urls import Origin, origin_of

logger = logging.getLogger(__name__)


def parse_disallow_rules(text: str) -> FrozenSet[str]:
    """Collect Disallow paths listed under 'User-agent: *'."""
    disallow_rules = set()
    ua_star = False
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        if not line:
            continue

        lower_line = line.lower()
        if lower_line.startswith("user-agent:"):
            ua_star = line.split(":", 1)[1].strip() == "*"
        elif ua_star and lower_line.startswith("disallow:"):
            path = line.split(":", 1)[1].strip()
            if path:
                disallow_rules.add(path)
    return frozenset(disallow_rules)


class RobotsRules:
    """Per-origin cache of robots.txt rules, loaded on first use."""

    def __init__(self, session: requests.Session, timeout: float) -> None:
        self.session = session
        self.timeout = timeout
        self._rules: Dict[Origin, FrozenSet[str]] = {}
        self._lock = threading.Lock()

    def allowed(self, url: str) -> bool:
        rules = self._rules_for(origin_of(url))
        if not rules:
            return True
        path = urlparse(url).path or "/"
        return not any(path.startswith(rule) for rule in rules)

    def _rules_for(self, origin: Origin) -> FrozenSet[str]:
        # Held across the fetch so each origin is requested once
        with self._lock:
            if origin not in self._rules:
                self._rules[origin] = self._load(origin)
            return self._rules[origin]

    def _load(self, origin: Origin) -> FrozenSet[str]:
        robots_url = urlunparse((origin[0], origin[1], "/robots.txt", "", "", ""))
        try:
            resp = self.session.get(robots_url, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            logger.debug("robots.txt unavailable for %s: %s", robots_url, e)
            return frozenset()

        if resp.status_code != 200:
            return frozenset()
        if "text" not in (resp.headers.get("content-type") or "").lower():
            return frozenset()

        rules = parse_disallow_rules(resp.text)
        logger.debug("Loaded %d robots.txt rules from %s", len(rules), robots_url)
        return rules
