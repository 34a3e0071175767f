"""Shared fixtures: an in-memory stand-in for requests.Session."""

import pytest
import requests


class FakeResponse:
    def __init__(self, url, status_code=200, text="", content_type="text/html; charset=utf-8"):
        self.url = url
        self.status_code = status_code
        self.text = text
        self.headers = {"content-type": content_type} if content_type else {}


class FakeSession:
    """Serves canned responses keyed by URL; unknown URLs raise ConnectionError."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.headers = {}
        self.requested = []

    def get(self, url, timeout=None, allow_redirects=True):
        self.requested.append(url)
        page = self.pages.get(url)
        if page is None:
            raise requests.ConnectionError(f"cannot connect to {url}")
        if isinstance(page, FakeResponse):
            return page
        return FakeResponse(url, text=page)


def html_page(*hrefs):
    links = "".join(f'<a href="{h}">link</a>' for h in hrefs)
    return f"<html><head><title>t</title></head><body>{links}</body></html>"


@pytest.fixture
def site():
    return FakeSession({
        "https://example.com/": html_page("/a", "/b", "https://other.org/x"),
        "https://example.com/a": html_page("/", "/c#top", "/logo.png"),
        "https://example.com/b": FakeResponse("https://example.com/b", status_code=404, text="gone"),
        "https://example.com/c": html_page("mailto:me@example.com", "/a"),
        "https://other.org/x": html_page("/y"),
        "https://other.org/y": FakeResponse("https://other.org/y", text="{}", content_type="application/json"),
    })
