"""Tests for the link discovery adapter."""

import logging

import pytest

from bfcrawl.discovery import CrawlSettings, LinkDiscoverer, extract_links
from bfcrawl.engine import traverse

from conftest import FakeResponse, FakeSession, html_page


def test_extract_links_document_order():
    html = '<p><a href="/one">1</a><a name="anchor">x</a><div><a href="two">2</a></div></p>'

    assert extract_links(html) == ["/one", "two"]


def test_discover_returns_normalized_links(site):
    discoverer = LinkDiscoverer(session=site)

    links = discoverer.discover("https://example.com/a")

    # Fragment dropped, image skipped
    assert links == ["https://example.com/", "https://example.com/c"]
    assert discoverer.results[0].links_found == 2
    assert discoverer.results[0].status_code == 200


def test_relative_links_resolve_against_final_url():
    session = FakeSession({
        "https://example.com/old": FakeResponse(
            "https://example.com/docs/new/", text=html_page("page", "../up")
        ),
    })
    discoverer = LinkDiscoverer(session=session)

    assert discoverer.discover("https://example.com/old") == [
        "https://example.com/docs/new/page",
        "https://example.com/docs/up",
    ]


def test_user_agent_applied_to_session(site):
    LinkDiscoverer(CrawlSettings(user_agent="test-agent/2"), session=site)

    assert site.headers["User-Agent"] == "test-agent/2"


def test_http_error_is_absorbed(site, caplog):
    discoverer = LinkDiscoverer(session=site)

    with caplog.at_level(logging.WARNING, logger="bfcrawl.discovery"):
        links = discoverer.discover("https://example.com/b")

    assert links == []
    assert "HTTP 404" in caplog.text
    assert discoverer.stats.error_counts["404"] == 1
    assert discoverer.results[0].error is not None


def test_non_html_is_absorbed(site):
    discoverer = LinkDiscoverer(session=site)

    assert discoverer.discover("https://other.org/y") == []
    assert discoverer.stats.error_counts["not_html"] == 1
    assert discoverer.results[0].content_type == "application/json"


def test_connection_error_is_absorbed(site):
    discoverer = LinkDiscoverer(session=site)

    assert discoverer.discover("https://nowhere.invalid/") == []
    assert discoverer.stats.error_counts["connection_error"] == 1
    assert discoverer.stats.pages_failed == 1


def test_unexpected_error_propagates():
    class BrokenSession(FakeSession):
        def get(self, url, timeout=None, allow_redirects=True):
            raise RuntimeError("bug")

    discoverer = LinkDiscoverer(session=BrokenSession())

    with pytest.raises(RuntimeError):
        discoverer.discover("https://example.com/")


@pytest.mark.parametrize("workers", [1, 3])
def test_full_crawl_visits_everything_once(site, workers):
    visited = []
    discoverer = LinkDiscoverer(session=site, on_visit=visited.append)

    traverse(discoverer, ["https://example.com/"], max_workers=workers)

    assert sorted(visited) == sorted([
        "https://example.com/",
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c",
        "https://other.org/x",
        "https://other.org/y",
    ])
    assert len(site.requested) == len(set(site.requested))
    assert discoverer.stats.pages_visited == 6
    assert discoverer.stats.pages_failed == 2


def test_failure_isolation(site):
    # /b fails but everything reachable around it is still crawled
    discoverer = LinkDiscoverer(session=site)
    traverse(discoverer, ["https://example.com/"])

    urls = [r.url for r in discoverer.results]
    assert "https://example.com/b" in urls
    assert "https://example.com/c" in urls
    assert urls.count("https://example.com/b") == 1


def test_same_origin_scope(site):
    discoverer = LinkDiscoverer(CrawlSettings(same_origin=True), session=site)
    discoverer.add_seed_origins(["https://example.com/"])

    traverse(discoverer, ["https://example.com/"])

    assert all(r.url.startswith("https://example.com/") for r in discoverer.results)
    assert "https://other.org/x" not in site.requested


def test_path_prefix_scope():
    session = FakeSession({
        "https://example.com/docs/": html_page("/docs/a", "/blog/b"),
        "https://example.com/docs/a": html_page(),
    })
    discoverer = LinkDiscoverer(CrawlSettings(path_prefix="/docs"), session=session)

    assert discoverer.discover("https://example.com/docs/") == ["https://example.com/docs/a"]


def test_max_pages_sets_stop_and_limits_fetches(site):
    discoverer = LinkDiscoverer(CrawlSettings(max_pages=2), session=site)

    traverse(discoverer, ["https://example.com/"], stop=discoverer.stop)

    assert discoverer.stop.is_set()
    assert len(discoverer.results) == 2
    assert site.requested == ["https://example.com/", "https://example.com/a"]


def test_robots_disallow_skips_fetch():
    session = FakeSession({
        "https://example.com/robots.txt": FakeResponse(
            "https://example.com/robots.txt",
            text="User-agent: *\nDisallow: /private\n",
            content_type="text/plain",
        ),
        "https://example.com/": html_page("/private/x", "/public"),
        "https://example.com/public": html_page(),
    })
    discoverer = LinkDiscoverer(CrawlSettings(respect_robots=True), session=session)

    traverse(discoverer, ["https://example.com/"])

    assert "https://example.com/private/x" not in session.requested
    assert discoverer.stats.error_counts["robots"] == 1
    assert session.requested.count("https://example.com/robots.txt") == 1


def test_malformed_href_is_skipped_and_crawl_continues():
    session = FakeSession({
        "https://example.com/": html_page("http://[oops/", "/ok"),
        "https://example.com/ok": html_page(),
    })
    discoverer = LinkDiscoverer(session=session)

    traverse(discoverer, ["https://example.com/"])

    assert session.requested == ["https://example.com/", "https://example.com/ok"]
    assert discoverer.results[0].links_found == 1


def test_max_pages_stats_with_concurrent_workers():
    pages = {f"https://example.com/p{i}": html_page() for i in range(4)}
    pages["https://example.com/"] = html_page(*(f"/p{i}" for i in range(4)))
    session = FakeSession(pages)
    discoverer = LinkDiscoverer(CrawlSettings(max_pages=2), session=session)

    traverse(discoverer, ["https://example.com/"], max_workers=4, stop=discoverer.stop)

    assert len(session.requested) == 2
    assert len(discoverer.results) == 2
    assert discoverer.stats.pages_visited == 2
    assert discoverer.stop.is_set()
