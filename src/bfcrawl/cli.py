"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional, Sequence

from bfcrawl.discovery import CrawlSettings, CrawlStats, LinkDiscoverer
from bfcrawl.engine import traverse
from bfcrawl.outline import outline
from bfcrawl.urls import normalize_url

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def normalize_seeds(urls: Sequence[str]) -> List[str]:
    """Normalize seed URLs, dropping (and reporting) the unusable ones."""
    seeds = []
    for url in urls:
        seed = normalize_url(url, url)
        if seed is None:
            logger.error("Ignoring invalid start URL: %s", url)
            continue
        seeds.append(seed)
    return seeds


def print_summary(stats: CrawlStats, elapsed_s: float) -> None:
    """Print crawl summary to stderr."""
    sys.stderr.write("=" * 50 + "\n")
    sys.stderr.write("CRAWL SUMMARY\n")
    sys.stderr.write("=" * 50 + "\n\n")

    sys.stderr.write(f"Pages visited:          {stats.pages_visited}\n")
    sys.stderr.write(f"Pages failed:           {stats.pages_failed}\n")
    sys.stderr.write(f"Links found:            {stats.links_found}\n")
    sys.stderr.write(f"Elapsed:                {elapsed_s:.1f}s\n\n")

    if stats.error_counts:
        sys.stderr.write("Errors by type:\n")
        for error_type, count in sorted(stats.error_counts.items()):
            if error_type == "connection_error":
                label = "Connection errors"
            elif error_type == "not_html":
                label = "Non-HTML content"
            elif error_type == "robots":
                label = "Blocked by robots.txt"
            else:
                label = f"HTTP {error_type}"
            sys.stderr.write(f"  {label}: {count}\n")
    else:
        sys.stderr.write("No errors encountered.\n")

    sys.stderr.write("\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bfcrawl",
        description="Crawl breadth-first from the given URLs, printing each page visited.",
    )
    parser.add_argument("urls", nargs="*", help="Start URLs (e.g. https://example.com)")
    parser.add_argument("--workers", type=int, default=1, help="Concurrent fetches per round (default: 1)")
    parser.add_argument("--timeout", type=float, default=15.0, help="Request timeout in seconds (default: 15)")
    parser.add_argument("--user-agent", default="bfcrawl/1.0", help="User-Agent header")
    parser.add_argument("--same-origin", action="store_true", help="Only follow links on the start URLs' origins")
    parser.add_argument(
        "--path-prefix",
        help="Limit crawling to URLs whose path starts with this prefix (e.g., '/docs')"
    )
    parser.add_argument("--respect-robots", action="store_true", help="Try to respect robots.txt Disallow rules")
    parser.add_argument("--max-pages", type=int, default=0, help="Stop after this many pages (default: no limit)")
    parser.add_argument("--out", help="Write JSON results to this path, or '-' for stdout")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    parser.add_argument("--verbose", action="store_true", help="Log progress and print a summary")
    parser.add_argument("--log-level", help="Logging level (default: WARNING, or INFO with --verbose)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.workers < 1:
        parser.error("--workers must be at least 1")

    configure_logging(args.log_level or ("INFO" if args.verbose else "WARNING"))

    seeds = normalize_seeds(args.urls)
    settings = CrawlSettings(
        timeout_s=args.timeout,
        user_agent=args.user_agent,
        same_origin=args.same_origin,
        path_prefix=args.path_prefix,
        respect_robots=args.respect_robots,
        max_pages=args.max_pages,
    )

    # Visited URLs go to stdout unless stdout carries the JSON report
    on_visit = None if args.out == "-" else print
    discoverer = LinkDiscoverer(settings, on_visit=on_visit)
    discoverer.add_seed_origins(seeds)

    started = time.monotonic()
    try:
        traverse(discoverer, seeds, max_workers=args.workers, stop=discoverer.stop)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        return 130
    elapsed = time.monotonic() - started

    if args.verbose:
        print_summary(discoverer.stats, elapsed)

    if args.out:
        payload = [asdict(r) for r in discoverer.results]
        json_text = json.dumps(payload, ensure_ascii=False, indent=2 if args.pretty else None)
        if args.out == "-":
            print(json_text)
        else:
            output_path = Path(args.out)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(json_text, encoding="utf-8")
            if args.verbose:
                sys.stderr.write(f"Results written to: {output_path}\n")

    return 0


def outline_main(argv: Optional[Sequence[str]] = None) -> int:
    """Print the element outline of the HTML document on stdin."""
    parser = argparse.ArgumentParser(
        prog="bfcrawl-outline",
        description="Print the element structure of an HTML document read from stdin.",
    )
    parser.add_argument("--indent", type=int, default=2, help="Spaces per nesting level (default: 2)")
    args = parser.parse_args(argv)

    try:
        html = sys.stdin.read()
        outline(html, sys.stdout, indent=args.indent)
    except (OSError, ValueError) as e:
        sys.stderr.write(f"outline: {e}\n")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
