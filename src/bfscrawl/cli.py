"""
Command-line interface for the crawler.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from bfscrawl.core import DEFAULT_LIMIT, DEFAULT_OUTPUT, DEFAULT_ROOT, CrawlConfig, CrawlSummary, crawl
from bfscrawl.extractor import LINK_BASES
from bfscrawl.fetcher import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(summary: CrawlSummary) -> None:
    """Print the end-of-run report to stdout."""
    if summary.save_error:
        print(f"Failed to save JSON: {summary.save_error}")
    elif summary.output_path:
        print(f"Saved crawl results to {summary.output_path}")

    print(f"Time taken to crawl: {summary.elapsed_s:.3f} seconds")
    print(f"Total pages crawled: {summary.pages_crawled}")
    print(f"Total unique URLs seen: {summary.urls_seen}")
    print(f"Remaining in queue: {summary.pending}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bfscrawl",
        description="Crawl a site breadth-first from a root URL and save page titles and text as JSON.",
    )
    parser.add_argument("--root", default=DEFAULT_ROOT, help=f"Starting URL (default: {DEFAULT_ROOT})")
    parser.add_argument("--limit", type=int, default=DEFAULT_LIMIT, help=f"Number of pages to crawl (default: {DEFAULT_LIMIT})")
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help=f"Output file name (default: {DEFAULT_OUTPUT})")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each URL as it is crawled")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT, help=f"Request timeout in seconds (default: {DEFAULT_TIMEOUT:g})")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header")
    parser.add_argument("--workers", type=int, default=1, help="Concurrent fetches (default: 1)")
    parser.add_argument(
        "--link-base",
        choices=LINK_BASES,
        default="page",
        help="Resolve relative links against the current page, the root URL, or not at all (default: page)",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the crawler CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    config = CrawlConfig(
        root=args.root,
        limit=args.limit,
        output=args.output,
        verbose=args.verbose,
        timeout=args.timeout,
        user_agent=args.user_agent,
        workers=args.workers,
        link_base=args.link_base,
    )
    try:
        config.validate()
    except ValueError as e:
        print(e)
        return 2

    summary = crawl(config)
    print_summary(summary)
    return 1 if summary.save_error else 0


if __name__ == "__main__":
    raise SystemExit(main())
