"""
Crawl orchestration: seed the frontier, run the bounded fetch/extract loop,
persist the store and summarise the run.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import urlsplit

from bfscrawl.extractor import LINK_BASES, Extractor
from bfscrawl.fetcher import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT, Fetcher
from bfscrawl.frontier import Frontier, FrontierEmpty, VisitedSet
from bfscrawl.store import PageRecord, SnapshotError, Store

logger = logging.getLogger(__name__)

DEFAULT_ROOT = "https://web-scraping.dev/"
DEFAULT_LIMIT = 50
DEFAULT_OUTPUT = "results.json"

FetchFn = Callable[[str], bytes]


@dataclass(slots=True)
class CrawlConfig:
    """Settings for one crawl run."""
    root: str = DEFAULT_ROOT
    limit: int = DEFAULT_LIMIT
    output: Optional[str] = DEFAULT_OUTPUT
    verbose: bool = False
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    workers: int = 1
    link_base: str = "page"

    @property
    def root_host(self) -> str:
        return urlsplit(self.root).netloc

    def validate(self) -> None:
        """Raise ValueError if the settings cannot drive a crawl."""
        parsed = urlsplit(self.root)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid root URL: {self.root!r}")
        if self.limit < 0:
            raise ValueError(f"limit must be >= 0, got {self.limit}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.link_base not in LINK_BASES:
            raise ValueError(f"link_base must be one of {LINK_BASES}, got {self.link_base!r}")


class CrawlState(Enum):
    SEEDING = "seeding"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


@dataclass(slots=True)
class CrawlSummary:
    """Counters and output of a finished run."""
    elapsed_s: float
    pages_crawled: int
    urls_seen: int
    pending: int
    fetch_failures: int = 0
    records: List[PageRecord] = field(default_factory=list)
    output_path: Optional[Path] = None
    save_error: Optional[str] = None


class Orchestrator:
    """
    Breadth-first crawl of one site.

    Fetches are dispatched to a pool of `workers` threads; results are drained
    and extracted on the calling thread. Work is only dispatched while
    pages_crawled plus in-flight fetches is below the limit, so the limit is
    never exceeded. With one worker every fetch/extract pair completes before
    the next URL is dequeued.
    """

    def __init__(self, config: CrawlConfig, fetch: Optional[FetchFn] = None) -> None:
        config.validate()
        self.config = config
        self.frontier = Frontier()
        self.visited = VisitedSet()
        self.store = Store()
        self._owned_fetcher: Optional[Fetcher] = None
        if fetch is None:
            fetch = self._owned_fetcher = Fetcher(timeout=config.timeout, user_agent=config.user_agent)
        self.fetch: FetchFn = fetch
        self.extractor = Extractor(
            self.frontier, self.visited, self.store,
            root_url=config.root, link_base=config.link_base,
        )
        self.pages_crawled = 0
        self.fetch_failures = 0
        self.state = CrawlState.SEEDING
        self._log_level = logging.INFO if config.verbose else logging.DEBUG

    def run(self) -> CrawlSummary:
        """Crawl until the frontier empties or the limit is reached, then persist."""
        t0 = time.perf_counter()

        self.frontier.enqueue(self.config.root)
        self.visited.add_if_absent(self.config.root)
        self.state = CrawlState.RUNNING

        with ThreadPoolExecutor(max_workers=self.config.workers, thread_name_prefix="fetch") as pool:
            in_flight: Dict[Future, str] = {}
            while True:
                self._dispatch(pool, in_flight)
                if not in_flight:
                    break
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    url = in_flight.pop(future)
                    self._handle(url, self._body_of(url, future))

        self.state = CrawlState.DRAINING
        return self._finish(t0)

    def _dispatch(self, pool: ThreadPoolExecutor, in_flight: Dict[Future, str]) -> None:
        """Dequeue and submit fetches until the pool or page budget is full."""
        while len(in_flight) < self.config.workers:
            if self.pages_crawled + len(in_flight) >= self.config.limit:
                self.state = CrawlState.DRAINING
                return
            try:
                url = self.frontier.dequeue()
            except FrontierEmpty:
                return
            logger.log(self._log_level, "Crawling: %s", url)
            in_flight[pool.submit(self.fetch, url)] = url

    def _body_of(self, url: str, future: Future) -> bytes:
        """Result of a finished fetch; an exception counts as a failed fetch."""
        try:
            return future.result()
        except Exception as e:
            logger.warning("Fetch raised for %s: %s", url, e)
            return b""

    def _handle(self, url: str, body: bytes) -> None:
        """Extract a fetched page, or drop the URL if the fetch failed."""
        if not body:
            # Dropped for this run; not retried and not counted.
            self.fetch_failures += 1
            return
        extraction = self.extractor.extract(body, url)
        self.pages_crawled += 1
        logger.debug(
            "Parsed %s: %d tokens, +%d links (%d/%d pages)",
            url, extraction.tokens, len(extraction.queued), self.pages_crawled, self.config.limit,
        )

    def _finish(self, t0: float) -> CrawlSummary:
        summary = CrawlSummary(
            elapsed_s=0.0,
            pages_crawled=self.pages_crawled,
            urls_seen=self.visited.size(),
            pending=self.frontier.size(),
            fetch_failures=self.fetch_failures,
            records=self.store.records(),
        )
        if self.config.output:
            try:
                summary.output_path = self.store.save(self.config.output)
            except SnapshotError as e:
                logger.error("Failed to save JSON: %s", e)
                summary.save_error = str(e)
        summary.elapsed_s = time.perf_counter() - t0
        if self._owned_fetcher is not None:
            self._owned_fetcher.close()
        self.state = CrawlState.DONE
        return summary


def crawl(config: CrawlConfig, fetch: Optional[FetchFn] = None) -> CrawlSummary:
    """
    Crawl config.root breadth-first and return the run summary.

    Args:
        config: Crawl settings. Raises ValueError if they are invalid.
        fetch: Optional replacement for the HTTP fetcher; returns the page
               body, or empty bytes on failure. An exception it raises is
               treated the same as empty bytes.

    Returns:
        CrawlSummary with counters, the collected records and, if
        config.output is set, where the snapshot was written.
    """
    return Orchestrator(config, fetch=fetch).run()
