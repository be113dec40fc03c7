"""
Breadth-first crawler that follows same-site links from a root URL.
Saves each page's title and a short text excerpt as a JSON snapshot.
"""
from bfscrawl.core import CrawlConfig, CrawlState, CrawlSummary, Orchestrator, crawl
from bfscrawl.extractor import Extractor, tokenize
from bfscrawl.fetcher import Fetcher
from bfscrawl.frontier import Frontier, FrontierEmpty, VisitedSet
from bfscrawl.store import PageRecord, SnapshotError, Store, load_snapshot

__version__ = "1.0.0"
__all__ = [
    "crawl",
    "CrawlConfig",
    "CrawlState",
    "CrawlSummary",
    "Orchestrator",
    "Extractor",
    "tokenize",
    "Fetcher",
    "Frontier",
    "FrontierEmpty",
    "VisitedSet",
    "PageRecord",
    "SnapshotError",
    "Store",
    "load_snapshot",
]
