"""
Thread-safe crawl containers: the pending-URL frontier and the visited set.
"""
from __future__ import annotations

import threading
from collections import deque
from typing import Deque, List, Set


class FrontierEmpty(Exception):
    """Raised by Frontier.dequeue() when no URLs are pending."""


class Frontier:
    """FIFO queue of URLs awaiting a visit."""

    def __init__(self) -> None:
        self._members: Deque[str] = deque()
        self._lock = threading.Lock()

    def enqueue(self, url: str) -> None:
        """Append url to the tail."""
        with self._lock:
            self._members.append(url)

    def dequeue(self) -> str:
        """Remove and return the earliest-enqueued URL."""
        with self._lock:
            if not self._members:
                raise FrontierEmpty("Queue Empty")
            return self._members.popleft()

    def size(self) -> int:
        """Number of pending URLs."""
        with self._lock:
            return len(self._members)

    def snapshot(self) -> List[str]:
        """Pending URLs in dequeue order."""
        with self._lock:
            return list(self._members)

    def __len__(self) -> int:
        return self.size()


class VisitedSet:
    """
    Every URL ever discovered during a run. Only grows.

    add_if_absent() checks and inserts under one lock so that, of several
    threads discovering the same URL, exactly one sees True.
    """

    def __init__(self) -> None:
        self._urls: Set[str] = set()
        self._lock = threading.Lock()

    def add_if_absent(self, url: str) -> bool:
        """Insert url; True if it was not already present."""
        with self._lock:
            if url in self._urls:
                return False
            self._urls.add(url)
            return True

    def size(self) -> int:
        """Number of distinct URLs seen."""
        with self._lock:
            return len(self._urls)

    def __contains__(self, url: object) -> bool:
        with self._lock:
            return url in self._urls

    def __len__(self) -> int:
        return self.size()
