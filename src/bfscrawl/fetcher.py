"""
HTTP transport: one blocking GET per URL, body bytes or nothing.
"""
from __future__ import annotations

import logging
import threading
from typing import List

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0  # seconds
DEFAULT_USER_AGENT = "bfscrawl/1.0"


class Fetcher:
    """
    Fetch page bodies with requests.

    Each worker thread gets its own Session. fetch() never raises; any
    request error (connection, timeout, bad URL or redirect target, non-2xx
    status, body read) yields an empty bytes object. There are no retries.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._lock = threading.Lock()

    def _session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = self.user_agent
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def fetch(self, url: str) -> bytes:
        """Return the body of url, or b"" if the request failed at any stage."""
        try:
            resp = self._session().get(url, timeout=self.timeout, allow_redirects=True)
            resp.raise_for_status()
            return resp.content
        except (requests.RequestException, ValueError) as e:
            # requests lets ValueError escape for unparseable redirect targets.
            logger.info("Fetch failed for %s: %s", url, e)
            return b""

    def close(self) -> None:
        """Close every Session opened by any thread."""
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

    def __call__(self, url: str) -> bytes:
        return self.fetch(url)
