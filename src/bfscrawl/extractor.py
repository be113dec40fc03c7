"""
Streaming page extraction.

Pages are never turned into a tree. tokenize() drives lxml's HTML parser with
an event target and yields flat start/end/text events chunk by chunk, so the
Extractor can stop reading a huge or pathological document after a fixed
number of events.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import islice
from typing import Dict, Iterator, List, NamedTuple, Optional, Union
from urllib.parse import urljoin, urlsplit

from bs4 import UnicodeDammit
from bs4.dammit import EncodingDetector
from lxml import etree

from bfscrawl.frontier import Frontier, VisitedSet
from bfscrawl.store import PageRecord, Store

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 500
MAX_TOKENS = 500
CHUNK_SIZE = 8192

START = "start"
END = "end"
TEXT = "text"

LINK_BASES = ("page", "root", "none")
FOLLOWED_SCHEMES = frozenset(("", "http", "https"))


class Token(NamedTuple):
    kind: str
    data: str
    attrs: Optional[Dict[str, str]] = None


class _EventCollector:
    """lxml parser target that turns SAX callbacks into Tokens."""

    def __init__(self) -> None:
        self.events: List[Token] = []
        self._text: List[str] = []

    def _flush_text(self) -> None:
        if self._text:
            self.events.append(Token(TEXT, "".join(self._text)))
            self._text = []

    def start(self, tag, attrib) -> None:
        self._flush_text()
        self.events.append(Token(START, str(tag).lower(), dict(attrib)))

    def end(self, tag) -> None:
        self._flush_text()
        self.events.append(Token(END, str(tag).lower()))

    def data(self, data: str) -> None:
        # libxml2 may split one text node over several callbacks.
        self._text.append(data)

    def close(self) -> None:
        self._flush_text()

    def drain(self) -> List[Token]:
        events, self.events = self.events, []
        return events


def decode_markup(body: bytes) -> str:
    """
    Decode page bytes.

    A BOM or a declared charset (meta tag or XML declaration) is honoured.
    Anything else is read as UTF-8 with bad bytes replaced, so one stray
    byte cannot make a UTF-8 page decode as a legacy codepage.
    """
    dammit = UnicodeDammit(body, is_html=True)
    _, bom_encoding = EncodingDetector.strip_byte_order_mark(body)
    if dammit.unicode_markup is None or not (bom_encoding or dammit.declared_html_encoding):
        return body.decode("utf-8", errors="replace")
    return dammit.unicode_markup


def tokenize(markup: Union[bytes, str], chunk_size: int = CHUNK_SIZE) -> Iterator[Token]:
    """
    Lazily yield start/end/text events for markup.

    A parser error ends the stream as if the document had ended; events
    produced before the error are still yielded.
    """
    if isinstance(markup, bytes):
        markup = decode_markup(markup)
    data = markup.encode("utf-8")

    collector = _EventCollector()
    parser = etree.HTMLParser(target=collector, encoding="utf-8")
    try:
        for offset in range(0, len(data), chunk_size):
            parser.feed(data[offset:offset + chunk_size])
            yield from collector.drain()
        parser.close()
    except etree.LxmlError as e:
        logger.debug("Tokenizer stopped early: %s", e)
    yield from collector.drain()


def resolve_link(
    href: Optional[str],
    page_url: str,
    root_url: str,
    root_host: str,
    link_base: str = "page",
) -> Optional[str]:
    """
    Return the URL to queue for href, or None if it is out of scope.

    In scope means host-less (relative) or on root_host, with an http(s)
    scheme or none. link_base picks what relative links are joined against:
    the page they were found on, the root URL, or nothing (href kept as-is).
    Raises ValueError for unparseable hrefs.
    """
    if not href:
        return None
    href = href.strip()
    parts = urlsplit(href)
    if parts.scheme.lower() not in FOLLOWED_SCHEMES:
        return None
    if parts.netloc and parts.netloc != root_host:
        return None
    if link_base == "page":
        return urljoin(page_url, href)
    if link_base == "root":
        return urljoin(root_url, href)
    return href


@dataclass(slots=True)
class ExtractionState:
    """Per-page tokenizer state."""
    in_body: bool = False
    title_seen: bool = False
    awaiting_title: bool = False
    awaiting_label: bool = False
    content_budget: int = MAX_CONTENT_CHARS
    tokens: int = 0


@dataclass(slots=True)
class Extraction:
    """What one extract() call produced."""
    record: PageRecord
    links: List[str] = field(default_factory=list)
    queued: List[str] = field(default_factory=list)
    tokens: int = 0


class Extractor:
    """
    Turns fetched pages into PageRecords and feeds newly seen same-site
    links to the frontier.
    """

    def __init__(
        self,
        frontier: Frontier,
        visited: VisitedSet,
        store: Store,
        root_url: str,
        link_base: str = "page",
        max_tokens: int = MAX_TOKENS,
    ) -> None:
        if link_base not in LINK_BASES:
            raise ValueError(f"link_base must be one of {LINK_BASES}, got {link_base!r}")
        self.frontier = frontier
        self.visited = visited
        self.store = store
        self.root_url = root_url
        self.root_host = urlsplit(root_url).netloc
        self.link_base = link_base
        self.max_tokens = max_tokens

    def extract(self, body: Union[bytes, str], url: str) -> Extraction:
        """Build the page record for body, queue its new same-site links and store it."""
        state = ExtractionState()
        title = ""
        content: List[str] = []
        result = Extraction(record=PageRecord(url=url))

        for token in islice(tokenize(body), self.max_tokens):
            state.tokens += 1

            if state.awaiting_title:
                state.awaiting_title = False
                if token.kind == TEXT:
                    title = token.data
                    continue

            # The text right after <a> is the link label, not page copy.
            if state.awaiting_label:
                state.awaiting_label = False
                if token.kind == TEXT:
                    continue

            if token.kind == START:
                if token.data == "title" and not state.title_seen:
                    state.title_seen = True
                    state.awaiting_title = True
                elif token.data == "body":
                    state.in_body = True
                elif token.data == "a":
                    state.awaiting_label = True
                    self._discover((token.attrs or {}).get("href"), url, result)
            elif token.kind == TEXT and state.in_body and state.content_budget > 0:
                piece = token.data[:state.content_budget]
                content.append(piece)
                state.content_budget -= len(piece)

        result.record = PageRecord(url=url, title=title, content="".join(content))
        result.tokens = state.tokens
        self.store.append(result.record)
        return result

    def _discover(self, href: Optional[str], page_url: str, result: Extraction) -> None:
        try:
            link = resolve_link(href, page_url, self.root_url, self.root_host, self.link_base)
        except ValueError as e:
            logger.debug("Skipping malformed link %r on %s: %s", href, page_url, e)
            return
        if link is None:
            return
        result.links.append(link)
        if self.visited.add_if_absent(link):
            self.frontier.enqueue(link)
            result.queued.append(link)
