"""In-page search: scan, highlight, navigate and restore a rendered document."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from loguru import logger

from mdview.document import DocumentConsistencyError, DocumentModel


class SearchResult(NamedTuple):
    """1-based position of the current match and the match count."""

    current: int
    total: int


NO_MATCHES = SearchResult(0, 0)


@dataclass(frozen=True)
class MatchSpan:
    """Half-open character range of one match inside one text node."""

    node: Any
    start: int
    end: int


def _fold(text: str) -> str:
    """Lowercase one character at a time without shifting character offsets."""
    # Per character, so context rules (Greek final sigma) never apply and
    # a needle folds exactly as it would inside any haystack. Characters that
    # expand when lowercased (e.g. U+0130) are kept as-is.
    return "".join(ch if len(ch.lower()) != 1 else ch.lower() for ch in text)


def scan(document: DocumentModel, query: str) -> list[MatchSpan]:
    """Find non-overlapping, case-insensitive literal occurrences of ``query``."""
    if not query or not query.strip():
        return []
    needle = _fold(query)
    spans: list[MatchSpan] = []
    for node in document.text_nodes():
        haystack = _fold(document.text_of(node))
        start = haystack.find(needle)
        while start != -1:
            end = start + len(needle)
            spans.append(MatchSpan(node, start, end))
            start = haystack.find(needle, end)
    return spans


def apply_highlights(document: DocumentModel, spans: Sequence[MatchSpan]) -> list[Any]:
    """Wrap every span in a marker; returns markers in document order."""
    # Text nodes may compare equal by value, so group by identity.
    groups: dict[int, tuple[Any, list[tuple[int, int]]]] = {}
    for span in spans:
        _node, ranges = groups.setdefault(id(span.node), (span.node, []))
        ranges.append((span.start, span.end))
    for node, _ranges in groups.values():
        if not document.contains(node):
            raise DocumentConsistencyError("match refers to a text node that left the document")

    markers: list[Any] = []
    for node, ranges in groups.values():
        markers.extend(document.wrap_ranges(node, sorted(ranges)))
    return markers


def restore_highlights(document: DocumentModel, markers: Sequence[Any]) -> None:
    """Undo :func:`apply_highlights`."""
    for marker in markers:
        document.unwrap(marker)


class MatchCursor:
    """Tracks the current marker and moves it with wraparound."""

    def __init__(self, document: DocumentModel, markers: Sequence[Any]) -> None:
        self._document = document
        self._markers = list(markers)
        self._index: int | None = None

    @property
    def index(self) -> int | None:
        return self._index

    @property
    def current(self) -> Any | None:
        if self._index is None:
            return None
        return self._markers[self._index]

    def position(self) -> SearchResult:
        if not self._markers or self._index is None:
            return NO_MATCHES
        return SearchResult(self._index + 1, len(self._markers))

    def set_current(self, index: int) -> None:
        if not self._markers:
            return
        if not 0 <= index < len(self._markers):
            raise IndexError(f"match index {index} out of range for {len(self._markers)} matches")
        previous = self.current
        if previous is not None:
            self._document.set_emphasis(previous, False)
        self._index = index
        marker = self._markers[index]
        self._document.set_emphasis(marker, True)
        self._document.scroll_into_view(marker)

    def next(self) -> SearchResult:
        if not self._markers:
            return NO_MATCHES
        base = -1 if self._index is None else self._index
        self.set_current((base + 1) % len(self._markers))
        return self.position()

    def previous(self) -> SearchResult:
        if not self._markers:
            return NO_MATCHES
        base = 0 if self._index is None else self._index
        self.set_current((base - 1 + len(self._markers)) % len(self._markers))
        return self.position()


@dataclass
class SearchSession:
    query: str = ""
    markers: list[Any] = field(default_factory=list)
    current_index: int | None = None
    active: bool = False


class SearchController:
    """Owns the search session for the one document currently on display."""

    def __init__(self, document: DocumentModel | None = None) -> None:
        self._document: DocumentModel | None = None
        self._session = SearchSession()
        self._cursor: MatchCursor | None = None
        if document is not None:
            self.attach(document)

    @property
    def document(self) -> DocumentModel | None:
        return self._document

    @property
    def session(self) -> SearchSession:
        return self._session

    def attach(self, document: DocumentModel) -> None:
        """Swap in a new document, tearing down any session on the old one."""
        self.detach()
        self._document = document

    def detach(self) -> None:
        self.clear()
        self._document = None

    def search(self, text: str) -> SearchResult:
        if self._document is None:
            return NO_MATCHES
        self.clear()
        if not text or not text.strip():
            return NO_MATCHES
        document = self._document
        try:
            stale = document.find_markers()
            if stale:
                logger.debug("Removing {} stale search marker(s)", len(stale))
                restore_highlights(document, stale)
            markers = apply_highlights(document, scan(document, text))
        except DocumentConsistencyError as exc:
            logger.warning("Search for {!r} abandoned: {}", text, exc)
            self._discard()
            return NO_MATCHES
        if not markers:
            return NO_MATCHES
        self._cursor = MatchCursor(document, markers)
        self._cursor.set_current(0)
        self._session = SearchSession(query=text, markers=markers, current_index=0, active=True)
        return self._cursor.position()

    def next(self) -> SearchResult:
        return self._move(forward=True)

    def previous(self) -> SearchResult:
        return self._move(forward=False)

    def _move(self, *, forward: bool) -> SearchResult:
        if self._cursor is None or not self._session.active:
            return NO_MATCHES
        result = self._cursor.next() if forward else self._cursor.previous()
        self._session.current_index = self._cursor.index
        return result

    def position(self) -> SearchResult:
        if self._cursor is None:
            return NO_MATCHES
        return self._cursor.position()

    def clear(self) -> None:
        if not self._session.active:
            return
        if self._document is not None:
            try:
                restore_highlights(self._document, self._session.markers)
            except DocumentConsistencyError as exc:
                logger.warning("Could not restore document after search: {}", exc)
                self._discard()
                return
        self._reset()

    def _discard(self) -> None:
        """Drop session state and strip whatever markers are still attached."""
        self._reset()
        if self._document is None:
            return
        for marker in self._document.find_markers():
            try:
                self._document.unwrap(marker)
            except DocumentConsistencyError:
                logger.debug("Skipping detached marker during cleanup")

    def _reset(self) -> None:
        self._session = SearchSession()
        self._cursor = None
