"""Tests for current-match navigation."""

import pytest

from mdview.document import CURRENT_CLASS
from mdview.search import NO_MATCHES, MatchCursor, SearchResult, apply_highlights, scan
from tests.unit.fakes import RecordingDocument, page


def _cursor_for(body: str, query: str) -> tuple[RecordingDocument, list, MatchCursor]:
    doc = RecordingDocument(page(body))
    markers = apply_highlights(doc, scan(doc, query))
    return doc, markers, MatchCursor(doc, markers)


def _current_markers(markers: list) -> list[int]:
    return [i for i, m in enumerate(markers) if CURRENT_CLASS in m.get("class", [])]


def test_set_current_moves_emphasis_and_scrolls() -> None:
    doc, markers, cursor = _cursor_for("<p>one x two x three x</p>", "x")

    cursor.set_current(0)
    cursor.set_current(2)

    assert _current_markers(markers) == [2]
    assert doc.scroll_target is markers[2]
    assert doc.emphasis_calls == [("x", True), ("x", False), ("x", True)]
    assert len(doc.scroll_calls) == 2


def test_set_current_out_of_range_raises() -> None:
    _doc, _markers, cursor = _cursor_for("<p>x x</p>", "x")
    with pytest.raises(IndexError):
        cursor.set_current(2)
    with pytest.raises(IndexError):
        cursor.set_current(-1)


def test_empty_cursor_is_inert() -> None:
    doc, markers, cursor = _cursor_for("<p>nothing</p>", "x")
    assert markers == []
    cursor.set_current(5)
    assert cursor.next() == NO_MATCHES
    assert cursor.previous() == NO_MATCHES
    assert cursor.position() == NO_MATCHES
    assert doc.scroll_calls == []


def test_next_wraps_around() -> None:
    _doc, markers, cursor = _cursor_for("<p>x x x</p>", "x")
    cursor.set_current(0)

    assert cursor.next() == SearchResult(2, 3)
    assert cursor.next() == SearchResult(3, 3)
    assert cursor.next() == SearchResult(1, 3)
    assert _current_markers(markers) == [0]


def test_previous_from_first_lands_on_last() -> None:
    _doc, markers, cursor = _cursor_for("<p>x x x x</p>", "x")
    cursor.set_current(0)

    assert cursor.previous() == SearchResult(4, 4)
    assert cursor.previous() == SearchResult(3, 4)
    assert _current_markers(markers) == [2]


def test_single_match_stays_put() -> None:
    _doc, markers, cursor = _cursor_for("<p>only x here</p>", "x")
    cursor.set_current(0)
    assert cursor.next() == SearchResult(1, 1)
    assert cursor.previous() == SearchResult(1, 1)
    assert _current_markers(markers) == [0]
