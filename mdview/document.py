"""Mutable rendered-document model the in-page search operates on.

The search engine only talks to :class:`DocumentModel`. :class:`SoupDocument`
implements it over a BeautifulSoup tree parsed from the rendered preview HTML;
the preview window serializes that tree back into the embedded page after each
search operation.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from typing import Any, Protocol, runtime_checkable

from bs4 import BeautifulSoup, NavigableString, Tag

MARKER_TAG = "span"
MARKER_CLASS = "mdview-search-hit"
CURRENT_CLASS = "mdview-search-current"
MARKER_ATTR = "data-mdview-search-mark"
# Where an author-written MARKER_ATTR is moved so only search creates markers.
AUTHOR_MARKER_ATTR = "data-mdview-author-mark"

# Elements whose text is never rendered as document prose.
NON_SEARCHABLE_TAGS = frozenset({"script", "style", "noscript", "template", "textarea"})


class DocumentConsistencyError(RuntimeError):
    """The tree changed underneath the search engine."""


@runtime_checkable
class DocumentModel(Protocol):
    """Capabilities the search engine needs from a rendered document."""

    def text_nodes(self) -> Iterator[Any]:
        """Yield searchable text nodes in depth-first, left-to-right order."""
        ...

    def text_of(self, node: Any) -> str:
        """Return the characters held by a text node."""
        ...

    def contains(self, node: Any) -> bool:
        """Return whether a node is still attached to this document."""
        ...

    def wrap_ranges(self, node: Any, ranges: Sequence[tuple[int, int]]) -> list[Any]:
        """Split a text node and wrap each sorted, disjoint range in a marker."""
        ...

    def unwrap(self, marker: Any) -> None:
        """Replace a marker by plain text merged with its text neighbours."""
        ...

    def find_markers(self) -> list[Any]:
        """Return markers present in the document, in document order."""
        ...

    def set_emphasis(self, marker: Any, current: bool) -> None:
        """Add or remove the current-match emphasis on a marker."""
        ...

    def scroll_into_view(self, marker: Any) -> None:
        """Ask the host to bring a marker to the vertical center of the view."""
        ...


def _is_text(node: Any) -> bool:
    # Comment, Doctype, CData and friends subclass NavigableString.
    return type(node) is NavigableString


def is_marker(node: Any) -> bool:
    return isinstance(node, Tag) and node.name == MARKER_TAG and node.get(MARKER_ATTR) == "1"


class SoupDocument:
    """DocumentModel over a parsed HTML page."""

    def __init__(self, html_doc: str) -> None:
        self._soup = BeautifulSoup(html_doc, "html.parser")
        for tag in self._soup.find_all(attrs={MARKER_ATTR: True}):
            tag[AUTHOR_MARKER_ATTR] = tag.attrs.pop(MARKER_ATTR)
        self.scroll_target: Tag | None = None

    @property
    def root(self) -> Tag:
        """Searchable subtree: ``<main>``, else ``<body>``, else the whole page."""
        for candidate in (self._soup.find("main"), self._soup.body):
            if candidate is not None:
                return candidate
        return self._soup

    def text_nodes(self) -> Iterator[NavigableString]:
        yield from self._walk(self.root, skip_markers=True)

    def _walk(self, element: Tag, *, skip_markers: bool) -> Iterator[NavigableString]:
        # Snapshot children so callers may mutate between yields.
        for child in list(element.contents):
            if _is_text(child):
                yield child
            elif isinstance(child, Tag):
                if child.name in NON_SEARCHABLE_TAGS:
                    continue
                if skip_markers and is_marker(child):
                    continue
                yield from self._walk(child, skip_markers=skip_markers)

    def text_of(self, node: NavigableString) -> str:
        return str(node)

    def contains(self, node: Any) -> bool:
        return any(parent is self._soup for parent in node.parents)

    def wrap_ranges(self, node: NavigableString, ranges: Sequence[tuple[int, int]]) -> list[Tag]:
        if not self.contains(node):
            raise DocumentConsistencyError("text node is no longer attached to the document")
        text = str(node)
        fragments: list[NavigableString | Tag] = []
        markers: list[Tag] = []
        cursor = 0
        for start, end in ranges:
            if start < cursor or end <= start or end > len(text):
                raise DocumentConsistencyError(f"invalid range {start}:{end} for text of length {len(text)}")
            if start > cursor:
                fragments.append(NavigableString(text[cursor:start]))
            marker = self._soup.new_tag(MARKER_TAG)
            marker["class"] = [MARKER_CLASS]
            marker[MARKER_ATTR] = "1"
            marker.string = text[start:end]
            fragments.append(marker)
            markers.append(marker)
            cursor = end
        if cursor < len(text):
            fragments.append(NavigableString(text[cursor:]))
        for fragment in fragments:
            node.insert_before(fragment)
        node.extract()
        return markers

    def unwrap(self, marker: Tag) -> None:
        if marker.parent is None or not self.contains(marker):
            raise DocumentConsistencyError("marker is no longer attached to the document")
        replacement = NavigableString(marker.get_text())
        marker.replace_with(replacement)
        self._merge_text_neighbours(replacement)

    @staticmethod
    def _merge_text_neighbours(node: NavigableString) -> None:
        text = str(node)
        first = node
        while _is_text(first.previous_sibling):
            first = first.previous_sibling
            text = str(first) + text
        last = node
        while _is_text(last.next_sibling):
            last = last.next_sibling
            text += str(last)
        if first is node and last is node:
            if not text:
                node.extract()
            return
        merged = NavigableString(text)
        first.insert_before(merged)
        current = first
        while True:
            following = current.next_sibling
            current.extract()
            if current is last:
                break
            current = following

    def find_markers(self) -> list[Tag]:
        return [tag for tag in self._soup.find_all(MARKER_TAG) if is_marker(tag)]

    def set_emphasis(self, marker: Tag, current: bool) -> None:
        classes = [name for name in marker.get("class", []) if name != CURRENT_CLASS]
        if current:
            classes.append(CURRENT_CLASS)
        marker["class"] = classes

    def scroll_into_view(self, marker: Tag) -> None:
        # The embedded page does the actual scrolling when the preview
        # bridge forwards the focus message.
        self.scroll_target = marker

    def marker_index(self, marker: Tag | None) -> int | None:
        """Ordinal of a marker among all markers, as the page will see them."""
        if marker is None:
            return None
        for index, candidate in enumerate(self.find_markers()):
            if candidate is marker:
                return index
        return None

    def visible_text(self) -> str:
        """Concatenated text of the searchable root, marker content included."""
        return "".join(str(node) for node in self._walk(self.root, skip_markers=False))

    def root_html(self) -> str:
        """Serialize the children of the searchable root."""
        return self.root.decode_contents()

    def to_html(self) -> str:
        return str(self._soup)
