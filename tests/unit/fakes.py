"""Fake documents and page builders for exercising the search engine."""

from collections.abc import Sequence

from bs4 import NavigableString, Tag

from mdview.document import DocumentConsistencyError, SoupDocument

PAGE = """<!doctype html>
<html>
<head>
<title>cat page</title>
<style>.cat {{ color: red; }}</style>
<script>var cat = "cat";</script>
</head>
<body>
<main>{body}</main>
</body>
</html>
"""


def page(body: str) -> str:
    """Full HTML page whose <main> holds ``body``; head text mentions "cat"."""
    return PAGE.format(body=body)


class RecordingDocument(SoupDocument):
    """SoupDocument that records emphasis and scroll requests."""

    def __init__(self, html_doc: str) -> None:
        super().__init__(html_doc)
        self.emphasis_calls: list[tuple[str, bool]] = []
        self.scroll_calls: list[str] = []

    def set_emphasis(self, marker: Tag, current: bool) -> None:
        self.emphasis_calls.append((marker.get_text(), current))
        super().set_emphasis(marker, current)

    def scroll_into_view(self, marker: Tag) -> None:
        self.scroll_calls.append(marker.get_text())
        super().scroll_into_view(marker)


class MutatedDocument(SoupDocument):
    """Simulates an out-of-band mutation landing between scan and apply."""

    def wrap_ranges(self, node: NavigableString, ranges: Sequence[tuple[int, int]]) -> list[Tag]:
        raise DocumentConsistencyError("tree changed during apply")
