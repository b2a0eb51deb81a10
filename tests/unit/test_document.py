"""Tests for the BeautifulSoup-backed document model."""

import pytest

from mdview.document import (
    AUTHOR_MARKER_ATTR,
    CURRENT_CLASS,
    MARKER_ATTR,
    MARKER_CLASS,
    DocumentConsistencyError,
    DocumentModel,
    SoupDocument,
    is_marker,
)
from mdview.search import SearchController


def test_soup_document_satisfies_protocol(cat_document: SoupDocument) -> None:
    assert isinstance(cat_document, DocumentModel)


def test_root_prefers_main_then_body() -> None:
    with_main = SoupDocument("<html><body><nav>menu</nav><main><p>x</p></main></body></html>")
    assert with_main.root.name == "main"
    without_main = SoupDocument("<html><body><p>x</p></body></html>")
    assert without_main.root.name == "body"


def test_text_nodes_skip_scripts_styles_and_comments(make_document) -> None:
    doc = make_document("<p>one<!-- two --></p><script>three</script><style>four</style><textarea>five</textarea>")
    assert [doc.text_of(node) for node in doc.text_nodes()] == ["one"]


def test_text_nodes_are_depth_first(make_document) -> None:
    doc = make_document("<p>a<em>b<strong>c</strong></em>d</p><p>e</p>")
    assert [doc.text_of(node) for node in doc.text_nodes()] == ["a", "b", "c", "d", "e"]


def test_wrap_ranges_splits_text_in_one_pass(make_document) -> None:
    doc = make_document("<p>abcdef</p>")
    node = next(doc.text_nodes())
    markers = doc.wrap_ranges(node, [(0, 2), (3, 4)])

    assert [m.get_text() for m in markers] == ["ab", "d"]
    paragraph = doc.root.find("p")
    assert [str(part) if not is_marker(part) else f"[{part.get_text()}]" for part in paragraph.contents] == [
        "[ab]",
        "c",
        "[d]",
        "ef",
    ]
    assert all(m["class"] == [MARKER_CLASS] and m[MARKER_ATTR] == "1" for m in markers)


def test_wrap_ranges_rejects_detached_node(make_document) -> None:
    doc = make_document("<p>abc</p>")
    node = next(doc.text_nodes())
    node.extract()
    with pytest.raises(DocumentConsistencyError):
        doc.wrap_ranges(node, [(0, 1)])


def test_wrap_ranges_rejects_overlapping_ranges(make_document) -> None:
    doc = make_document("<p>abcdef</p>")
    node = next(doc.text_nodes())
    with pytest.raises(DocumentConsistencyError):
        doc.wrap_ranges(node, [(0, 3), (2, 4)])


def test_unwrap_merges_text_back_into_one_node(make_document) -> None:
    doc = make_document("<p>abcdef</p>")
    original = doc.to_html()
    markers = doc.wrap_ranges(next(doc.text_nodes()), [(1, 2), (4, 5)])

    for marker in markers:
        doc.unwrap(marker)

    paragraph = doc.root.find("p")
    assert len(paragraph.contents) == 1
    assert str(paragraph.contents[0]) == "abcdef"
    assert doc.to_html() == original


def test_unwrap_detached_marker_raises(make_document) -> None:
    doc = make_document("<p>abc</p>")
    [marker] = doc.wrap_ranges(next(doc.text_nodes()), [(0, 1)])
    marker.extract()
    with pytest.raises(DocumentConsistencyError):
        doc.unwrap(marker)


def test_set_emphasis_toggles_current_class(make_document) -> None:
    doc = make_document("<p>abc</p>")
    [marker] = doc.wrap_ranges(next(doc.text_nodes()), [(0, 1)])

    doc.set_emphasis(marker, True)
    assert marker["class"] == [MARKER_CLASS, CURRENT_CLASS]
    doc.set_emphasis(marker, True)
    assert marker["class"].count(CURRENT_CLASS) == 1
    doc.set_emphasis(marker, False)
    assert marker["class"] == [MARKER_CLASS]


def test_find_markers_and_marker_index(make_document) -> None:
    doc = make_document("<p>aXa</p><p>a</p>")
    first, second = doc.text_nodes()
    late = doc.wrap_ranges(second, [(0, 1)])
    early = doc.wrap_ranges(first, [(0, 1), (2, 3)])

    found = doc.find_markers()
    assert [id(m) for m in found] == [id(m) for m in early + late]
    assert doc.marker_index(late[0]) == 2
    assert doc.marker_index(None) is None


def test_visible_text_includes_markers_excludes_scripts(make_document) -> None:
    doc = make_document("<p>cat <em>dog</em></p><script>hidden</script>")
    doc.wrap_ranges(next(doc.text_nodes()), [(0, 3)])
    assert doc.visible_text() == "cat dog"


def test_scroll_into_view_records_target(make_document) -> None:
    doc = make_document("<p>abc</p>")
    [marker] = doc.wrap_ranges(next(doc.text_nodes()), [(0, 1)])
    doc.scroll_into_view(marker)
    assert doc.scroll_target is marker


def test_root_html_serializes_main_children_only(make_document) -> None:
    doc = make_document("<p>abc</p>")
    assert doc.root_html() == "<p>abc</p>"


def test_author_written_marker_attribute_is_not_a_marker(make_document) -> None:
    doc = make_document(f'<p><span class="note" {MARKER_ATTR}="1">cat</span> cat</p>')
    author_span = doc.root.find("span", class_="note")
    assert not is_marker(author_span)
    assert author_span[AUTHOR_MARKER_ATTR] == "1"
    assert doc.find_markers() == []

    controller = SearchController(doc)
    assert controller.search("cat").total == 2
    controller.clear()

    assert doc.root.find("span", class_="note") is author_span
    assert author_span.get_text() == "cat"
