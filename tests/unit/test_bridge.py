"""Tests for preview bridge messages."""

import json

from mdview.bridge import BRIDGE_SCRIPT, PendingPage, focus_message, is_ack, replace_message, script_for
from mdview.document import MARKER_ATTR
from mdview.search import SearchController


def test_bridge_script_has_no_unfilled_placeholders() -> None:
    assert "__" not in BRIDGE_SCRIPT
    assert MARKER_ATTR in BRIDGE_SCRIPT


def test_replace_message_carries_markers_and_current(make_document) -> None:
    doc = make_document("<p>cat and cat</p>")
    controller = SearchController(doc)
    controller.search("cat")

    message = replace_message(doc)

    assert message["op"] == "replace"
    assert message["current"] == 0
    assert message["scroll"] is True
    assert message["html"].count(f'{MARKER_ATTR}="1"') == 2


def test_focus_message_follows_cursor(make_document) -> None:
    doc = make_document("<p>cat and cat</p>")
    controller = SearchController(doc)
    controller.search("cat")
    controller.next()

    assert focus_message(doc) == {"op": "focus", "current": 1, "scroll": True}


def test_replace_after_clear_has_no_current(make_document) -> None:
    doc = make_document("<p>cat</p>")
    controller = SearchController(doc)
    controller.search("cat")
    controller.clear()

    message = replace_message(doc, scroll=False)
    assert message["current"] is None
    assert message["html"] == "<p>cat</p>"


def test_script_embeds_payload_as_json_literal() -> None:
    message = {"op": "replace", "html": "<p>'\");alert(1)// </p>", "current": None}
    script = script_for(message)

    payload = json.dumps(message, ensure_ascii=True)
    assert script == f"(window.mdviewBridge ? window.mdviewBridge.receive({payload}) : false);"


def test_only_a_true_reply_is_an_ack() -> None:
    assert is_ack(True)
    assert not is_ack(False)
    assert not is_ack(None)
    assert not is_ack(1)


def test_pending_page_survives_aborted_load(make_document) -> None:
    first, second = make_document("<p>a</p>"), make_document("<p>b</p>")
    pending = PendingPage()
    pending.stage(first)
    pending.stage(second)

    # The aborted first load reports failure after the second was staged.
    assert pending.take(False) is None
    assert pending.take(True) is second
    assert pending.take(True) is None


def test_pending_page_generation_advances_per_stage(make_document) -> None:
    pending = PendingPage()
    assert pending.stage(make_document("<p>a</p>")) == 1
    assert pending.stage(None) == 2
    assert pending.generation == 2
    assert pending.take(True) is None
