"""Messages that mirror search state from the Python document into the page.

Only JSON payloads cross into the page; the receiving function is fixed and
shipped with every rendered document.
"""

from __future__ import annotations

import json

from mdview.document import CURRENT_CLASS, MARKER_ATTR, SoupDocument

BRIDGE_SCRIPT = """
(() => {
  const markSelector = 'span[__MARKER_ATTR__="1"]';
  const currentClass = "__CURRENT_CLASS__";
  window.mdviewBridge = {
    receive(message) {
      if (!message || typeof message !== "object") return false;
      const root = document.querySelector("main") || document.body;
      if (!root) return false;
      if (message.op === "replace") {
        if (typeof message.html !== "string") return false;
        root.innerHTML = message.html;
      } else if (message.op !== "focus") {
        return false;
      }
      const marks = root.querySelectorAll(markSelector);
      for (const mark of marks) {
        mark.classList.remove(currentClass);
      }
      if (typeof message.current === "number") {
        const mark = marks[message.current];
        if (!mark) return false;
        mark.classList.add(currentClass);
        if (message.scroll !== false) {
          mark.scrollIntoView({ behavior: "smooth", block: "center", inline: "nearest" });
        }
      }
      return true;
    },
  };
})();
""".replace("__MARKER_ATTR__", MARKER_ATTR).replace("__CURRENT_CLASS__", CURRENT_CLASS)


def replace_message(document: SoupDocument, *, scroll: bool = True) -> dict:
    """Full searchable-root content plus the current marker ordinal."""
    return {
        "op": "replace",
        "html": document.root_html(),
        "current": document.marker_index(document.scroll_target),
        "scroll": scroll,
    }


def focus_message(document: SoupDocument) -> dict:
    return {"op": "focus", "current": document.marker_index(document.scroll_target), "scroll": True}


def script_for(message: dict) -> str:
    """Call expression delivering ``message`` to the page bridge."""
    payload = json.dumps(message, ensure_ascii=True)
    return f"(window.mdviewBridge ? window.mdviewBridge.receive({payload}) : false);"


def is_ack(result) -> bool:
    return result is True


class PendingPage:
    """Document parsed for the page load in flight, held until it succeeds.

    ``setHtml`` aborts a load that is still running, and Qt reports the aborted
    load with ``loadFinished(False)`` after the newer load has been staged. A
    failed load therefore never consumes the staged document; only a
    successful one does.
    """

    def __init__(self) -> None:
        self.generation = 0
        self._document: SoupDocument | None = None

    def stage(self, document: SoupDocument | None) -> int:
        """Replace whatever was staged; ``None`` stages a page with no search."""
        self.generation += 1
        self._document = document
        return self.generation

    def take(self, ok: bool) -> SoupDocument | None:
        if not ok:
            return None
        document = self._document
        self._document = None
        return document
