"""Markdown to styled HTML conversion for the preview pane."""

from __future__ import annotations

import html

from markdown_it import MarkdownIt
from mdit_py_plugins.footnote import footnote_plugin
from mdit_py_plugins.tasklists import tasklists_plugin
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from mdview.bridge import BRIDGE_SCRIPT
from mdview.document import CURRENT_CLASS, MARKER_CLASS

LIGHT_CODE_STYLE = "default"
DARK_CODE_STYLE = "monokai"


def _highlight_code(code: str, lang: str, _attrs: str) -> str:
    """Pygments markup for a fenced block; empty string lets markdown-it escape it."""
    if not lang:
        return ""
    try:
        lexer = get_lexer_by_name(lang, stripnl=False)
    except ClassNotFound:
        return ""
    return highlight(code, lexer, HtmlFormatter(nowrap=True))


def _code_style_defs() -> str:
    light = HtmlFormatter(style=LIGHT_CODE_STYLE).get_style_defs("pre > code")
    dark = HtmlFormatter(style=DARK_CODE_STYLE).get_style_defs("pre > code")
    return f"{light}\n@media (prefers-color-scheme: dark) {{\n{dark}\n}}"


class MarkdownRenderer:
    """Converts CommonMark (plus tables, task lists, footnotes) to a full page."""

    def __init__(self) -> None:
        self._md = (
            MarkdownIt("commonmark", {"html": True, "highlight": _highlight_code})
            .enable("table")
            .enable("strikethrough")
        )
        self._md.use(tasklists_plugin)
        self._md.use(footnote_plugin)
        self._code_css = _code_style_defs()

    def render_body(self, markdown_text: str) -> str:
        return self._md.render(markdown_text)

    def render_document(self, markdown_text: str, title: str) -> str:
        body = self.render_body(markdown_text)
        return PAGE_TEMPLATE.format(
            title=html.escape(title),
            code_css=self._code_css,
            marker_class=MARKER_CLASS,
            current_class=CURRENT_CLASS,
            bridge_script=BRIDGE_SCRIPT,
            body=body,
        )


def placeholder_html(message: str) -> str:
    """Render an empty-state page in the preview pane."""
    return PLACEHOLDER_TEMPLATE.format(message=html.escape(message))


PAGE_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>{title}</title>
  <style>
    :root {{
      color-scheme: light dark;
      --fg: #1f2937;
      --bg: #ffffff;
      --muted: #6b7280;
      --code-bg: #f3f4f6;
      --border: #d1d5db;
      --link: #0b57d0;
      --hit-bg: rgba(250, 204, 21, 0.45);
      --current-bg: rgba(249, 115, 22, 0.6);
      --current-outline: rgba(234, 88, 12, 0.9);
    }}
    @media (prefers-color-scheme: dark) {{
      :root {{
        --fg: #e5e7eb;
        --bg: #111827;
        --muted: #9ca3af;
        --code-bg: #1f2937;
        --border: #374151;
        --link: #8ab4f8;
      }}
    }}
    html, body {{
      margin: 0;
      padding: 0;
      background: var(--bg);
      color: var(--fg);
      font-family: "Noto Sans", "DejaVu Sans", "Segoe UI", Helvetica, Arial, sans-serif;
      font-size: 16px;
      line-height: 1.6;
    }}
    main {{
      max-width: 900px;
      margin: 0 auto;
      padding: 1.2rem 1.4rem 4rem 1.4rem;
    }}
    h1, h2, h3, h4, h5, h6 {{
      margin: 1.5rem 0 1rem 0;
      font-weight: 600;
      line-height: 1.25;
    }}
    h1, h2 {{
      border-bottom: 1px solid var(--border);
      padding-bottom: 0.3em;
    }}
    a {{
      color: var(--link);
    }}
    pre, code {{
      font-family: "Noto Sans Mono", "DejaVu Sans Mono", Menlo, monospace;
      font-size: 0.9em;
    }}
    code {{
      background: var(--code-bg);
      border-radius: 4px;
      padding: 0.1rem 0.35rem;
    }}
    pre {{
      background: var(--code-bg);
      border: 1px solid var(--border);
      border-radius: 6px;
      padding: 0.8rem;
      overflow: auto;
      line-height: 1.45;
    }}
    pre > code {{
      background: transparent;
      padding: 0;
    }}
    blockquote {{
      margin: 0;
      padding: 0 1em;
      color: var(--muted);
      border-left: 0.25em solid var(--border);
    }}
    table {{
      border-collapse: collapse;
      margin-bottom: 1rem;
    }}
    th, td {{
      border: 1px solid var(--border);
      padding: 6px 13px;
    }}
    th {{
      background: var(--code-bg);
    }}
    img {{
      max-width: 100%;
    }}
    hr {{
      border: 0;
      height: 0.25em;
      background: var(--border);
      margin: 1.5rem 0;
    }}
    .task-list-item {{
      list-style-type: none;
    }}
    span.{marker_class} {{
      background-color: var(--hit-bg);
      border-radius: 2px;
    }}
    span.{marker_class}.{current_class} {{
      background-color: var(--current-bg);
      outline: 2px solid var(--current-outline);
      outline-offset: 1px;
    }}
    @media print {{
      span.{marker_class}, span.{marker_class}.{current_class} {{
        background-color: transparent;
        outline: none;
      }}
    }}
{code_css}
  </style>
  <script>{bridge_script}</script>
</head>
<body>
<main>
{body}
</main>
</body>
</html>
"""

PLACEHOLDER_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <style>
    html, body {{
      margin: 0;
      height: 100%;
      background: #0f172a;
      color: #cbd5e1;
      font-family: "Noto Sans", "DejaVu Sans", sans-serif;
    }}
    main {{
      height: 100%;
      display: grid;
      place-items: center;
      font-size: 1rem;
    }}
  </style>
</head>
<body><main>{message}</main></body>
</html>
"""
