#!/usr/bin/env python3
"""mdview: browse a directory of markdown files with live preview and search."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger
from PySide6.QtCore import QObject, QRunnable, Qt, QThreadPool, QTimer, QUrl, Signal
from PySide6.QtGui import QAction, QStandardItem, QStandardItemModel
from PySide6.QtPrintSupport import QPrintDialog, QPrinter
from PySide6.QtWebEngineCore import QWebEngineSettings
from PySide6.QtWebEngineWidgets import QWebEngineView
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSizePolicy,
    QSplitter,
    QStyle,
    QTreeView,
    QVBoxLayout,
    QWidget,
)

from mdview.bridge import PendingPage, focus_message, is_ack, replace_message, script_for
from mdview.config import (
    FILE_WATCH_INTERVAL_MS,
    SEARCH_DEBOUNCE_MS,
    config_file_path,
    load_default_root,
    save_default_root,
)
from mdview.document import SoupDocument
from mdview.filetree import FileItem, build_tree, count_markdown_files, first_markdown_file
from mdview.logging_config import configure_logging
from mdview.pdf import stamp_page_numbers
from mdview.renderer import MarkdownRenderer, placeholder_html
from mdview.search import NO_MATCHES, SearchController, SearchResult
from mdview.watcher import FileWatcher, WatchEvent

PATH_ROLE = Qt.ItemDataRole.UserRole + 1


def _path_key(path: Path) -> str:
    try:
        return str(path.resolve())
    except OSError:
        return str(path)


class TreeScanWorkerSignals(QObject):
    """Signals emitted by background directory scans."""

    finished = Signal(int, str, object)


class TreeScanWorker(QRunnable):
    """Build the markdown file tree off the UI thread."""

    def __init__(self, root: Path, request_id: int):
        super().__init__()
        self.root = root
        self.request_id = request_id
        self.signals = TreeScanWorkerSignals()

    def run(self) -> None:
        items = build_tree(self.root)
        self.signals.finished.emit(self.request_id, str(self.root), items)


class PreviewRenderWorkerSignals(QObject):
    """Signals emitted by background preview rendering workers."""

    finished = Signal(int, str, str, object, object, str)


class PreviewRenderWorker(QRunnable):
    """Render markdown HTML in a worker thread to keep UI responsive."""

    def __init__(self, path: Path, request_id: int):
        super().__init__()
        self.path = path
        self.request_id = request_id
        self.signals = PreviewRenderWorkerSignals()

    def run(self) -> None:
        try:
            resolved = self.path.resolve()
            stat = resolved.stat()
            markdown_text = resolved.read_text(encoding="utf-8", errors="replace")
            # One renderer per job; MarkdownIt instances are not shared across threads.
            html_doc = MarkdownRenderer().render_document(markdown_text, resolved.name)
            self.signals.finished.emit(
                self.request_id, str(resolved), html_doc, stat.st_mtime_ns, stat.st_size, ""
            )
        except Exception as exc:
            self.signals.finished.emit(self.request_id, str(self.path), "", 0, 0, str(exc))


class PdfExportWorkerSignals(QObject):
    """Signals emitted by background PDF export workers."""

    finished = Signal(str, str)


class PdfExportWorker(QRunnable):
    """Apply footer page numbers and write exported PDF in background."""

    def __init__(self, output_path: Path, pdf_bytes: bytes):
        super().__init__()
        self.output_path = output_path
        self.pdf_bytes = pdf_bytes
        self.signals = PdfExportWorkerSignals()

    def run(self) -> None:
        try:
            self.output_path.write_bytes(stamp_page_numbers(self.pdf_bytes))
            self.signals.finished.emit(str(self.output_path), "")
        except Exception as exc:
            self.signals.finished.emit(str(self.output_path), str(exc))


class MdViewWindow(QMainWindow):
    def __init__(self, root: Path, config_path: Path):
        super().__init__()
        self.root = root.resolve()
        self.config_path = config_path
        self.current_file: Path | None = None
        self.search = SearchController()
        self.watcher = FileWatcher()
        # Document parsed for the page being loaded; attached on loadFinished.
        self._pending_page = PendingPage()
        self._pending_scroll: tuple[float, float] | None = None
        self._items_by_path: dict[str, QStandardItem] = {}
        self._worker_pool = QThreadPool(self)
        self._worker_pool.setMaxThreadCount(1)
        self._scan_request_id = 0
        self._select_first_after_scan = True
        self._render_request_id = 0
        self._active_workers: set[QRunnable] = set()
        self._printer: QPrinter | None = None
        self._pdf_export_in_progress = False

        self.search_timer = QTimer(self)
        self.search_timer.setSingleShot(True)
        self.search_timer.setInterval(SEARCH_DEBOUNCE_MS)
        self.search_timer.timeout.connect(self._run_search)
        self._file_watch_timer = QTimer(self)
        self._file_watch_timer.setInterval(FILE_WATCH_INTERVAL_MS)
        self._file_watch_timer.timeout.connect(self._on_file_watch_tick)
        self._file_watch_timer.start()

        self.resize(1280, 860)

        self.model = QStandardItemModel(self)
        self.tree = QTreeView()
        self.tree.setModel(self.model)
        self.tree.setHeaderHidden(True)
        self.tree.setMinimumWidth(220)
        self.tree.setEditTriggers(QTreeView.EditTrigger.NoEditTriggers)
        self.tree.selectionModel().currentChanged.connect(self._on_tree_selection_changed)

        self.preview = QWebEngineView()
        preview_settings = self.preview.settings()
        preview_settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, True)
        if hasattr(QWebEngineSettings.WebAttribute, "PrintElementBackgrounds"):
            preview_settings.setAttribute(QWebEngineSettings.WebAttribute.PrintElementBackgrounds, True)
        self.preview.loadFinished.connect(self._on_preview_load_finished)
        self.preview.printFinished.connect(self._on_print_finished)

        open_btn = QPushButton("Open...")
        open_btn.clicked.connect(self._choose_root_directory)
        refresh_btn = QPushButton("Refresh")
        refresh_btn.clicked.connect(self._refresh)
        print_btn = QPushButton("Print")
        print_btn.clicked.connect(self._print_current_preview)
        self.pdf_btn = QPushButton("PDF")
        self.pdf_btn.clicked.connect(self._export_current_preview_pdf)

        self.path_label = QLabel("")

        self.search_input = QLineEdit()
        self.search_input.setPlaceholderText("Find in document")
        self.search_input.setClearButtonEnabled(True)
        self.search_input.setMinimumWidth(220)
        self.search_input.textChanged.connect(self._on_search_text_changed)
        self.search_input.returnPressed.connect(self._on_search_return)
        prev_btn = QPushButton("<")
        prev_btn.setToolTip("Previous match (Shift+F3)")
        prev_btn.setFixedWidth(28)
        prev_btn.clicked.connect(self._find_previous)
        next_btn = QPushButton(">")
        next_btn.setToolTip("Next match (F3)")
        next_btn.setFixedWidth(28)
        next_btn.clicked.connect(self._find_next)
        self.match_label = QLabel("")
        self.match_label.setMinimumWidth(80)

        top_bar = QHBoxLayout()
        top_bar.setContentsMargins(0, 0, 0, 0)
        top_bar.addWidget(open_btn)
        top_bar.addWidget(refresh_btn)
        top_bar.addWidget(print_btn)
        top_bar.addWidget(self.pdf_btn)
        top_bar.addWidget(self.path_label, 1)
        top_bar.addWidget(self.search_input)
        top_bar.addWidget(prev_btn)
        top_bar.addWidget(next_btn)
        top_bar.addWidget(self.match_label)

        top_bar_widget = QWidget()
        top_bar_widget.setLayout(top_bar)
        top_bar_widget.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)

        self.splitter = QSplitter(Qt.Horizontal)
        self.splitter.addWidget(self.tree)
        self.splitter.addWidget(self.preview)
        self.splitter.setChildrenCollapsible(False)
        self.splitter.setStretchFactor(0, 1)
        self.splitter.setStretchFactor(1, 3)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.addWidget(top_bar_widget)
        layout.addWidget(self.splitter, 1)
        self.setCentralWidget(central)

        self.preview.setHtml(placeholder_html("Select a markdown file to preview it."))
        self.statusBar().showMessage("Ready")
        self._add_shortcuts()
        self._set_root_directory(self.root)

    def _add_shortcuts(self) -> None:
        """Register window-level keyboard shortcuts."""
        bindings = [
            ("Open folder", "Ctrl+O", self._choose_root_directory),
            ("Refresh", "F5", self._refresh),
            ("Find", "Ctrl+F", self._focus_search),
            ("Find next", "F3", self._find_next),
            ("Find previous", "Shift+F3", self._find_previous),
            ("Clear search", "Escape", self._clear_search_input),
            ("Print", "Ctrl+P", self._print_current_preview),
            ("Export PDF", "Ctrl+E", self._export_current_preview_pdf),
        ]
        for label, shortcut, handler in bindings:
            action = QAction(label, self)
            action.setShortcut(shortcut)
            action.triggered.connect(handler)
            self.addAction(action)

    # Directory tree

    def _choose_root_directory(self, _checked: bool = False) -> None:
        chosen = QFileDialog.getExistingDirectory(self, "Choose a folder", str(self.root))
        if chosen:
            self._set_root_directory(Path(chosen))
            save_default_root(self.root, self.config_path)

    def _set_root_directory(self, new_root: Path) -> None:
        self.root = new_root.resolve()
        self.setWindowTitle(f"mdview - {self.root}")
        self._scan_tree(select_first=True)

    def _scan_tree(self, *, select_first: bool) -> None:
        self._scan_request_id += 1
        self._select_first_after_scan = select_first
        worker = TreeScanWorker(self.root, self._scan_request_id)
        self._active_workers.add(worker)
        worker.signals.finished.connect(
            lambda request_id, root_text, items, w=worker: self._on_tree_scanned(w, request_id, root_text, items)
        )
        self.statusBar().showMessage(f"Scanning {self.root}...")
        self._worker_pool.start(worker)

    def _on_tree_scanned(self, worker: TreeScanWorker, request_id: int, root_text: str, items: list[FileItem]) -> None:
        self._active_workers.discard(worker)
        if request_id != self._scan_request_id:
            return
        self.model.clear()
        self._items_by_path = {}
        self._populate(self.model.invisibleRootItem(), items)
        self.statusBar().showMessage(f"{count_markdown_files(items)} markdown file(s) in {root_text}", 3500)

        if self.current_file is not None and _path_key(self.current_file) in self._items_by_path:
            self._select_path(self.current_file, load=False)
        elif self._select_first_after_scan:
            first = first_markdown_file(items)
            if first is not None:
                self._select_path(first.path, load=True)
            else:
                self._show_placeholder(f"No markdown files under {root_text}")

    def _populate(self, parent: QStandardItem, items: list[FileItem]) -> None:
        dir_icon = self.style().standardIcon(QStyle.StandardPixmap.SP_DirIcon)
        file_icon = self.style().standardIcon(QStyle.StandardPixmap.SP_FileIcon)
        for item in items:
            row = QStandardItem(dir_icon if item.is_dir else file_icon, item.name)
            row.setData(str(item.path), PATH_ROLE)
            parent.appendRow(row)
            self._items_by_path[_path_key(item.path)] = row
            if item.is_dir:
                self._populate(row, item.children)

    def _select_path(self, path: Path, *, load: bool) -> None:
        row = self._items_by_path.get(_path_key(path))
        if row is None:
            return
        index = row.index()
        parent = index.parent()
        while parent.isValid():
            self.tree.expand(parent)
            parent = parent.parent()
        if not load:
            self.tree.selectionModel().blockSignals(True)
        try:
            self.tree.setCurrentIndex(index)
        finally:
            self.tree.selectionModel().blockSignals(False)
        self.tree.scrollTo(index)

    def _on_tree_selection_changed(self, current, _previous) -> None:
        path_text = current.data(PATH_ROLE) if current.isValid() else None
        if not path_text:
            return
        path = Path(path_text)
        if path.is_dir():
            return
        if self.current_file is not None and _path_key(path) == _path_key(self.current_file):
            return
        self._load_preview(path)

    def _refresh(self, _checked: bool = False) -> None:
        self._scan_tree(select_first=self.current_file is None)
        if self.current_file is not None:
            self._reload_current_preview(reason=None)

    # Preview loading

    def _load_preview(self, path: Path) -> None:
        self.current_file = path
        self._pending_scroll = None
        try:
            self.path_label.setText(str(path.relative_to(self.root)))
        except ValueError:
            self.path_label.setText(str(path))
        self.statusBar().showMessage(f"Rendering {path.name}...")
        self._start_render(path)

    def _reload_current_preview(self, *, reason: str | None) -> None:
        if self.current_file is None:
            return
        position = self.preview.page().scrollPosition()
        self._pending_scroll = (position.x(), position.y())
        self._start_render(self.current_file)
        if reason:
            self.statusBar().showMessage(f"Reloading {self.current_file.name} ({reason})...")

    def _start_render(self, path: Path) -> None:
        self._render_request_id += 1
        worker = PreviewRenderWorker(path, self._render_request_id)
        self._active_workers.add(worker)
        worker.signals.finished.connect(
            lambda *args, w=worker: self._on_preview_render_finished(w, *args)
        )
        self._worker_pool.start(worker)

    def _on_preview_render_finished(
        self,
        worker: PreviewRenderWorker,
        request_id: int,
        path_key: str,
        html_doc: str,
        mtime_ns: int,
        size: int,
        error_text: str,
    ) -> None:
        """Apply finished background render if it is still the active request."""
        self._active_workers.discard(worker)
        if request_id != self._render_request_id or self.current_file is None:
            return
        if _path_key(self.current_file) != path_key:
            return

        if error_text:
            logger.warning("Preview render failed for {}: {}", path_key, error_text)
            self.watcher.stop()
            self._show_placeholder(f"Could not render preview for {self.current_file.name}: {error_text}")
            self.statusBar().showMessage(f"Preview render failed: {error_text}", 5000)
            return

        self._install_document(html_doc, self.current_file)
        self.watcher.watch(Path(path_key), (int(mtime_ns), int(size)))
        self.statusBar().showMessage(f"Preview rendered: {self.current_file.name}", 3000)

    def _install_document(self, html_doc: str, path: Path) -> None:
        # Old markers belong to the tree about to be discarded.
        self.search.detach()
        document = SoupDocument(html_doc)
        self._pending_page.stage(document)
        base_url = QUrl.fromLocalFile(f"{path.parent.resolve()}/")
        # The page loads the parsed tree so it starts out identical to it.
        self.preview.setHtml(document.to_html(), base_url)

    def _show_placeholder(self, message: str) -> None:
        self.search.detach()
        self._pending_page.stage(None)
        self.preview.setHtml(placeholder_html(message))
        self._show_search_result(NO_MATCHES)

    def _on_preview_load_finished(self, ok: bool) -> None:
        if not ok:
            # Also emitted for a load aborted by a newer setHtml.
            logger.debug("Preview page load did not finish for {}", self.current_file)
            return
        document = self._pending_page.take(ok)
        if document is None:
            return
        self.search.attach(document)
        if self._pending_scroll is not None:
            x, y = self._pending_scroll
            self._pending_scroll = None
            self.preview.page().runJavaScript(f"window.scrollTo({float(x)}, {float(y)});")
        if self.search_input.text().strip():
            self._run_search(scroll=False)
        else:
            self._show_search_result(NO_MATCHES)

    def _on_file_watch_tick(self) -> None:
        """Auto-refresh preview when the active markdown file changes on disk."""
        event = self.watcher.poll()
        if event is WatchEvent.CHANGED:
            self._reload_current_preview(reason="file changed on disk")
        elif event is WatchEvent.MISSING and self.current_file is not None:
            # Keep the last rendering visible; stop following the path.
            self.statusBar().showMessage(f"File no longer exists: {self.current_file}")
            self.path_label.setText(f"{self.path_label.text()} (deleted)")

    # In-page search

    def _focus_search(self, _checked: bool = False) -> None:
        self.search_input.setFocus()
        self.search_input.selectAll()

    def _on_search_text_changed(self, text: str) -> None:
        """Debounce typing before re-highlighting the preview."""
        if not text.strip():
            self.search_timer.stop()
            self._clear_search()
            return
        self.search_timer.start()

    def _on_search_return(self) -> None:
        self.search_timer.stop()
        if self.search.session.active and self.search.session.query == self.search_input.text():
            self._find_next()
        else:
            self._run_search()

    def _clear_search_input(self, _checked: bool = False) -> None:
        self.search_timer.stop()
        self.search_input.clear()
        self._clear_search()

    def _run_search(self, scroll: bool = True) -> None:
        document = self.search.document
        if document is None:
            self._show_search_result(NO_MATCHES)
            return
        result = self.search.search(self.search_input.text())
        self._post_to_page(replace_message(document, scroll=scroll))
        self._show_search_result(result)

    def _find_next(self, _checked: bool = False) -> None:
        self._move_cursor(self.search.next())

    def _find_previous(self, _checked: bool = False) -> None:
        self._move_cursor(self.search.previous())

    def _move_cursor(self, result: SearchResult) -> None:
        document = self.search.document
        if document is not None and result.total:
            self._post_to_page(focus_message(document))
        self._show_search_result(result)

    def _clear_search(self) -> None:
        document = self.search.document
        was_active = self.search.session.active
        self.search.clear()
        if document is not None and was_active:
            self._post_to_page(replace_message(document))
        self._show_search_result(NO_MATCHES)

    def _post_to_page(self, message: dict) -> None:
        generation = self._pending_page.generation
        self.preview.page().runJavaScript(
            script_for(message),
            lambda result, g=generation: self._on_bridge_reply(g, result),
        )

    def _on_bridge_reply(self, generation: int, result) -> None:
        if is_ack(result) or generation != self._pending_page.generation:
            return
        logger.warning("Preview rejected search update (reply: {!r}); clearing search", result)
        document = self.search.document
        self.search.clear()
        if document is not None:
            # Best-effort resync; a second failure is not retried.
            self.preview.page().runJavaScript(script_for(replace_message(document)))
        self._show_search_result(NO_MATCHES)

    def _show_search_result(self, result: SearchResult) -> None:
        if not self.search_input.text().strip():
            self.match_label.setText("")
        elif result.total == 0:
            self.match_label.setText("No matches")
        else:
            self.match_label.setText(f"{result.current} of {result.total}")

    # Print and PDF

    def _print_current_preview(self, _checked: bool = False) -> None:
        if self.current_file is None:
            QMessageBox.information(self, "No file selected", "Select a markdown file before printing.")
            return
        printer = QPrinter(QPrinter.PrinterMode.HighResolution)
        printer.setDocName(self.current_file.stem)
        dialog = QPrintDialog(printer, self)
        if dialog.exec() != QPrintDialog.DialogCode.Accepted:
            return
        self._printer = printer
        self.statusBar().showMessage(f"Printing {self.current_file.name}...")
        self.preview.print(printer)

    def _on_print_finished(self, ok: bool) -> None:
        self._printer = None
        self.statusBar().showMessage("Print finished" if ok else "Print failed", 4000)

    def _export_current_preview_pdf(self, _checked: bool = False) -> None:
        """Export the current rendering to a PDF with numbered pages."""
        if self.current_file is None:
            QMessageBox.information(self, "No file selected", "Select a markdown file before exporting to PDF.")
            return
        if self._pdf_export_in_progress:
            self.statusBar().showMessage("PDF export already in progress", 3000)
            return
        suggested = str(self.current_file.with_suffix(".pdf"))
        chosen, _filter = QFileDialog.getSaveFileName(self, "Export PDF", suggested, "PDF files (*.pdf)")
        if not chosen:
            return
        output_path = Path(chosen)
        self._set_pdf_export_busy(True)
        self.statusBar().showMessage(f"Rendering PDF: {output_path.name}...")
        self.preview.page().printToPdf(lambda pdf_data, target=output_path: self._on_pdf_render_ready(target, pdf_data))

    def _set_pdf_export_busy(self, busy: bool) -> None:
        self._pdf_export_in_progress = busy
        self.pdf_btn.setEnabled(not busy)

    def _on_pdf_render_ready(self, output_path: Path, pdf_data) -> None:
        raw_pdf = bytes(pdf_data) if pdf_data is not None else b""
        if not raw_pdf:
            self._on_pdf_export_finished(None, str(output_path), "Qt WebEngine returned an empty PDF payload")
            return
        worker = PdfExportWorker(output_path, raw_pdf)
        self._active_workers.add(worker)
        worker.signals.finished.connect(
            lambda path_text, error_text, w=worker: self._on_pdf_export_finished(w, path_text, error_text)
        )
        self._worker_pool.start(worker)
        self.statusBar().showMessage(f"Writing numbered PDF: {output_path.name}...")

    def _on_pdf_export_finished(self, worker: PdfExportWorker | None, output_path_text: str, error_text: str) -> None:
        self._active_workers.discard(worker)
        self._set_pdf_export_busy(False)
        if error_text:
            logger.error("PDF export to {} failed: {}", output_path_text, error_text)
            QMessageBox.critical(self, "PDF export failed", f"Could not create PDF:\n{output_path_text}\n\n{error_text}")
            self.statusBar().showMessage(f"PDF export failed: {error_text}", 5000)
            return
        self.statusBar().showMessage(f"Exported PDF: {output_path_text}", 5000)

    def closeEvent(self, event) -> None:  # noqa: N802
        self._file_watch_timer.stop()
        self.watcher.stop()
        self.search.detach()
        save_default_root(self.root, self.config_path)
        super().closeEvent(event)


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="mdview",
        description="Browse markdown files with live preview, in-page search and PDF export.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Root directory to browse (default: ~/.mdview.cfg path, or home directory).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug diagnostics to stderr.")
    args = parser.parse_args()
    configure_logging(verbose=args.verbose)

    root = Path(args.path).expanduser() if args.path is not None else load_default_root()
    if not root.exists():
        print(f"Path does not exist: {root}", file=sys.stderr)
        return 2
    if not root.is_dir():
        print(f"Path is not a directory: {root}", file=sys.stderr)
        return 2

    app = QApplication(sys.argv)
    app.setApplicationName("mdview")
    window = MdViewWindow(root, config_file_path())
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
