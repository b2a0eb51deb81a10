"""Directory scan producing the markdown-only browse tree."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

MARKDOWN_SUFFIXES = frozenset({".md", ".markdown"})


@dataclass
class FileItem:
    path: Path
    is_dir: bool
    children: list[FileItem] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def is_markdown(self) -> bool:
        return not self.is_dir and is_markdown_path(self.path)


def is_markdown_path(path: Path) -> bool:
    return path.suffix.lower() in MARKDOWN_SUFFIXES


def _sort_key(item: FileItem) -> tuple[bool, str, str]:
    # Directories first, then case-insensitive name with a stable tiebreak.
    return (not item.is_dir, item.name.casefold(), item.name)


def build_tree(root: Path) -> list[FileItem]:
    """Return markdown files under ``root``; directories without any are pruned."""
    try:
        entries = list(root.iterdir())
    except OSError as exc:
        logger.debug("Skipping unreadable directory {}: {}", root, exc)
        return []

    items: list[FileItem] = []
    for entry in entries:
        if entry.name.startswith("."):
            continue
        try:
            if entry.is_dir():
                if entry.is_symlink():
                    # Avoid cycles through linked directories.
                    continue
                children = build_tree(entry)
                if children:
                    items.append(FileItem(entry, True, children))
            elif entry.is_file() and is_markdown_path(entry):
                items.append(FileItem(entry, False))
        except OSError:
            # Entries can vanish or become inaccessible mid-scan.
            continue
    items.sort(key=_sort_key)
    return items


def first_markdown_file(items: Iterable[FileItem]) -> FileItem | None:
    """Depth-first search for the first file in display order."""
    for item in items:
        if item.is_markdown:
            return item
        found = first_markdown_file(item.children)
        if found is not None:
            return found
    return None


def count_markdown_files(items: Iterable[FileItem]) -> int:
    return sum(1 if item.is_markdown else count_markdown_files(item.children) for item in items)
