"""Polling change detection for the file shown in the preview."""

from __future__ import annotations

import enum
from pathlib import Path

from loguru import logger

from mdview.config import MISSING_POLLS_BEFORE_GIVE_UP


class WatchEvent(enum.Enum):
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    MISSING = "missing"


def file_signature(path: Path) -> tuple[int, int]:
    stat = path.stat()
    return int(stat.st_mtime_ns), int(stat.st_size)


class FileWatcher:
    """Compares the watched file's (mtime_ns, size) between polls.

    A single failed stat is tolerated because editors often save by
    replacing the file; after ``missing_limit`` consecutive failures the
    watcher reports MISSING once and stops watching.
    """

    def __init__(self, missing_limit: int = MISSING_POLLS_BEFORE_GIVE_UP) -> None:
        self.missing_limit = max(1, missing_limit)
        self._path: Path | None = None
        self._signature: tuple[int, int] | None = None
        self._missing_polls = 0

    @property
    def path(self) -> Path | None:
        return self._path

    def watch(self, path: Path, signature: tuple[int, int] | None = None) -> None:
        self._path = path
        self._missing_polls = 0
        if signature is None:
            try:
                signature = file_signature(path)
            except OSError:
                signature = None
        self._signature = signature

    def stop(self) -> None:
        self._path = None
        self._signature = None
        self._missing_polls = 0

    def poll(self) -> WatchEvent:
        if self._path is None:
            return WatchEvent.UNCHANGED
        try:
            current = file_signature(self._path)
        except OSError:
            self._missing_polls += 1
            if self._missing_polls < self.missing_limit:
                return WatchEvent.UNCHANGED
            logger.warning("Watched file disappeared: {}", self._path)
            self.stop()
            return WatchEvent.MISSING
        self._missing_polls = 0
        if self._signature is None:
            self._signature = current
            return WatchEvent.UNCHANGED
        if current == self._signature:
            return WatchEvent.UNCHANGED
        # Update baseline first so one save does not trigger repeated reloads.
        self._signature = current
        logger.debug("Watched file changed: {}", self._path)
        return WatchEvent.CHANGED
