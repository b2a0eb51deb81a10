"""Persisted settings and runtime tunables."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

CONFIG_FILE_NAME = ".mdview.cfg"
FILE_WATCH_INTERVAL_MS = 1200
SEARCH_DEBOUNCE_MS = 250
MISSING_POLLS_BEFORE_GIVE_UP = 2


def config_file_path() -> Path:
    return Path.home() / CONFIG_FILE_NAME


def load_default_root(cfg_path: Path | None = None) -> Path:
    """Resolve default root when no CLI path is provided."""
    fallback = Path.home()
    cfg_path = cfg_path or config_file_path()
    try:
        if not cfg_path.exists():
            return fallback
        raw = cfg_path.read_text(encoding="utf-8").strip()
        if not raw:
            return fallback
        candidate = Path(raw).expanduser()
        if candidate.is_dir():
            return candidate.resolve()
    except OSError as exc:
        logger.debug("Ignoring unreadable config {}: {}", cfg_path, exc)
    return fallback


def save_default_root(root: Path, cfg_path: Path | None = None) -> bool:
    """Persist the root for future no-argument launches."""
    cfg_path = cfg_path or config_file_path()
    try:
        cfg_path.write_text(str(root.resolve()) + "\n", encoding="utf-8")
    except OSError as exc:
        # Persistence failure must not block folder switches or exit.
        logger.warning("Could not save root to {}: {}", cfg_path, exc)
        return False
    return True
