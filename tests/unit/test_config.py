"""Tests for persisted root configuration."""

from pathlib import Path

from mdview.config import load_default_root, save_default_root


def test_missing_config_falls_back_to_home(tmp_path: Path) -> None:
    assert load_default_root(tmp_path / "absent.cfg") == Path.home()


def test_blank_config_falls_back_to_home(tmp_path: Path) -> None:
    cfg = tmp_path / "mdview.cfg"
    cfg.write_text("  \n", encoding="utf-8")
    assert load_default_root(cfg) == Path.home()


def test_config_pointing_at_missing_directory_falls_back(tmp_path: Path) -> None:
    cfg = tmp_path / "mdview.cfg"
    cfg.write_text(str(tmp_path / "gone") + "\n", encoding="utf-8")
    assert load_default_root(cfg) == Path.home()


def test_saved_root_is_loaded_back(tmp_path: Path) -> None:
    cfg = tmp_path / "mdview.cfg"
    notes = tmp_path / "notes"
    notes.mkdir()

    assert save_default_root(notes, cfg) is True
    assert load_default_root(cfg) == notes.resolve()


def test_save_failure_is_reported_not_raised(tmp_path: Path) -> None:
    assert save_default_root(tmp_path, tmp_path / "missing-dir" / "mdview.cfg") is False
