"""Tests for core.settings helpers."""

from __future__ import annotations

import json
from pathlib import Path

from core.settings import api_settings, backup_settings, load_settings, merge_defaults, save_settings


def test_merge_defaults_includes_backup_block() -> None:
    merged = merge_defaults({})

    assert merged["backup"] == {"directory": "backups", "share_dir": "exports"}
    assert merged["api"]["host"] == "127.0.0.1"
    assert merged["api"]["api_key"] is None


def test_load_settings_keeps_overrides_and_fills_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"backup": {"directory": "respaldos"}, "api": {"port": 9000}}), encoding="utf-8")

    loaded = load_settings(tmp_path)

    assert loaded["backup"]["directory"] == "respaldos"
    assert loaded["backup"]["share_dir"] == "exports"
    assert loaded["api"]["port"] == 9000
    assert loaded["working_dir"] == str(tmp_path)


def test_save_settings_writes_merged_payload(tmp_path: Path) -> None:
    save_settings({"api": {"api_key": "secret"}}, tmp_path)

    saved = json.loads((tmp_path / "settings.json").read_text(encoding="utf-8"))

    assert saved["api"]["api_key"] == "secret"
    assert saved["api"]["cors_origins"] == ["http://localhost", "http://127.0.0.1"]
    assert saved["version"] == 1


def test_unreadable_settings_fall_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / "settings.json").write_text("{broken", encoding="utf-8")

    loaded = load_settings(tmp_path)

    assert loaded["backup"]["directory"] == "backups"


def test_section_helpers_normalise_values() -> None:
    assert backup_settings({"backup": {"directory": "  "}}) == {"directory": "backups", "share_dir": "exports"}

    api = api_settings({"api": {"port": "99999", "api_key": " k ", "cors_origins": "nope"}})
    assert api["port"] == 8765
    assert api["api_key"] == "k"
    assert api["cors_origins"] == ["http://localhost", "http://127.0.0.1"]
