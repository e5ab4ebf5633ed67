from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

__all__ = [
    "ensure_working_dir_structure",
    "get_backups_dir",
    "get_data_dir",
    "get_default_settings_paths",
    "get_exports_dir",
    "get_logs_dir",
    "get_state_db_path",
    "resolve_working_dir",
]

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_HOME_ENV = "BURBUJAPP_HOME"


def _expand_path(value: str) -> Path:
    expanded = os.path.expandvars(os.path.expanduser(value))
    return Path(expanded).resolve()


def _ensure_writable_dir(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError:
        return False
    probe = path / f".write_test_{os.getpid()}"
    try:
        probe.write_text("ok", encoding="utf-8")
    except OSError:
        return False
    probe.unlink(missing_ok=True)
    return True


def _prepare_working_dir(candidate: Path) -> Optional[Path]:
    if not _ensure_writable_dir(candidate):
        return None
    get_data_dir(candidate).mkdir(parents=True, exist_ok=True)
    return candidate


def resolve_working_dir() -> Path:
    """Resolve the BurbujApp working directory, creating it if required."""

    env_home = os.environ.get(_HOME_ENV)
    if env_home:
        prepared = _prepare_working_dir(_expand_path(env_home))
        if prepared is not None:
            return prepared

    prepared = _prepare_working_dir(Path.home() / ".burbujapp")
    if prepared is not None:
        return prepared

    fallback = _PROJECT_ROOT / ".burbujapp"
    fallback.mkdir(parents=True, exist_ok=True)
    get_data_dir(fallback).mkdir(parents=True, exist_ok=True)
    return fallback


def get_data_dir(working_dir: Path) -> Path:
    return working_dir / "data"


def get_state_db_path(working_dir: Path) -> Path:
    return get_data_dir(working_dir) / "app_state.db"


def get_logs_dir(working_dir: Path) -> Path:
    return working_dir / "logs"


def get_backups_dir(working_dir: Path, name: str = "backups") -> Path:
    return working_dir / (name or "backups")


def get_exports_dir(working_dir: Path, name: str = "exports") -> Path:
    return working_dir / (name or "exports")


def ensure_working_dir_structure(working_dir: Path) -> None:
    for directory in (
        working_dir,
        get_data_dir(working_dir),
        get_logs_dir(working_dir),
        get_backups_dir(working_dir),
    ):
        directory.mkdir(parents=True, exist_ok=True)


def get_default_settings_paths(working_dir: Path) -> list[Path]:
    """Return the search order for settings.json files."""

    return [working_dir / "settings.json", _PROJECT_ROOT / "settings.json"]
