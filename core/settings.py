from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .paths import get_default_settings_paths

__all__ = [
    "DEFAULT_SETTINGS",
    "SETTINGS_VERSION",
    "api_settings",
    "backup_settings",
    "load_settings",
    "merge_defaults",
    "save_settings",
    "update_settings",
]

LOGGER = logging.getLogger("burbujapp.settings")

SETTINGS_VERSION = 1


DEFAULT_SETTINGS: Dict[str, Any] = {
    "version": SETTINGS_VERSION,
    "backup": {
        "directory": "backups",
        "share_dir": "exports",
    },
    "api": {
        "host": "127.0.0.1",
        "port": 8765,
        "api_key": None,
        "cors_origins": ["http://localhost", "http://127.0.0.1"],
    },
    "logging": {
        "level": "INFO",
        "json": True,
    },
}


def merge_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    def _merge(default: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in default.items():
            current = payload.get(key)
            if isinstance(value, dict):
                result[key] = _merge(value, current if isinstance(current, dict) else {})
            elif isinstance(value, list):
                result[key] = list(current) if isinstance(current, list) else list(value)
            else:
                result[key] = payload.get(key, value)
        for key, value in payload.items():
            if key not in result:
                result[key] = value
        return result

    return _merge(DEFAULT_SETTINGS, data or {})


def _apply_migrations(settings: Dict[str, Any]) -> Dict[str, Any]:
    try:
        version = int(settings.get("version"))
    except (TypeError, ValueError):
        version = 0
    if version < SETTINGS_VERSION:
        settings["version"] = SETTINGS_VERSION
    return settings


def load_settings(working_dir: Path) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for candidate in get_default_settings_paths(working_dir):
        try:
            with open(candidate, "r", encoding="utf-8") as handle:
                loaded = json.load(handle)
        except FileNotFoundError:
            continue
        except (json.JSONDecodeError, OSError) as exc:
            LOGGER.warning("Ignoring unreadable settings file %s: %s", candidate, exc)
            continue
        if isinstance(loaded, dict):
            data = loaded
            break
    merged = _apply_migrations(merge_defaults(data))
    merged.setdefault("working_dir", str(working_dir))
    return merged


def save_settings(settings: Dict[str, Any], working_dir: Path) -> None:
    merged = _apply_migrations(merge_defaults(dict(settings)))
    merged.setdefault("working_dir", str(working_dir))
    path = working_dir / "settings.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(merged, handle, ensure_ascii=False, indent=2)


def update_settings(working_dir: Path, **values: Any) -> None:
    current = load_settings(working_dir)
    current.update(values)
    save_settings(current, working_dir)


def _section(settings: Dict[str, Any], name: str) -> Dict[str, Any]:
    merged = merge_defaults(settings if isinstance(settings, dict) else {})
    section = merged.get(name)
    return dict(section) if isinstance(section, dict) else dict(DEFAULT_SETTINGS[name])


def _relative_dir(value: Any, default: str) -> str:
    text = str(value or "").strip()
    return text or default


def backup_settings(settings: Dict[str, Any]) -> Dict[str, str]:
    """Return the ``backup`` section with directory names normalised."""

    section = _section(settings, "backup")
    defaults = DEFAULT_SETTINGS["backup"]
    return {
        "directory": _relative_dir(section.get("directory"), defaults["directory"]),
        "share_dir": _relative_dir(section.get("share_dir"), defaults["share_dir"]),
    }


def api_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Return the ``api`` section; an unusable port falls back to the default."""

    section = _section(settings, "api")
    defaults = DEFAULT_SETTINGS["api"]
    try:
        port = int(section.get("port"))
    except (TypeError, ValueError):
        LOGGER.warning("Invalid api.port %r; using %s", section.get("port"), defaults["port"])
        port = defaults["port"]
    if not 0 < port < 65536:
        LOGGER.warning("api.port %s out of range; using %s", port, defaults["port"])
        port = defaults["port"]
    api_key = section.get("api_key")
    origins = section.get("cors_origins")
    return {
        "host": str(section.get("host") or defaults["host"]),
        "port": port,
        "api_key": str(api_key).strip() if api_key else None,
        "cors_origins": [str(origin) for origin in origins] if isinstance(origins, list) else list(defaults["cors_origins"]),
    }
