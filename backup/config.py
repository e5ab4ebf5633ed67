"""Backup policy persistence."""
from __future__ import annotations

import json
from typing import Optional

from core.kvstore import KeyValueStore

from .logs import BackupLogger
from .state import CONFIG_KEY, read_raw, write_json
from .types import BackupConfig


class ConfigStore:
    """Load and save :class:`BackupConfig` under a fixed key-value entry."""

    def __init__(self, store: KeyValueStore, *, logger: BackupLogger) -> None:
        self._store = store
        self._logger = logger

    def get(self) -> Optional[BackupConfig]:
        raw = read_raw(self._store, CONFIG_KEY)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            self._logger.warning("config_unreadable", key=CONFIG_KEY, error=str(exc))
            return None
        if not isinstance(data, dict):
            self._logger.warning("config_unreadable", key=CONFIG_KEY, error="not an object")
            return None
        return BackupConfig.from_mapping(data)

    def set(self, config: BackupConfig) -> None:
        try:
            write_json(self._store, CONFIG_KEY, config.to_dict())
        except Exception as exc:
            self._logger.error("config_save_failed", error=str(exc))
            raise
        self._logger.info("config_saved", **config.to_dict())


__all__ = ["ConfigStore"]
