"""Key-value store access shared by the backup modules."""
from __future__ import annotations

import json
from typing import Any, Optional

from core.kvstore import KeyValueStore, KeyValueStoreError

from .errors import StorageError

CONFIG_KEY = "@backup_config"
LAST_BACKUP_KEY = "@last_backup_date"
INDEX_KEY = "@auto_backup_list"


def read_raw(store: KeyValueStore, key: str) -> Optional[str]:
    try:
        return store.get(key)
    except KeyValueStoreError as exc:
        raise StorageError(str(exc)) from exc


def write_json(store: KeyValueStore, key: str, value: Any) -> None:
    try:
        encoded = json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise StorageError(f"value for {key} is not JSON serialisable: {exc}") from exc
    try:
        store.set(key, encoded)
    except KeyValueStoreError as exc:
        raise StorageError(str(exc)) from exc


def write_text(store: KeyValueStore, key: str, value: str) -> None:
    try:
        store.set(key, value)
    except KeyValueStoreError as exc:
        raise StorageError(str(exc)) from exc


__all__ = ["CONFIG_KEY", "INDEX_KEY", "LAST_BACKUP_KEY", "read_raw", "write_json", "write_text"]
