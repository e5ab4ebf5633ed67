"""Snapshot files on disk plus the manual/automatic index."""
from __future__ import annotations

import json
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.kvstore import KeyValueStore

from .clock import Clock, format_timestamp, utcnow
from .errors import NotFoundError, StorageError, ValidationError
from .logs import BackupLogger
from .state import INDEX_KEY, read_raw, write_json
from .types import BackupSummary, Snapshot, SnapshotIndexEntry

_PREFIX = "backup_"
_SUFFIX = ".json"


class SnapshotStore:
    """Write, read, list and delete snapshot files in the backup directory.

    The directory listing is the source of truth for which snapshots exist;
    the index only records whether each file was created manually.
    """

    def __init__(
        self,
        directory: Path,
        store: KeyValueStore,
        *,
        logger: BackupLogger,
        clock: Optional[Clock] = None,
    ) -> None:
        self._directory = Path(directory)
        self._store = store
        self._logger = logger
        self._clock = clock or utcnow
        self._last_unique = 0

    @property
    def directory(self) -> Path:
        return self._directory

    def ensure_directory(self) -> None:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"cannot create backup directory {self._directory}: {exc}") from exc

    # ------------------------------------------------------------------
    def _next_filename(self) -> str:
        day = self._clock().astimezone(timezone.utc).strftime("%Y-%m-%d")
        unique = max(time.time_ns() // 1000, self._last_unique + 1)
        while (self._directory / f"{_PREFIX}{day}_{unique}{_SUFFIX}").exists():
            unique += 1
        self._last_unique = unique
        return f"{_PREFIX}{day}_{unique}{_SUFFIX}"

    def path_for(self, filename: str) -> Path:
        name = str(filename or "")
        if not name or name != Path(name).name or name.startswith("."):
            raise NotFoundError(f"invalid backup filename {filename!r}")
        return self._directory / name

    def _load_index(self) -> List[SnapshotIndexEntry]:
        raw = read_raw(self._store, INDEX_KEY)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            self._logger.warning("index_unreadable", error=str(exc))
            return []
        if not isinstance(data, list):
            self._logger.warning("index_unreadable", error="not a list")
            return []
        entries: List[SnapshotIndexEntry] = []
        for item in data:
            if isinstance(item, dict):
                entry = SnapshotIndexEntry.from_mapping(item)
                if entry is not None:
                    entries.append(entry)
        return entries

    def _save_index(self, entries: List[SnapshotIndexEntry]) -> None:
        write_json(self._store, INDEX_KEY, [entry.to_dict() for entry in entries])

    def index(self) -> Dict[str, SnapshotIndexEntry]:
        return {entry.filename: entry for entry in self._load_index()}

    # ------------------------------------------------------------------
    def persist(self, snapshot: Snapshot, *, manual: bool) -> Path:
        self.ensure_directory()
        entries = self._load_index()
        filename = self._next_filename()
        target = self._directory / filename
        temp = self._directory / f".{filename}.tmp"
        try:
            with temp.open("w", encoding="utf-8") as handle:
                json.dump(snapshot.to_document(), handle, ensure_ascii=False, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp, target)
        except (OSError, TypeError, ValueError) as exc:
            temp.unlink(missing_ok=True)
            self._logger.error("snapshot_write_failed", filename=filename, error=str(exc))
            raise StorageError(f"cannot write snapshot {filename}: {exc}") from exc

        entries.append(SnapshotIndexEntry(filename=filename, created_at=format_timestamp(self._clock()), manual=manual))
        try:
            self._save_index(entries)
        except StorageError as exc:
            target.unlink(missing_ok=True)
            self._logger.error("index_update_failed", filename=filename, error=str(exc))
            raise
        self._logger.info("snapshot_written", filename=filename, manual=manual, size=target.stat().st_size)
        return target

    def read(self, filename: str) -> Dict[str, Any]:
        path = self.path_for(filename)
        if not path.is_file():
            raise NotFoundError(f"backup {filename} not found")
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValidationError(f"backup {filename} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise StorageError(f"cannot read backup {filename}: {exc}") from exc

    def list(self) -> List[BackupSummary]:
        if not self._directory.exists():
            return []
        flags = self.index()
        summaries: List[BackupSummary] = []
        for path in self._directory.glob(f"*{_SUFFIX}"):
            if path.name.startswith(".") or not path.is_file():
                continue
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            entry = flags.get(path.name)
            modified = datetime.fromtimestamp(stat.st_mtime_ns / 1_000_000_000, tz=timezone.utc)
            summaries.append(
                BackupSummary(
                    filename=path.name,
                    date=format_timestamp(modified),
                    size=int(stat.st_size),
                    manual=bool(entry.manual) if entry else False,
                    path=path,
                    modified_ns=int(stat.st_mtime_ns),
                )
            )
        summaries.sort(key=lambda item: (item.modified_ns, item.filename), reverse=True)
        return summaries

    def delete(self, filename: str) -> None:
        path = self.path_for(filename)
        if not path.is_file():
            raise NotFoundError(f"backup {filename} not found")
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFoundError(f"backup {filename} not found") from exc
        except OSError as exc:
            raise StorageError(f"cannot delete backup {filename}: {exc}") from exc
        remaining = [entry for entry in self._load_index() if entry.filename != path.name]
        self._save_index(remaining)
        self._logger.info("snapshot_deleted", filename=path.name)

    def prune_index(self) -> List[str]:
        """Drop index entries whose snapshot file no longer exists."""

        entries = self._load_index()
        kept = [entry for entry in entries if (self._directory / entry.filename).is_file()]
        removed = [entry.filename for entry in entries if entry not in kept]
        if removed:
            self._save_index(kept)
            self._logger.info("index_pruned", removed=removed)
        return removed


__all__ = ["SnapshotStore"]
