"""Restore snapshots over the live domain collections."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from core.kvstore import KeyValueStore

from .errors import InvalidSnapshotError, StorageError
from .logs import BackupLogger
from .state import write_json
from .types import DOMAIN_KEYS, SNAPSHOT_VERSION, RestoreReport
from .validate import parse_snapshot

Checkpoint = Callable[[], Path]


def _major(version: str) -> str:
    return str(version).split(".")[0]


class RestoreCoordinator:
    """Validate a candidate, checkpoint current state, then overwrite key by key.

    Writes are sequential and independent: when a later key fails the keys
    already written stay written. The returned report lists both so the
    caller can retry individual keys.
    """

    def __init__(self, store: KeyValueStore, *, checkpoint: Checkpoint, logger: BackupLogger) -> None:
        self._store = store
        self._checkpoint = checkpoint
        self._logger = logger

    def restore(self, candidate: Any) -> RestoreReport:
        try:
            snapshot = parse_snapshot(candidate)
        except InvalidSnapshotError as exc:
            self._logger.event(event="restore_rejected", phase="restore", ok=False, error=str(exc))
            raise

        if _major(snapshot.version) != _major(SNAPSHOT_VERSION):
            self._logger.warning("restore_version_mismatch", snapshot=snapshot.version, current=SNAPSHOT_VERSION)

        try:
            safety_path = self._checkpoint()
        except Exception as exc:
            self._logger.event(event="restore_checkpoint_failed", phase="restore", ok=False, error=str(exc))
            raise
        self._logger.info("restore_checkpoint", path=str(safety_path), timestamp=snapshot.timestamp)

        report = RestoreReport(snapshot_timestamp=snapshot.timestamp, safety_snapshot=safety_path)
        for key in DOMAIN_KEYS:
            value = snapshot.payload.get(key.name)
            if value is None:
                report.skipped.append(key.name)
                continue
            try:
                write_json(self._store, key.storage_key, value)
            except StorageError as exc:
                report.failed[key.name] = str(exc)
                self._logger.error("restore_key_failed", key=key.name, error=str(exc))
                continue
            report.restored.append(key.name)
            self._logger.info("restore_key", key=key.name)

        self._logger.event(
            event="backup_restored",
            phase="restore",
            ok=report.ok,
            timestamp=snapshot.timestamp,
            restored=report.restored,
            failed=sorted(report.failed),
            skipped=report.skipped,
        )
        return report


__all__ = ["RestoreCoordinator"]
