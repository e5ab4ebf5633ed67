"""Retention policy enforcement for automatic backups."""
from __future__ import annotations

from typing import List

from .logs import BackupLogger
from .store import SnapshotStore
from .types import BackupConfig, BackupSummary, RetentionSummary


def select_evictions(summaries: List[BackupSummary], max_backups: int) -> List[BackupSummary]:
    """Return the oldest automatic snapshots beyond *max_backups*; manual ones never qualify."""

    automatic = [item for item in summaries if not item.manual]
    limit = max(int(max_backups), 1)
    if len(automatic) <= limit:
        return []
    automatic.sort(key=lambda item: (item.modified_ns, item.filename))
    return automatic[: len(automatic) - limit]


class RetentionManager:
    def __init__(self, store: SnapshotStore, *, logger: BackupLogger) -> None:
        self._store = store
        self._logger = logger

    def trim(self, config: BackupConfig) -> RetentionSummary:
        summaries = self._store.list()
        evict = select_evictions(summaries, config.max_backups)
        removed: List[str] = []
        freed = 0
        for item in evict:
            self._store.delete(item.filename)
            removed.append(item.filename)
            freed += item.size
            self._logger.warning("backup_removed", filename=item.filename, reason="retention")
        kept = [item.filename for item in summaries if not item.manual and item.filename not in removed]
        self._logger.event(
            event="retention_applied",
            phase="retention",
            ok=True,
            removed=len(removed),
            kept=len(kept),
            max_backups=config.max_backups,
        )
        return RetentionSummary(removed=removed, kept=kept, freed_bytes=freed)


__all__ = ["RetentionManager", "select_evictions"]
