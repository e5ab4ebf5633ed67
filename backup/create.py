"""Assemble snapshots of the application's persisted domain state."""
from __future__ import annotations

import copy
import json
from typing import List, Optional

from core.kvstore import KeyValueStore

from .clock import Clock, format_timestamp, utcnow
from .logs import BackupLogger
from .state import read_raw
from .types import DOMAIN_KEYS, SNAPSHOT_VERSION, CollectionRead, DomainKey, Snapshot


def _matches_empty_shape(key: DomainKey, value: object) -> bool:
    return isinstance(value, type(key.empty_value()))


class SnapshotBuilder:
    """Read the five domain collections and stamp them into a :class:`Snapshot`."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        logger: BackupLogger,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._logger = logger
        self._clock = clock or utcnow

    def read(self, key: DomainKey) -> CollectionRead:
        """Return the stored collection, or its empty default tagged with the reason."""

        raw = read_raw(self._store, key.storage_key)
        if raw is None:
            return CollectionRead(key.name, key.empty_value(), "missing")
        try:
            value = json.loads(raw)
        except json.JSONDecodeError as exc:
            return CollectionRead(key.name, key.empty_value(), "malformed", detail=str(exc))
        if value is None:
            return CollectionRead(key.name, key.empty_value(), "missing")
        if not _matches_empty_shape(key, value):
            detail = f"expected {type(key.empty_value()).__name__}, found {type(value).__name__}"
            return CollectionRead(key.name, key.empty_value(), "malformed", detail=detail)
        return CollectionRead(key.name, value)

    def read_all(self) -> List[CollectionRead]:
        return [self.read(key) for key in DOMAIN_KEYS]

    def build(self) -> Snapshot:
        reads = self.read_all()
        for result in reads:
            if result.status == "malformed":
                self._logger.warning("collection_defaulted", key=result.name, status=result.status, detail=result.detail)
            elif result.status == "missing":
                self._logger.info("collection_defaulted", key=result.name, status=result.status)
        return Snapshot(
            timestamp=format_timestamp(self._clock()),
            version=SNAPSHOT_VERSION,
            payload={result.name: copy.deepcopy(result.value) for result in reads},
            defaulted=tuple(result.name for result in reads if result.defaulted),
        )


__all__ = ["SnapshotBuilder"]
