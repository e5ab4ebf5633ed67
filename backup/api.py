"""Public API for backup operations."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Union

from core.kvstore import KeyValueStore, KeyValueStoreError
from core.paths import get_backups_dir, get_exports_dir, get_state_db_path, resolve_working_dir
from core.settings import backup_settings, load_settings

from .clock import Clock, format_timestamp, parse_timestamp, utcnow
from .config import ConfigStore
from .create import SnapshotBuilder
from .errors import BackupError, StorageError, ValidationError
from .logs import BackupLogger
from .restore import RestoreCoordinator
from .retention import RetentionManager
from .schedule import is_due, next_due
from .state import LAST_BACKUP_KEY, read_raw, write_text
from .store import SnapshotStore
from .transfer import DirectoryShareTarget, FilePicker, PathFilePicker, ShareTarget, TransferGateway
from .types import BackupConfig, BackupSummary, RestoreReport, RetentionSummary, Snapshot
from .validate import parse_snapshot


class BackupService:
    """Coordinate snapshot creation, retention, scheduling, transfer and restore.

    Multi-step operations (create, trim, restore, scheduled check) hold the
    service lock for their whole duration.
    """

    def __init__(
        self,
        *,
        working_dir: Optional[Path] = None,
        settings: Optional[Dict[str, Any]] = None,
        store: Optional[KeyValueStore] = None,
        share_target: Optional[ShareTarget] = None,
        picker: Optional[FilePicker] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._working_dir = Path(working_dir or resolve_working_dir())
        self._settings = dict(settings) if settings is not None else load_settings(self._working_dir)
        layout = backup_settings(self._settings)
        self._clock = clock or utcnow
        self._lock = RLock()
        self._logger = BackupLogger(self._working_dir)
        self._owns_store = store is None
        if store is None:
            try:
                store = KeyValueStore(get_state_db_path(self._working_dir))
            except KeyValueStoreError as exc:
                raise StorageError(str(exc)) from exc
        self._kv = store
        self._config_store = ConfigStore(self._kv, logger=self._logger)
        self._builder = SnapshotBuilder(self._kv, logger=self._logger, clock=self._clock)
        self._snapshots = SnapshotStore(
            get_backups_dir(self._working_dir, layout["directory"]),
            self._kv,
            logger=self._logger,
            clock=self._clock,
        )
        self._retention = RetentionManager(self._snapshots, logger=self._logger)
        self._restorer = RestoreCoordinator(
            self._kv,
            checkpoint=lambda: self.create_backup(manual=False),
            logger=self._logger,
        )
        if share_target is None:
            share_target = DirectoryShareTarget(get_exports_dir(self._working_dir, layout["share_dir"]))
        self._transfer = TransferGateway(share_target=share_target, picker=picker, logger=self._logger)
        try:
            self.initialize()
        except Exception:
            self.close()
            raise

    # ------------------------------------------------------------------
    @property
    def working_dir(self) -> Path:
        return self._working_dir

    @property
    def backups_dir(self) -> Path:
        return self._snapshots.directory

    @property
    def store(self) -> KeyValueStore:
        return self._kv

    @property
    def logger(self) -> BackupLogger:
        return self._logger

    def close(self) -> None:
        if self._owns_store:
            self._kv.close()

    def __enter__(self) -> "BackupService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """Seed the default policy and create the backup directory; safe to repeat."""

        with self._lock:
            self._snapshots.ensure_directory()
            if self._config_store.get() is None:
                self._config_store.set(BackupConfig())
                self._logger.info("config_seeded")
            self._snapshots.prune_index()

    def get_config(self) -> BackupConfig:
        return self._config_store.get() or BackupConfig()

    def set_config(self, config: Union[BackupConfig, Mapping[str, Any]]) -> BackupConfig:
        if not isinstance(config, BackupConfig):
            fields = self.get_config().to_dict()
            unknown = sorted(set(config) - set(fields))
            if unknown:
                raise ValidationError(f"unknown config fields: {', '.join(unknown)}")
            fields.update(config)
            config = BackupConfig(**fields)
        config.validate()
        if config.backup_location != "local":
            self._logger.warning("backup_location_unsupported", location=config.backup_location)
        with self._lock:
            self._config_store.set(config)
        return config

    def last_backup_at(self) -> Optional[datetime]:
        return parse_timestamp(read_raw(self._kv, LAST_BACKUP_KEY))

    def next_backup_due(self) -> Optional[datetime]:
        return next_due(self.get_config(), self.last_backup_at(), now=self._clock())

    # ------------------------------------------------------------------
    def create_backup(self, manual: bool = False) -> Path:
        self._logger.event(event="backup_start", phase="create", ok=True, manual=manual)
        try:
            with self._lock:
                snapshot = self._builder.build()
                path = self._snapshots.persist(snapshot, manual=manual)
                if not manual:
                    self._retention.trim(self.get_config())
                write_text(self._kv, LAST_BACKUP_KEY, format_timestamp(self._clock()))
        except BackupError as exc:
            self._logger.event(event="backup_failed", phase="create", ok=False, manual=manual, error=str(exc))
            raise
        self._logger.event(event="backup_complete", phase="create", ok=True, manual=manual, filename=path.name)
        return path

    def list_backups(self) -> List[BackupSummary]:
        return self._snapshots.list()

    def delete_backup(self, filename: str) -> None:
        with self._lock:
            self._snapshots.delete(filename)

    def apply_retention(self) -> RetentionSummary:
        with self._lock:
            return self._retention.trim(self.get_config())

    def read_backup(self, filename: str) -> Snapshot:
        return parse_snapshot(self._snapshots.read(filename))

    def resolve_backup_path(self, target: Union[str, Path]) -> Path:
        """Accept either a bare backup filename or a path to a snapshot file."""

        text = str(target)
        if Path(text).name == text:
            return self._snapshots.path_for(text)
        return Path(text)

    # ------------------------------------------------------------------
    def export_backup(self, target: Union[str, Path]) -> Path:
        return self._transfer.export(self.resolve_backup_path(target))

    def import_backup(self, path: Optional[Path] = None) -> Optional[Snapshot]:
        """Pick and validate a snapshot file without restoring it."""

        if path is not None:
            gateway = TransferGateway(
                share_target=self._transfer.share_target,
                picker=PathFilePicker(path),
                logger=self._logger,
            )
            return gateway.import_snapshot()
        return self._transfer.import_snapshot()

    def restore_backup(self, candidate: Any) -> RestoreReport:
        with self._lock:
            return self._restorer.restore(candidate)

    def restore_from_file(self, filename: str) -> RestoreReport:
        return self.restore_backup(self._snapshots.read(filename))

    # ------------------------------------------------------------------
    def check_automatic_backup(self) -> Optional[Path]:
        """Create an automatic backup when the stored policy says one is due."""

        with self._lock:
            config = self.get_config()
            last = self.last_backup_at()
            if not is_due(config, last, now=self._clock()):
                return None
            self._logger.info(
                "automatic_backup_due",
                frequency=config.backup_frequency,
                last=format_timestamp(last) if last else None,
            )
            return self.create_backup(manual=False)


__all__ = [
    "BackupConfig",
    "BackupError",
    "BackupService",
    "BackupSummary",
    "RestoreReport",
    "RetentionSummary",
]
