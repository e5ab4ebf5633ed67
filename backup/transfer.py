"""Move snapshot files in and out of the device."""
from __future__ import annotations

import json
import logging
import os
import shutil
from pathlib import Path
from typing import Optional, Protocol

from .errors import NotFoundError, StorageError, UnavailableError, ValidationError
from .logs import BackupLogger
from .types import Snapshot
from .validate import parse_snapshot

LOGGER = logging.getLogger("burbujapp.backup.transfer")

SNAPSHOT_MIME_TYPE = "application/json"


class ShareTarget(Protocol):
    def is_available(self) -> bool: ...

    def share(self, path: Path, *, mime_type: str, title: str) -> Path: ...


class FilePicker(Protocol):
    def pick(self, *, mime_type: str) -> Optional[Path]: ...


class DirectoryShareTarget:
    """Share by copying the file into an outbox directory."""

    def __init__(self, destination: Path) -> None:
        self.destination = Path(destination)

    def is_available(self) -> bool:
        try:
            self.destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            LOGGER.warning("Share directory %s unavailable: %s", self.destination, exc)
            return False
        return os.access(self.destination, os.W_OK)

    def share(self, path: Path, *, mime_type: str, title: str) -> Path:
        target = self.destination / Path(path).name
        shutil.copy2(path, target)
        LOGGER.info("%s: copied %s (%s) to %s", title, path, mime_type, target)
        return target


class UnavailableShareTarget:
    """Share target for devices without a sharing capability."""

    def is_available(self) -> bool:
        return False

    def share(self, path: Path, *, mime_type: str, title: str) -> Path:
        raise UnavailableError("sharing is not available on this device")


class PathFilePicker:
    """Picker returning a preselected path; ``None`` models a cancelled dialog."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else None

    def pick(self, *, mime_type: str) -> Optional[Path]:
        return self.path


class TransferGateway:
    def __init__(
        self,
        *,
        share_target: Optional[ShareTarget] = None,
        picker: Optional[FilePicker] = None,
        logger: BackupLogger,
    ) -> None:
        self.share_target: ShareTarget = share_target or UnavailableShareTarget()
        self.picker: FilePicker = picker or PathFilePicker()
        self._logger = logger

    def export(self, path: Path) -> Path:
        source = Path(path)
        if not source.is_file():
            raise NotFoundError(f"backup file {source} not found")
        if not self.share_target.is_available():
            self._logger.event(event="export_unavailable", phase="export", ok=False, path=str(source))
            raise UnavailableError("sharing is not available on this device")
        try:
            shared = self.share_target.share(source, mime_type=SNAPSHOT_MIME_TYPE, title="Export backup")
        except OSError as exc:
            self._logger.event(event="export_failed", phase="export", ok=False, path=str(source), error=str(exc))
            raise StorageError(f"cannot export {source.name}: {exc}") from exc
        self._logger.event(event="backup_exported", phase="export", ok=True, path=str(source), target=str(shared))
        return shared

    def import_snapshot(self) -> Optional[Snapshot]:
        """Return the picked, validated snapshot, or ``None`` when the picker was cancelled."""

        picked = self.picker.pick(mime_type=SNAPSHOT_MIME_TYPE)
        if picked is None:
            self._logger.info("import_cancelled")
            return None
        try:
            text = Path(picked).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self._logger.event(event="import_failed", phase="import", ok=False, path=str(picked), error=str(exc))
            raise ValidationError(f"cannot read {picked}: {exc}") from exc
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            self._logger.event(event="import_failed", phase="import", ok=False, path=str(picked), error=str(exc))
            raise ValidationError(f"{Path(picked).name} is not valid JSON: {exc}") from exc
        try:
            snapshot = parse_snapshot(document)
        except ValidationError as exc:
            self._logger.event(event="import_failed", phase="import", ok=False, path=str(picked), error=str(exc))
            raise
        self._logger.event(event="backup_imported", phase="import", ok=True, path=str(picked), timestamp=snapshot.timestamp)
        return snapshot


__all__ = [
    "DirectoryShareTarget",
    "FilePicker",
    "PathFilePicker",
    "SNAPSHOT_MIME_TYPE",
    "ShareTarget",
    "TransferGateway",
    "UnavailableShareTarget",
]
