"""Error hierarchy for backup operations."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing guard
    from .types import RestoreReport


class BackupError(RuntimeError):
    """Base exception for backup related failures."""


class StorageError(BackupError):
    """Raised when the key-value store or the backup directory rejects an operation."""


class ValidationError(BackupError):
    """Raised when a snapshot document or a configuration fails structural checks."""


class InvalidSnapshotError(ValidationError):
    """Raised when a restore candidate is not a well formed snapshot."""


class NotFoundError(BackupError):
    """Raised when an operation targets a backup file that does not exist."""


class UnavailableError(BackupError):
    """Raised when the share capability is not available on this device."""


class PartialRestoreError(BackupError):
    """Raised on request when one or more domain keys failed to restore."""

    def __init__(self, report: "RestoreReport") -> None:
        failed = ", ".join(sorted(report.failed)) or "<none>"
        super().__init__(f"restore incomplete, failed keys: {failed}")
        self.report = report


__all__ = [
    "BackupError",
    "InvalidSnapshotError",
    "NotFoundError",
    "PartialRestoreError",
    "StorageError",
    "UnavailableError",
    "ValidationError",
]
