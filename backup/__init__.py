"""Backup and restore engine for BurbujApp's persisted order data."""
from __future__ import annotations

from .api import BackupService
from .errors import (
    BackupError,
    InvalidSnapshotError,
    NotFoundError,
    PartialRestoreError,
    StorageError,
    UnavailableError,
    ValidationError,
)
from .schedule import is_due
from .types import BackupConfig, BackupSummary, RestoreReport, RetentionSummary, Snapshot

__all__ = [
    "BackupConfig",
    "BackupError",
    "BackupService",
    "BackupSummary",
    "InvalidSnapshotError",
    "NotFoundError",
    "PartialRestoreError",
    "RestoreReport",
    "RetentionSummary",
    "Snapshot",
    "StorageError",
    "UnavailableError",
    "ValidationError",
    "is_due",
]
