"""Pydantic schemas for the BurbujApp backup API."""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health response summarising server readiness and backup state."""

    ok: bool = Field(True, description="Indicates the API server is reachable.")
    version: str = Field(..., description="Application version string.")
    time_utc: str = Field(..., description="Current UTC timestamp in ISO8601 format.")
    backups_dir: str = Field(..., description="Directory holding snapshot files.")
    last_backup_utc: Optional[str] = Field(None, description="Instant of the last successful backup.")
    next_backup_due_utc: Optional[str] = Field(
        None, description="Instant the next automatic backup becomes due; null when disabled."
    )


class BackupConfigModel(BaseModel):
    """Backup policy as stored in the application key-value store."""

    auto_backup_enabled: bool = Field(True, description="Create automatic backups when due.")
    backup_frequency: Literal["daily", "weekly", "monthly"] = Field(
        "weekly", description="Interval between automatic backups."
    )
    max_backups: int = Field(5, ge=1, description="Automatic snapshots kept by retention.")
    include_images: bool = Field(False, description="Reserved; not used by the engine.")
    backup_location: Literal["local", "cloud"] = Field(
        "local", description="Storage location; only local is implemented."
    )


class BackupInfo(BaseModel):
    """Single snapshot file as reported by the directory listing."""

    filename: str = Field(..., description="Snapshot filename inside the backup directory.")
    date: str = Field(..., description="File modification time (UTC, ISO8601).")
    size: int = Field(..., ge=0, description="File size in bytes.")
    manual: bool = Field(..., description="True for user requested backups, exempt from retention.")


class BackupListResponse(BaseModel):
    results: List[BackupInfo] = Field(..., description="Snapshots ordered newest first.")


class CreateBackupRequest(BaseModel):
    manual: bool = Field(True, description="Mark the snapshot as manual (never evicted).")


class CreateBackupResponse(BaseModel):
    filename: str = Field(..., description="Filename of the new snapshot.")
    path: str = Field(..., description="Absolute path of the new snapshot.")
    manual: bool


class CheckBackupResponse(BaseModel):
    created: bool = Field(..., description="True when an automatic backup was due and created.")
    filename: Optional[str] = None


class ExportResponse(BaseModel):
    filename: str
    shared_path: str = Field(..., description="Location the share target delivered the file to.")


class ImportRequest(BaseModel):
    path: str = Field(..., description="Path of the snapshot file to import.")


class SnapshotDocument(BaseModel):
    """Snapshot in its on-disk JSON shape."""

    timestamp: str = Field(..., description="Creation instant (ISO8601).")
    version: str = Field(..., description="Snapshot schema tag.")
    data: Dict[str, Any] = Field(..., description="Domain collections keyed by storage name.")


class RestoreResponse(BaseModel):
    snapshot_timestamp: str
    safety_snapshot: Optional[str] = Field(None, description="Safety snapshot taken before overwriting.")
    restored: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict, description="Domain key -> error for failed writes.")
    ok: bool


__all__ = [
    "BackupConfigModel",
    "BackupInfo",
    "BackupListResponse",
    "CheckBackupResponse",
    "CreateBackupRequest",
    "CreateBackupResponse",
    "ExportResponse",
    "HealthResponse",
    "ImportRequest",
    "RestoreResponse",
    "SnapshotDocument",
]
