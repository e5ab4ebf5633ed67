"""Common dataclasses shared across backup modules."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple

from .errors import PartialRestoreError, ValidationError

SNAPSHOT_VERSION = "1.0.0"

Frequency = Literal["daily", "weekly", "monthly"]
Location = Literal["local", "cloud"]
ReadStatus = Literal["ok", "missing", "malformed"]

FREQUENCIES: Tuple[str, ...] = ("daily", "weekly", "monthly")
LOCATIONS: Tuple[str, ...] = ("local", "cloud")


@dataclass(frozen=True, slots=True)
class DomainKey:
    """One persisted collection captured by every snapshot."""

    name: str
    storage_key: str
    document_key: str
    empty: Callable[[], Any]

    def empty_value(self) -> Any:
        return self.empty()


DOMAIN_KEYS: Tuple[DomainKey, ...] = (
    DomainKey("orders", "@ordenes", "ordenes", list),
    DomainKey("clients", "@clientes", "clientes", list),
    DomainKey("shifts", "@turnos", "turnos", list),
    DomainKey("config", "@configuracion", "configuracion", dict),
    DomainKey("serviceTemplates", "@plantillas_servicios", "plantillas_servicios", list),
)

DOMAIN_KEY_NAMES: Tuple[str, ...] = tuple(key.name for key in DOMAIN_KEYS)


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        token = value.strip().lower()
        if token in {"1", "true", "yes", "on"}:
            return True
        if token in {"0", "false", "no", "off"}:
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


@dataclass(slots=True)
class BackupConfig:
    """Backup policy persisted in the key-value store."""

    auto_backup_enabled: bool = True
    backup_frequency: Frequency = "weekly"
    max_backups: int = 5
    include_images: bool = False
    backup_location: Location = "local"

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BackupConfig":
        """Build a config from stored data, filling defaults for missing fields."""

        defaults = cls()
        frequency = str(data.get("backup_frequency") or defaults.backup_frequency).strip().lower()
        if frequency not in FREQUENCIES:
            frequency = defaults.backup_frequency
        location = str(data.get("backup_location") or defaults.backup_location).strip().lower()
        if location not in LOCATIONS:
            location = defaults.backup_location
        try:
            max_backups = int(data.get("max_backups", defaults.max_backups))
        except (TypeError, ValueError):
            max_backups = defaults.max_backups
        return cls(
            auto_backup_enabled=_as_bool(data.get("auto_backup_enabled"), defaults.auto_backup_enabled),
            backup_frequency=frequency,  # type: ignore[arg-type]
            max_backups=max(1, max_backups),
            include_images=_as_bool(data.get("include_images"), defaults.include_images),
            backup_location=location,  # type: ignore[arg-type]
        )

    def validate(self) -> "BackupConfig":
        for name in ("auto_backup_enabled", "include_images"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ValidationError(f"{name} must be true or false, got {value!r}")
        if isinstance(self.max_backups, bool) or not isinstance(self.max_backups, int):
            raise ValidationError(f"max_backups must be an integer, got {self.max_backups!r}")
        if self.max_backups < 1:
            raise ValidationError(f"max_backups must be >= 1, got {self.max_backups}")
        if self.backup_frequency not in FREQUENCIES:
            raise ValidationError(f"unknown backup_frequency {self.backup_frequency!r}")
        if self.backup_location not in LOCATIONS:
            raise ValidationError(f"unknown backup_location {self.backup_location!r}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class CollectionRead:
    """Outcome of reading one domain collection from the store."""

    name: str
    value: Any
    status: ReadStatus = "ok"
    detail: Optional[str] = None

    @property
    def defaulted(self) -> bool:
        return self.status != "ok"


@dataclass(slots=True)
class Snapshot:
    timestamp: str
    version: str
    payload: Dict[str, Any]
    defaulted: Tuple[str, ...] = ()

    def to_document(self) -> Dict[str, Any]:
        """Return the on-disk JSON shape (document keys under ``data``)."""

        data: Dict[str, Any] = {}
        for key in DOMAIN_KEYS:
            if key.name in self.payload:
                data[key.document_key] = self.payload[key.name]
        return {"timestamp": self.timestamp, "version": self.version, "data": data}


@dataclass(slots=True)
class SnapshotIndexEntry:
    filename: str
    created_at: str
    manual: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Optional["SnapshotIndexEntry"]:
        filename = data.get("filename")
        if not isinstance(filename, str) or not filename:
            return None
        created = data.get("createdAt") or data.get("date") or ""
        return cls(filename=filename, created_at=str(created), manual=bool(data.get("manual")))

    def to_dict(self) -> Dict[str, Any]:
        return {"filename": self.filename, "manual": self.manual, "createdAt": self.created_at}


@dataclass(slots=True)
class BackupSummary:
    filename: str
    date: str
    size: int
    manual: bool
    path: Path
    modified_ns: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"filename": self.filename, "date": self.date, "size": self.size, "manual": self.manual}


@dataclass(slots=True)
class RetentionSummary:
    removed: List[str]
    kept: List[str]
    freed_bytes: int


@dataclass(slots=True)
class RestoreReport:
    """Per-key outcome of a restore; earlier writes are never rolled back."""

    snapshot_timestamp: str
    safety_snapshot: Optional[Path] = None
    restored: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def raise_for_failures(self) -> "RestoreReport":
        if self.failed:
            raise PartialRestoreError(self)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot_timestamp": self.snapshot_timestamp,
            "safety_snapshot": str(self.safety_snapshot) if self.safety_snapshot else None,
            "restored": list(self.restored),
            "skipped": list(self.skipped),
            "failed": dict(self.failed),
            "ok": self.ok,
        }


__all__ = [
    "BackupConfig",
    "BackupSummary",
    "CollectionRead",
    "DOMAIN_KEYS",
    "DOMAIN_KEY_NAMES",
    "DomainKey",
    "FREQUENCIES",
    "LOCATIONS",
    "RestoreReport",
    "RetentionSummary",
    "SNAPSHOT_VERSION",
    "Snapshot",
    "SnapshotIndexEntry",
]
