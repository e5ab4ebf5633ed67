"""Decide when an automatic backup is due."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from .clock import utcnow
from .types import BackupConfig

FREQUENCY_DAYS: Dict[str, int] = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
}


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def elapsed_days(last_backup: datetime, now: datetime) -> int:
    """Whole days between *last_backup* and *now*, floored."""

    delta = _aware(now) - _aware(last_backup)
    return delta // timedelta(days=1)


def is_due(config: BackupConfig, last_backup: Optional[datetime], *, now: Optional[datetime] = None) -> bool:
    if not config.auto_backup_enabled:
        return False
    if last_backup is None:
        return True
    threshold = FREQUENCY_DAYS.get(config.backup_frequency)
    if threshold is None:
        return False
    return elapsed_days(last_backup, now or utcnow()) >= threshold


def next_due(config: BackupConfig, last_backup: Optional[datetime], *, now: Optional[datetime] = None) -> Optional[datetime]:
    """Instant at which :func:`is_due` flips to true, or ``None`` when automatic backups are off."""

    if not config.auto_backup_enabled:
        return None
    threshold = FREQUENCY_DAYS.get(config.backup_frequency)
    if threshold is None:
        return None
    if last_backup is None:
        return _aware(now or utcnow())
    return _aware(last_backup) + timedelta(days=threshold)


__all__ = ["FREQUENCY_DAYS", "elapsed_days", "is_due", "next_due"]
