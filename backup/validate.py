"""Structural validation of snapshot documents."""
from __future__ import annotations

from typing import Any, Dict, Mapping

from .errors import InvalidSnapshotError
from .types import DOMAIN_KEYS, Snapshot


def _payload_section(document: Mapping[str, Any]) -> Mapping[str, Any]:
    for field in ("data", "payload"):
        section = document.get(field)
        if isinstance(section, Mapping):
            return section
    raise InvalidSnapshotError("snapshot has no data/payload object")


def parse_snapshot(document: Any) -> Snapshot:
    """Validate *document* and return it as a :class:`Snapshot`.

    Accepts the on-disk shape (``data`` with the app's collection names) as
    well as ``payload`` keyed by domain names. Collections absent from the
    document stay absent so a restore can skip them.
    """

    if isinstance(document, Snapshot):
        return document
    if not isinstance(document, Mapping):
        raise InvalidSnapshotError("snapshot must be a JSON object")
    timestamp = document.get("timestamp")
    if not isinstance(timestamp, str) or not timestamp.strip():
        raise InvalidSnapshotError("snapshot is missing its timestamp")
    version = document.get("version")
    if version is None or not str(version).strip():
        raise InvalidSnapshotError("snapshot is missing its version")
    section = _payload_section(document)

    payload: Dict[str, Any] = {}
    for key in DOMAIN_KEYS:
        if key.document_key in section:
            payload[key.name] = section[key.document_key]
        elif key.name in section:
            payload[key.name] = section[key.name]
    return Snapshot(timestamp=timestamp.strip(), version=str(version).strip(), payload=payload)


def is_valid_snapshot(document: Any) -> bool:
    try:
        parse_snapshot(document)
    except InvalidSnapshotError:
        return False
    return True


__all__ = ["is_valid_snapshot", "parse_snapshot"]
