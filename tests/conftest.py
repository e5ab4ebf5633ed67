from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict

import pytest

from backup import BackupService
from core.kvstore import KeyValueStore

SAMPLE_STATE: Dict[str, Any] = {
    "@ordenes": [{"id": "ORD-1", "cliente_id": "C-1", "estado": "pendiente", "total": 120.5}],
    "@clientes": [{"id": "C-1", "nombre": "Ana"}, {"id": "C-2", "nombre": "Luis"}],
    "@turnos": [{"id": "T-1", "usuario": "ana", "inicio": "2024-01-01T08:00:00.000Z"}],
    "@configuracion": {"moneda": "MXN", "iva": 0.16},
    "@plantillas_servicios": [{"id": "P-1", "nombre": "Lavado", "precio": 45}],
}


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


def seed_state(store: KeyValueStore, state: Dict[str, Any] = SAMPLE_STATE) -> None:
    for key, value in state.items():
        store.set(key, json.dumps(value))


def stored_json(store: KeyValueStore, key: str) -> Any:
    raw = store.get(key)
    return None if raw is None else json.loads(raw)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def working_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def service(working_dir: Path, clock: FakeClock):
    svc = BackupService(working_dir=working_dir, settings={}, clock=clock)
    try:
        yield svc
    finally:
        svc.close()
