import json

import pytest

from backup import BackupService
from backup.errors import InvalidSnapshotError, PartialRestoreError
from backup.types import DOMAIN_KEYS
from core.kvstore import KeyValueStore, KeyValueStoreError

from conftest import SAMPLE_STATE, seed_state, stored_json

CANDIDATE = {
    "timestamp": "2024-02-01T10:00:00.000Z",
    "version": "1.0.0",
    "data": {
        "ordenes": [{"id": "ORD-77", "estado": "entregada"}],
        "clientes": [{"id": "C-5", "nombre": "Rosa"}],
        "turnos": [],
        "configuracion": {"moneda": "USD"},
        "plantillas_servicios": [{"id": "P-2", "nombre": "Planchado"}],
    },
}


class FlakyStore(KeyValueStore):
    def __init__(self, path, failing) -> None:
        super().__init__(path)
        self.failing = set(failing)

    def set(self, key: str, value: str) -> None:
        if key in self.failing:
            raise KeyValueStoreError(f"simulated failure writing {key}")
        super().set(key, value)


def _domain_state(store):
    return {key.storage_key: stored_json(store, key.storage_key) for key in DOMAIN_KEYS}


def test_restore_checkpoints_then_overwrites(service):
    seed_state(service.store)
    before = {path.filename for path in service.list_backups()}

    report = service.restore_backup(CANDIDATE)

    assert report.ok
    assert report.restored == ["orders", "clients", "shifts", "config", "serviceTemplates"]
    assert report.snapshot_timestamp == CANDIDATE["timestamp"]

    created = [item for item in service.list_backups() if item.filename not in before]
    assert len(created) == 1
    assert created[0].manual is False
    assert created[0].path == report.safety_snapshot
    safety = json.loads(report.safety_snapshot.read_text(encoding="utf-8"))
    for key in DOMAIN_KEYS:
        assert safety["data"][key.document_key] == SAMPLE_STATE[key.storage_key]

    for key in DOMAIN_KEYS:
        assert stored_json(service.store, key.storage_key) == CANDIDATE["data"][key.document_key]


def test_restore_accepts_payload_shape_and_skips_absent_keys(service):
    seed_state(service.store)
    candidate = {
        "timestamp": "2024-02-01T10:00:00.000Z",
        "version": "1.0.0",
        "payload": {"orders": [{"id": "ORD-1"}], "config": None},
    }

    report = service.restore_backup(candidate)

    assert report.restored == ["orders"]
    assert set(report.skipped) == {"clients", "shifts", "config", "serviceTemplates"}
    assert stored_json(service.store, "@ordenes") == [{"id": "ORD-1"}]
    assert stored_json(service.store, "@clientes") == SAMPLE_STATE["@clientes"]


@pytest.mark.parametrize(
    "candidate",
    [
        None,
        [],
        {"version": "1.0.0", "data": {}},
        {"timestamp": "2024-02-01T10:00:00.000Z", "data": {}},
        {"timestamp": "2024-02-01T10:00:00.000Z", "version": "1.0.0"},
        {"timestamp": "2024-02-01T10:00:00.000Z", "version": "1.0.0", "data": []},
    ],
)
def test_invalid_candidate_changes_nothing(service, candidate):
    seed_state(service.store)
    before_state = _domain_state(service.store)

    with pytest.raises(InvalidSnapshotError):
        service.restore_backup(candidate)

    assert service.list_backups() == []
    assert _domain_state(service.store) == before_state


def test_partial_failure_is_reported_not_rolled_back(working_dir, clock):
    store = FlakyStore(working_dir / "data" / "app_state.db", failing=())
    seed_state(store)
    store.failing = {"@turnos"}
    try:
        service = BackupService(working_dir=working_dir, settings={}, store=store, clock=clock)
        report = service.restore_backup(CANDIDATE)
    finally:
        store.close()

    assert not report.ok
    assert set(report.failed) == {"shifts"}
    assert "@turnos" in report.failed["shifts"]
    assert report.restored == ["orders", "clients", "config", "serviceTemplates"]
    assert report.safety_snapshot is not None and report.safety_snapshot.exists()
    with pytest.raises(PartialRestoreError) as excinfo:
        report.raise_for_failures()
    assert excinfo.value.report is report

    with KeyValueStore(working_dir / "data" / "app_state.db") as reopened:
        assert stored_json(reopened, "@ordenes") == CANDIDATE["data"]["ordenes"]
        assert stored_json(reopened, "@turnos") == SAMPLE_STATE["@turnos"]


def test_restore_from_stored_backup(service):
    seed_state(service.store)
    path = service.create_backup(manual=True)
    service.store.set("@ordenes", json.dumps([]))

    report = service.restore_from_file(path.name)

    assert report.ok
    assert stored_json(service.store, "@ordenes") == SAMPLE_STATE["@ordenes"]
