import json

import pytest

from backup import BackupService
from backup.errors import NotFoundError, UnavailableError, ValidationError
from backup.transfer import DirectoryShareTarget, PathFilePicker, UnavailableShareTarget

from conftest import SAMPLE_STATE, seed_state, stored_json


def _write(path, document):
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


def test_import_without_data_is_rejected_and_changes_nothing(service, tmp_path):
    seed_state(service.store)
    candidate = _write(tmp_path / "incoming.json", {"timestamp": "2024-02-01T10:00:00.000Z", "version": "1.0.0"})

    with pytest.raises(ValidationError):
        service.import_backup(candidate)

    assert service.list_backups() == []
    assert stored_json(service.store, "@ordenes") == SAMPLE_STATE["@ordenes"]


def test_import_rejects_invalid_json_and_missing_files(service, tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    with pytest.raises(ValidationError):
        service.import_backup(broken)
    with pytest.raises(ValidationError):
        service.import_backup(tmp_path / "absent.json")


def test_cancelled_picker_returns_none(working_dir, clock):
    with BackupService(working_dir=working_dir, settings={}, picker=PathFilePicker(None), clock=clock) as svc:
        assert svc.import_backup() is None
        assert svc.list_backups() == []


def test_import_returns_snapshot_without_restoring(service, tmp_path):
    seed_state(service.store)
    candidate = _write(
        tmp_path / "incoming.json",
        {"timestamp": "2024-02-01T10:00:00.000Z", "version": "1.0.0", "data": {"ordenes": []}},
    )

    snapshot = service.import_backup(candidate)

    assert snapshot is not None
    assert snapshot.payload == {"orders": []}
    assert stored_json(service.store, "@ordenes") == SAMPLE_STATE["@ordenes"]

    report = service.restore_backup(snapshot)
    assert report.restored == ["orders"]
    assert stored_json(service.store, "@ordenes") == []


def test_export_copies_into_share_directory(service):
    path = service.create_backup(manual=True)

    shared = service.export_backup(path.name)

    assert shared.parent == service.working_dir / "exports"
    assert shared.read_bytes() == path.read_bytes()


def test_export_without_sharing_raises_unavailable(working_dir, clock):
    with BackupService(
        working_dir=working_dir, settings={}, share_target=UnavailableShareTarget(), clock=clock
    ) as svc:
        path = svc.create_backup(manual=True)
        with pytest.raises(UnavailableError):
            svc.export_backup(path.name)


def test_export_missing_backup_raises_not_found(service):
    with pytest.raises(NotFoundError):
        service.export_backup("backup_2024-01-01_1.json")


def test_directory_share_target_reports_availability(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    assert DirectoryShareTarget(tmp_path / "outbox").is_available() is True
    assert DirectoryShareTarget(blocker / "outbox").is_available() is False
