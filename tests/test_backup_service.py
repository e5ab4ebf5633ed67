import json
import threading
from datetime import timedelta

import pytest

from backup import BackupService
from backup.errors import NotFoundError, StorageError, ValidationError
from backup.state import INDEX_KEY, LAST_BACKUP_KEY
from core.kvstore import KeyValueStore

from conftest import seed_state


def _automatic(service):
    return [item for item in service.list_backups() if not item.manual]


def test_weekly_schedule_keeps_three_automatic_backups(service, clock):
    service.set_config({"backup_frequency": "weekly", "max_backups": 3})
    seed_state(service.store)

    created = []
    for _ in range(4):
        path = service.check_automatic_backup()
        assert path is not None
        created.append(path)
        clock.advance(days=7)

    names = [item.filename for item in _automatic(service)]
    assert len(names) == 3
    assert created[0].name not in names
    assert set(names) == {path.name for path in created[1:]}


def test_check_is_idle_until_the_week_has_passed(service, clock):
    service.set_config({"backup_frequency": "weekly"})
    assert service.check_automatic_backup() is not None

    clock.advance(days=6, hours=23)
    assert service.check_automatic_backup() is None
    assert service.next_backup_due() == service.last_backup_at() + timedelta(days=7)

    clock.advance(hours=1)
    assert service.check_automatic_backup() is not None
    assert len(_automatic(service)) == 2


def test_disabled_policy_never_creates(service, clock):
    service.set_config({"auto_backup_enabled": False})

    assert service.check_automatic_backup() is None
    clock.advance(days=90)
    assert service.check_automatic_backup() is None
    assert service.list_backups() == []
    assert service.next_backup_due() is None


def test_create_records_last_backup_time(service, clock):
    assert service.last_backup_at() is None

    service.create_backup(manual=True)

    assert service.store.get(LAST_BACKUP_KEY) == "2024-03-01T09:30:00.000Z"
    assert service.last_backup_at() == clock()


def test_manual_backup_lifecycle(service):
    path = service.create_backup(manual=True)

    listing = service.list_backups()
    assert [item.filename for item in listing] == [path.name]
    assert listing[0].manual is True
    assert listing[0].size == path.stat().st_size
    assert listing[0].date.endswith("Z")

    snapshot = service.read_backup(path.name)
    assert snapshot.payload["orders"] == []

    service.delete_backup(path.name)
    assert service.list_backups() == []
    assert json.loads(service.store.get(INDEX_KEY)) == []
    with pytest.raises(NotFoundError):
        service.read_backup(path.name)


def test_initialize_is_idempotent_and_prunes_stale_index(working_dir, clock):
    with BackupService(working_dir=working_dir, settings={}, clock=clock) as svc:
        path = svc.create_backup(manual=True)
        path.unlink()
        svc.initialize()
        svc.initialize()
        assert json.loads(svc.store.get(INDEX_KEY)) == []
        assert svc.backups_dir.is_dir()


def test_custom_backup_directory_from_settings(working_dir, clock):
    settings = {"backup": {"directory": "snapshots"}}
    with BackupService(working_dir=working_dir, settings=settings, clock=clock) as svc:
        path = svc.create_backup(manual=True)
        assert path.parent == working_dir / "snapshots"


def test_cloud_location_is_accepted_but_stays_local(service):
    config = service.set_config({"backup_location": "cloud"})

    assert config.backup_location == "cloud"
    path = service.create_backup(manual=True)
    assert path.parent == service.backups_dir


def test_read_backup_rejects_corrupt_file(service):
    corrupt = service.backups_dir / "backup_2024-01-01_5.json"
    corrupt.write_text("{oops", encoding="utf-8")

    with pytest.raises(ValidationError):
        service.read_backup(corrupt.name)


def test_concurrent_backups_all_succeed(service):
    service.set_config({"max_backups": 3})
    errors = []

    def worker(manual):
        try:
            for _ in range(3):
                service.create_backup(manual=manual)
        except Exception as exc:  # pragma: no cover - reported below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n % 2 == 0,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    listing = service.list_backups()
    assert sum(1 for item in listing if item.manual) == 6
    assert sum(1 for item in listing if not item.manual) == 3
    index = {entry["filename"] for entry in json.loads(service.store.get(INDEX_KEY))}
    assert index == {item.filename for item in listing}


def test_backup_log_lines_stay_whole_under_threads(service):
    def worker(n):
        for index in range(50):
            service.logger.info("load_test", worker=n, index=index)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    lines = service.logger.path.read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert sum(1 for record in records if record["event"] == "load_test") == 200


def test_failed_initialize_closes_owned_store(working_dir, clock, monkeypatch):
    opened = []

    class RecordingStore(KeyValueStore):
        def __init__(self, path):
            super().__init__(path)
            self.closed = False
            opened.append(self)

        def close(self):
            self.closed = True
            super().close()

    monkeypatch.setattr("backup.api.KeyValueStore", RecordingStore)
    (working_dir / "blocker").write_text("not a directory", encoding="utf-8")

    with pytest.raises(StorageError):
        BackupService(working_dir=working_dir, settings={"backup": {"directory": "blocker/backups"}}, clock=clock)

    assert len(opened) == 1
    assert opened[0].closed is True
