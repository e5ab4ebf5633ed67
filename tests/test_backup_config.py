import json

import pytest

from backup.config import ConfigStore
from backup.errors import ValidationError
from backup.logs import BackupLogger
from backup.state import CONFIG_KEY
from backup.types import BackupConfig
from core.kvstore import KeyValueStore


def test_initialize_seeds_defaults_once(service):
    assert service.get_config() == BackupConfig()

    service.set_config({"max_backups": 9})
    service.initialize()

    assert service.get_config().max_backups == 9


def test_set_config_round_trip(service):
    saved = service.set_config(
        BackupConfig(auto_backup_enabled=False, backup_frequency="daily", max_backups=2, include_images=True)
    )

    loaded = service.get_config()
    assert loaded == saved
    assert loaded.backup_frequency == "daily"
    assert loaded.include_images is True


@pytest.mark.parametrize("max_backups", [0, -3])
def test_set_config_rejects_non_positive_max(service, max_backups):
    with pytest.raises(ValidationError):
        service.set_config({"max_backups": max_backups})
    assert service.get_config().max_backups >= 1


def test_set_config_rejects_unknown_fields_and_values(service):
    with pytest.raises(ValidationError):
        service.set_config({"retention_days": 3})
    with pytest.raises(ValidationError):
        service.set_config({"backup_frequency": "hourly"})


def test_stored_config_is_clamped_on_read(tmp_path):
    with KeyValueStore(tmp_path / "state.db") as store:
        store.set(CONFIG_KEY, json.dumps({"max_backups": 0, "backup_frequency": "yearly"}))
        config = ConfigStore(store, logger=BackupLogger(tmp_path)).get()

    assert config is not None
    assert config.max_backups == 1
    assert config.backup_frequency == "weekly"
    assert config.auto_backup_enabled is True


def test_undecodable_config_reads_as_absent(tmp_path):
    with KeyValueStore(tmp_path / "state.db") as store:
        store.set(CONFIG_KEY, "{not json")
        assert ConfigStore(store, logger=BackupLogger(tmp_path)).get() is None


@pytest.mark.parametrize("field", ["auto_backup_enabled", "include_images"])
def test_set_config_rejects_non_boolean_flags(service, field):
    with pytest.raises(ValidationError):
        service.set_config({field: "maybe"})
    with pytest.raises(ValidationError):
        BackupConfig(**{field: 1}).validate()
    assert service.get_config() == BackupConfig()
