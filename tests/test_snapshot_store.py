"""
Tests for the local snapshot store.

All operations must degrade to False/None instead of raising, while the
failure reason stays available through last_error.
"""

import json
from datetime import datetime, timedelta, timezone

from trackersync.core.dataset.templates import FINANCE_COLLECTIONS
from trackersync.core.errors import StorageError
from trackersync.core.snapshot.store import (
    DEFAULT_SNAPSHOT_KEY,
    LocalSnapshotStore,
    StorageErrorKind,
    StorageResult,
    default_snapshot_dir,
)


class TestSaveAndLoad:
    """Round-tripping the finance subset."""

    def test_save_returns_true(self, snapshot_store, sample_dataset):
        assert snapshot_store.save(sample_dataset) is True
        assert snapshot_store.exists() is True
        assert snapshot_store.path.name == f"{DEFAULT_SNAPSHOT_KEY}.json"

    def test_round_trip_finance_subset(self, snapshot_store, sample_dataset):
        """Loaded finance data equals the saved subset after a JSON round-trip."""
        snapshot_store.save(sample_dataset)
        loaded = snapshot_store.load()

        expected = {name: sample_dataset[name] for name in FINANCE_COLLECTIONS}
        expected["metadata"] = sample_dataset["metadata"]
        assert json.dumps(loaded, sort_keys=True) == json.dumps(expected, sort_keys=True)

    def test_operational_collections_not_stored(self, snapshot_store, sample_dataset):
        snapshot_store.save(sample_dataset)
        raw = json.loads(snapshot_store.path.read_text())
        assert "products" not in raw["financeData"]
        assert "sales" not in raw["financeData"]

    def test_persisted_layout(self, snapshot_store, sample_dataset):
        """The file holds version, timestamp and camelCase financeData."""
        snapshot_store.save(sample_dataset)
        raw = json.loads(snapshot_store.path.read_text())
        assert raw["version"] == "1.0.0"
        assert raw["timestamp"].endswith("Z")
        assert set(raw["financeData"]) == {
            "partners",
            "withdrawals",
            "cashInjections",
            "cashFlows",
            "metadata",
        }

    def test_save_overwrites_previous(self, snapshot_store, sample_dataset):
        snapshot_store.save(sample_dataset)
        sample_dataset["partners"] = []
        snapshot_store.save(sample_dataset)
        assert snapshot_store.load()["partners"] == []

    def test_no_temp_file_left(self, snapshot_store, sample_dataset):
        snapshot_store.save(sample_dataset)
        assert list(snapshot_store.directory.glob("*.tmp")) == []


class TestLoadFailures:
    """load() returns None for missing, malformed or unreadable snapshots."""

    def test_missing(self, snapshot_store):
        assert snapshot_store.load() is None
        assert snapshot_store.last_error.kind == StorageErrorKind.MISSING

    def test_invalid_json(self, snapshot_store):
        snapshot_store.directory.mkdir(parents=True)
        snapshot_store.path.write_text("{not json")
        assert snapshot_store.load() is None
        assert snapshot_store.last_error.kind == StorageErrorKind.MALFORMED

    def test_missing_version(self, snapshot_store):
        snapshot_store.directory.mkdir(parents=True)
        snapshot_store.path.write_text(json.dumps({"financeData": {}}))
        assert snapshot_store.load() is None
        assert snapshot_store.last_error.kind == StorageErrorKind.MALFORMED

    def test_missing_finance_data(self, snapshot_store):
        snapshot_store.directory.mkdir(parents=True)
        snapshot_store.path.write_text(json.dumps({"version": "1.0.0"}))
        assert snapshot_store.load() is None

    def test_bad_collection_keeps_siblings(self, snapshot_store):
        """A null or mistyped collection reads as empty; the rest survives."""
        snapshot_store.directory.mkdir(parents=True)
        withdrawal = {"id": "W1", "partnerId": "P1", "amount": 100}
        snapshot_store.path.write_text(
            json.dumps(
                {
                    "version": "1.0.0",
                    "timestamp": 12345,
                    "financeData": {
                        "partners": None,
                        "withdrawals": [withdrawal],
                        "cashInjections": "CI1",
                        "metadata": None,
                    },
                }
            )
        )

        finance = snapshot_store.load()

        assert finance == {
            "partners": [],
            "withdrawals": [withdrawal],
            "cashInjections": [],
            "cashFlows": [],
            "metadata": {},
        }
        assert snapshot_store.last_error is None
        assert snapshot_store.age() is None

    def test_unreadable(self, snapshot_store):
        """A directory in place of the file is unreadable, not an exception."""
        snapshot_store.path.mkdir(parents=True)
        assert snapshot_store.load() is None
        assert snapshot_store.last_error.kind == StorageErrorKind.UNREADABLE

    def test_success_clears_last_error(self, snapshot_store, sample_dataset):
        snapshot_store.load()
        snapshot_store.save(sample_dataset)
        assert snapshot_store.last_error is None


class TestSaveFailures:
    """save() returns False on storage failure."""

    def test_directory_is_a_file(self, tmp_path, sample_dataset):
        blocker = tmp_path / "blocked"
        blocker.write_text("")
        store = LocalSnapshotStore(blocker)
        assert store.save(sample_dataset) is False
        assert store.last_error.kind == StorageErrorKind.WRITE_FAILED

    def test_unserializable_data(self, snapshot_store):
        dataset = {"partners": [{"id": "P1", "joined": object()}], "metadata": {}}
        assert snapshot_store.save(dataset) is False
        assert snapshot_store.last_error.kind == StorageErrorKind.WRITE_FAILED


class TestAge:
    """Snapshot age introspection."""

    def test_no_snapshot(self, snapshot_store):
        assert snapshot_store.age() is None

    def test_age_units(self, snapshot_store, sample_dataset):
        created = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert snapshot_store.write(sample_dataset, now=created).ok

        age = snapshot_store.age(now=created + timedelta(days=2, hours=3, minutes=5))

        assert age.days == 2
        assert age.hours == 51
        assert age.minutes == 51 * 60 + 5
        assert age.milliseconds == age.minutes * 60 * 1000

    def test_fresh_snapshot(self, snapshot_store, sample_dataset):
        snapshot_store.save(sample_dataset)
        age = snapshot_store.age()
        assert age.minutes == 0
        assert age.days == 0


class TestClear:
    def test_clear_removes_snapshot(self, snapshot_store, sample_dataset):
        snapshot_store.save(sample_dataset)
        assert snapshot_store.clear() is True
        assert snapshot_store.exists() is False
        assert snapshot_store.load() is None

    def test_clear_when_absent(self, snapshot_store):
        assert snapshot_store.clear() is True


class TestStorageResult:
    def test_success(self):
        result = StorageResult.success(3)
        assert result.ok is True
        assert result.to_error() is None

    def test_failure_to_error(self):
        result = StorageResult.failure(StorageErrorKind.MALFORMED, "bad json")
        error = result.to_error()
        assert isinstance(error, StorageError)
        assert str(error) == "bad json"
        assert error.context["kind"] == StorageErrorKind.MALFORMED


class TestDefaultDirectory:
    def test_uses_xdg_data_home(self, tmp_path, monkeypatch):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert default_snapshot_dir() == tmp_path / "trackersync"
        assert LocalSnapshotStore().directory == tmp_path / "trackersync"
