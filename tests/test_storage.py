"""Tests for JSON snapshot file persistence."""

import json

import pytest

from bill_splitter.exceptions import SnapshotImportError, StorageError
from bill_splitter.storage import SnapshotFile
from bill_splitter.store import LedgerStore


@pytest.fixture
def snapshot_file(tmp_path):
    return SnapshotFile(tmp_path / "data" / "ledger.json")


def test_save_creates_directories(snapshot_file):
    snapshot_file.save(LedgerStore.with_demo_data())

    assert snapshot_file.exists()
    data = json.loads(snapshot_file.path.read_text(encoding="utf-8"))
    assert data["participantCount"] == 4
    assert len(data["bills"]) == 4


def test_save_and_load_round_trip(snapshot_file):
    original = LedgerStore.with_demo_data()
    original.rename_participant(3, "Dee")
    original.group_by_payer()
    snapshot_file.save(original)

    loaded = LedgerStore(["X", "Y"])
    snapshot_file.load(loaded)

    assert loaded.participant_names == ["Alice", "Bob", "Charlie", "Dee"]
    assert loaded.expenses == original.expenses
    assert loaded.is_grouped


def test_missing_file(snapshot_file):
    assert not snapshot_file.exists()

    with pytest.raises(StorageError, match="Error reading"):
        snapshot_file.load(LedgerStore())


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageError, match="Invalid JSON"):
        SnapshotFile(path).load(LedgerStore())


def test_invalid_structure_leaves_store_unchanged(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"participantCount": 9}), encoding="utf-8")
    store = LedgerStore.with_demo_data()

    with pytest.raises(SnapshotImportError):
        SnapshotFile(path).load(store)

    assert store.participant_count == 4
    assert len(store.expenses) == 4
