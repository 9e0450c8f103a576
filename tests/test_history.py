import json

import pytest

from specsync.detector import diff_configs
from specsync.history import FileHistoryStore, MemoryHistoryStore, PersistenceFailure
from specsync.parser import parse_text
from specsync.snapshot import FileSnapshotStore


def test_empty_history():
    store = MemoryHistoryStore()
    assert store.get_last_fingerprint() == ""
    assert store.entries() == []


def test_history_is_capped():
    store = MemoryHistoryStore(limit=10)
    for i in range(12):
        store.record_entry(f"fp{i}", [])
    entries = store.entries()
    assert len(entries) == 10
    assert entries[0].fingerprint == "fp2"
    assert store.get_last_fingerprint() == "fp11"
    assert not any(e.processed for e in entries)


def test_round_trip_reproduces_changes(tmp_path, spec_text):
    changes = diff_configs({}, parse_text(spec_text).tracked_config())
    FileHistoryStore(tmp_path / "history.json").record_entry("abc", changes)

    reloaded = FileHistoryStore(tmp_path / "history.json").entries()
    assert reloaded[-1].changes == changes
    assert reloaded[-1].fingerprint == "abc"


def test_mark_processed(tmp_path):
    store = FileHistoryStore(tmp_path / "history.json")
    store.record_entry("one", [])
    store.record_entry("two", [])
    assert store.mark_processed("one") is True
    assert [e.processed for e in store.entries()] == [True, False]
    assert store.mark_processed("missing") is False


def test_corrupt_history_reads_as_empty(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")
    store = FileHistoryStore(path)
    assert store.get_last_fingerprint() == ""
    assert store.entries() == []

    store.record_entry("fresh", [])
    assert json.loads(path.read_text())["last_fingerprint"] == "fresh"


def test_unwritable_history_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    store = FileHistoryStore(blocker / "history.json")
    with pytest.raises(PersistenceFailure):
        store.record_entry("fp", [])


def test_snapshot_store(tmp_path):
    store = FileSnapshotStore(tmp_path / "state" / "workflow-config.json")
    assert store.load() == {}
    store.save({"sources": {"commands": "a"}})
    assert store.load() == {"sources": {"commands": "a"}}

    store.path.write_text("[1, 2]")
    assert store.load() == {}


def test_unwritable_snapshot_raises(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    with pytest.raises(PersistenceFailure):
        FileSnapshotStore(blocker / "workflow-config.json").save({})


@pytest.mark.parametrize("limit", [0, -1])
def test_history_limit_must_be_positive(limit):
    with pytest.raises(ValueError):
        MemoryHistoryStore(limit=limit)
