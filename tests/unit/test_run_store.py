"""Tests for the run store: mutations, persistence and forgiving loads."""

from __future__ import annotations

import json
from datetime import date

import pytest

from backend.app.domain.runlog import (
    Entry,
    InMemoryBlobStore,
    RejectionReason,
    RunLogStore,
    STORAGE_KEY,
)
from backend.app.domain.runlog import store as store_module
from backend.app.infra.metrics import InMemoryMetricsClient
from tests.helpers.logging import (
    RecordingLogger,
    assert_extra_contains,
    assert_extra_has_keys,
    find_log,
)

pytestmark = [pytest.mark.runlog]

TODAY = date(2024, 6, 20)


class FailingBlobStore(InMemoryBlobStore):
    def __init__(self, initial=None) -> None:
        super().__init__(initial)
        self.fail = False

    def write(self, key: str, value: str) -> None:
        if self.fail:
            raise OSError("disk full")
        super().write(key, value)


def _store(blob_store: InMemoryBlobStore | None = None) -> RunLogStore:
    return RunLogStore(blob_store or InMemoryBlobStore(), metrics=InMemoryMetricsClient())


def _persisted(blob_store: InMemoryBlobStore) -> list[dict[str, object]]:
    return json.loads(blob_store.read(STORAGE_KEY) or "[]")


def test_add_entry_persists_collection():
    blob_store = InMemoryBlobStore()
    store = _store(blob_store)

    result = store.add_entry({"quantity": "5.25", "date": "2024-06-18", "note": " hills "}, today=TODAY)

    assert result.ok
    assert len(store) == 1
    assert blob_store.write_count == 1
    assert _persisted(blob_store) == [
        {"id": result.entry.entry_id, "date": "2024-06-18", "quantity": 5.25, "note": "hills"}
    ]


def test_add_entry_ignores_client_supplied_id():
    store = _store()

    result = store.add_entry({"id": "mine", "quantity": 1, "date": "2024-06-18"}, today=TODAY)

    assert result.ok
    assert result.entry.entry_id != "mine"


def test_rejected_submission_leaves_store_untouched():
    blob_store = InMemoryBlobStore()
    store = _store(blob_store)

    result = store.add_entry({"quantity": "abc", "date": "2024-06-18"}, today=TODAY)

    assert not result.ok
    assert result.rejection.reason is RejectionReason.INVALID_QUANTITY
    assert len(store) == 0
    assert blob_store.write_count == 0


def test_rejection_is_logged_with_reason(monkeypatch):
    recorder = RecordingLogger()
    monkeypatch.setattr(store_module, "logger", recorder)
    store = _store()

    store.add_entry({"quantity": 2, "date": "2024-06-21"}, today=TODAY)

    record = find_log(recorder.records, level="info", message="run_entry_rejected")
    assert_extra_has_keys(record, ["operation", "reason", "detail"])
    assert_extra_contains(record, operation="add", reason="future_date")


def test_remove_entry_and_unknown_id_noop():
    blob_store = InMemoryBlobStore()
    store = _store(blob_store)
    added = store.add_entry({"quantity": 2, "date": "2024-06-18"}, today=TODAY).entry

    assert store.remove_entry("does-not-exist") is False
    assert blob_store.write_count == 1
    assert store.remove_entry(added.entry_id) is True
    assert len(store) == 0
    assert _persisted(blob_store) == []


def test_clear_drops_everything():
    blob_store = InMemoryBlobStore()
    store = _store(blob_store)
    for day in ("2024-06-17", "2024-06-18"):
        store.add_entry({"quantity": 1, "date": day}, today=TODAY)

    assert store.clear() == 2
    assert store.entries() == ()
    assert _persisted(blob_store) == []


def test_update_entry_keeps_id_and_position():
    store = _store()
    first = store.add_entry({"quantity": 1, "date": "2024-06-17"}, today=TODAY).entry
    store.add_entry({"quantity": 2, "date": "2024-06-18"}, today=TODAY)

    result = store.update_entry(
        first.entry_id, {"quantity": "7.5", "date": "2024-06-19", "note": "edited"}, today=TODAY
    )

    assert result.ok
    assert result.entry.entry_id == first.entry_id
    assert store.get_entry(first.entry_id).quantity == 7.5
    assert store.entries()[0].entry_id == first.entry_id
    assert len(store) == 2


def test_update_entry_unknown_id_is_rejected():
    store = _store()

    result = store.update_entry("ghost", {"quantity": 1, "date": "2024-06-18"}, today=TODAY)

    assert not result.ok
    assert result.rejection.reason is RejectionReason.MISSING_ID


def test_get_entry_raises_key_error():
    with pytest.raises(KeyError):
        _store().get_entry("missing")


def test_load_round_trips_persisted_entries():
    blob_store = InMemoryBlobStore()
    writer = _store(blob_store)
    writer.add_entry({"quantity": 3, "date": "2024-06-18", "note": "a"}, today=TODAY)
    writer.add_entry({"quantity": 4, "date": "2024-06-19", "note": "b"}, today=TODAY)

    reader = _store(blob_store)

    assert reader.load() == 2
    assert reader.entries() == writer.entries()


@pytest.mark.parametrize("raw", ["{not json", json.dumps({"id": "x"}), ""])
def test_load_treats_bad_blob_as_empty(monkeypatch, raw):
    recorder = RecordingLogger()
    monkeypatch.setattr(store_module, "logger", recorder)
    store = _store(InMemoryBlobStore({STORAGE_KEY: raw}))

    assert store.load() == 0
    assert store.entries() == ()
    if raw:
        assert recorder.events("warning")


def test_load_survives_deeply_nested_blob(monkeypatch):
    recorder = RecordingLogger()
    monkeypatch.setattr(store_module, "logger", recorder)
    store = _store(InMemoryBlobStore({STORAGE_KEY: "[" * 100000 + "]" * 100000}))

    assert store.load() == 0
    find_log(recorder.records, level="warning", message="run_store_blob_corrupt")


def test_load_keeps_very_large_quantities():
    blob = json.dumps(
        [
            {"id": "huge", "date": "2024-01-01", "quantity": 1e27},
            {"id": "int", "date": "2024-01-02", "quantity": 10**30},
        ]
    )
    store = _store(InMemoryBlobStore({STORAGE_KEY: blob}))

    assert store.load() == 2
    assert store.get_entry("huge").quantity == 1e27
    assert store.get_entry("int").quantity == 1e30


def test_load_drops_records_without_ids(monkeypatch):
    recorder = RecordingLogger()
    monkeypatch.setattr(store_module, "logger", recorder)
    blob = json.dumps(
        [
            {"id": "keep", "date": "2024-06-01", "quantity": 2},
            {"date": "2024-06-02", "quantity": 3},
            {"id": "bad-qty", "date": "2024-06-02", "quantity": "abc"},
        ]
    )
    store = _store(InMemoryBlobStore({STORAGE_KEY: blob}))

    assert store.load() == 1
    record = find_log(recorder.records, level="warning", message="run_store_records_dropped")
    assert_extra_contains(record, dropped=2)


def test_failed_write_leaves_memory_unchanged(monkeypatch):
    recorder = RecordingLogger()
    monkeypatch.setattr(store_module, "logger", recorder)
    blob_store = FailingBlobStore()
    store = _store(blob_store)
    kept = store.add_entry({"quantity": 1, "date": "2024-06-18"}, today=TODAY).entry
    blob_store.fail = True

    with pytest.raises(OSError):
        store.add_entry({"quantity": 2, "date": "2024-06-19"}, today=TODAY)
    with pytest.raises(OSError):
        store.clear()

    assert store.entries() == (kept,)
    failure = find_log(recorder.records, level="error", message="run_entries_persist_failed")
    assert failure.exc_info
    assert_extra_contains(failure, storage_key=STORAGE_KEY)


def test_search_is_case_insensitive_and_newest_first():
    store = _store()
    store.merge(
        [
            Entry(entry_id="1", entry_date=date(2024, 6, 1), quantity=3.0, note="Park loop"),
            Entry(entry_id="2", entry_date=date(2024, 6, 10), quantity=5.5, note="track"),
            Entry(entry_id="3", entry_date=date(2024, 5, 2), quantity=10.0, note="PARK race"),
        ]
    )

    assert [entry.entry_id for entry in store.search("park")] == ["1", "3"]
    assert [entry.entry_id for entry in store.search("2024-06")] == ["2", "1"]
    assert [entry.entry_id for entry in store.search("5.5")] == ["2"]
    assert [entry.entry_id for entry in store.search("   ")] == ["2", "1", "3"]


def test_store_metrics_track_mutations():
    metrics = InMemoryMetricsClient()
    store = RunLogStore(InMemoryBlobStore(), metrics=metrics)

    store.add_entry({"quantity": 1, "date": "2024-06-18"}, today=TODAY)
    store.add_entry({"quantity": 0, "date": "2024-06-18"}, today=TODAY)

    snapshot = metrics.snapshot()
    assert snapshot["counters"]["runlog_entries_added_total"] == 1
    assert snapshot["counters"]["runlog_entries_rejected_total"] == 1
    assert snapshot["gauges"]["runlog_entries"] == 1


def test_search_uses_the_whole_query():
    store = _store()
    note = "x" * 300
    store.merge(
        [
            Entry(entry_id="long", entry_date=date(2024, 6, 1), quantity=1.0, note=note),
            Entry(entry_id="prefix", entry_date=date(2024, 6, 2), quantity=1.0, note="x" * 256),
        ]
    )

    assert [entry.entry_id for entry in store.search(note)] == ["long"]
