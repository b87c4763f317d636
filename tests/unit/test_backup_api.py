"""FastAPI tests for JSON export and merge-on-import."""

from __future__ import annotations

import json
from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.app.api.dependencies import get_run_store, get_today
from backend.app.api.routers import backup
from backend.app.domain.runlog import Entry, InMemoryBlobStore, RunLogStore
from backend.app.infra.metrics import InMemoryMetricsClient

pytestmark = [pytest.mark.api, pytest.mark.runlog]


def _build_client(store: RunLogStore) -> TestClient:
    app = FastAPI()
    app.include_router(backup.router)
    app.dependency_overrides[get_run_store] = lambda: store
    app.dependency_overrides[get_today] = lambda: date(2024, 6, 20)
    return TestClient(app)


def _store(*entries: Entry) -> RunLogStore:
    store = RunLogStore(InMemoryBlobStore(), metrics=InMemoryMetricsClient())
    if entries:
        store.merge(entries)
    return store


def test_export_downloads_dated_attachment():
    store = _store(Entry(entry_id="a", entry_date=date(2024, 6, 1), quantity=3.5, note="n"))
    client = _build_client(store)

    response = client.get("/api/backup/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert response.headers["content-disposition"] == 'attachment; filename="runs_2024-06-20.json"'
    assert response.json() == [{"id": "a", "date": "2024-06-01", "quantity": 3.5, "note": "n"}]


def test_import_merges_and_reports_counts():
    store = _store(
        Entry(entry_id="a", entry_date=date(2024, 6, 1), quantity=1.0),
        Entry(entry_id="b", entry_date=date(2024, 6, 2), quantity=2.0),
    )
    client = _build_client(store)
    payload = json.dumps(
        [
            {"id": "b", "date": "2024-06-02", "quantity": 9, "note": "imported"},
            {"id": "c", "date": "2024-06-03", "miles": 4},
            {"id": "bad", "date": "2024-06-31", "quantity": 4},
        ]
    )

    response = client.post(
        "/api/backup/import", content=payload, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "message": "Imported 2 entries",
        "added": 1,
        "replaced": 1,
        "unchanged": 1,
        "dropped": 1,
        "total": 3,
    }
    assert store.get_entry("b").note == "imported"
    assert store.get_entry("c").quantity == 4.0


def test_import_rejects_non_array_without_touching_store():
    store = _store(Entry(entry_id="a", entry_date=date(2024, 6, 1), quantity=1.0))
    client = _build_client(store)

    response = client.post("/api/backup/import", content=b'{"id": "x"}')

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["error_code"] == "RUNLOG-INVALID-IMPORT"
    assert detail["message"] == "Could not import file. Please upload a valid JSON export."
    assert [entry.entry_id for entry in store.entries()] == ["a"]


def test_export_then_import_into_empty_store():
    source = _store(
        Entry(entry_id="a", entry_date=date(2024, 6, 1), quantity=3.25, note="tempo"),
        Entry(entry_id="b", entry_date=date(2024, 6, 9), quantity=10.0),
    )
    target = _store()

    exported = _build_client(source).get("/api/backup/export").content
    response = _build_client(target).post("/api/backup/import", content=exported)

    assert response.status_code == 200
    assert target.entries() == source.entries()
