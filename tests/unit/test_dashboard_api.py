"""FastAPI tests for `/api/dashboard/summary`."""

from __future__ import annotations

from datetime import date

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.app.api.dependencies import get_summary_service, get_today
from backend.app.api.routers import dashboard
from backend.app.domain.dashboard import DashboardSummaryService
from backend.app.domain.runlog import Entry, InMemoryBlobStore, RunLogStore
from backend.app.infra.metrics import InMemoryMetricsClient

pytestmark = [pytest.mark.api, pytest.mark.dashboard]


def _build_client(today: date) -> TestClient:
    store = RunLogStore(InMemoryBlobStore(), metrics=InMemoryMetricsClient())
    store.merge(
        [
            Entry(entry_id="a", entry_date=date(2024, 1, 1), quantity=10.0),
            Entry(entry_id="b", entry_date=date(2024, 6, 15), quantity=5.0),
            Entry(entry_id="c", entry_date=date(2024, 6, 20), quantity=3.0),
        ]
    )
    service = DashboardSummaryService(store, metrics=InMemoryMetricsClient())
    app = FastAPI()
    app.include_router(dashboard.router)
    app.dependency_overrides[get_summary_service] = lambda: service
    app.dependency_overrides[get_today] = lambda: today
    return TestClient(app)


def test_summary_totals_for_today():
    client = _build_client(date(2024, 6, 20))

    response = client.get("/api/dashboard/summary")

    assert response.status_code == 200
    body = response.json()
    assert body["totals"] == {"week": 3.0, "month": 8.0, "year": 18.0, "all": 18.0}
    assert body["periods"]["week_start"] == "2024-06-17"
    assert body["meta"]["reference_date"] == "2024-06-20"
    assert len(body["momentum"]["daily"]) == 7


def test_summary_reference_date_override():
    client = _build_client(date(2024, 6, 20))

    body = client.get(
        "/api/dashboard/summary",
        params={"reference_date": "2024-06-16", "time_window_days": 3},
    ).json()

    assert body["totals"] == {"week": 5.0, "month": 5.0, "year": 15.0, "all": 18.0}
    assert [bucket["date"] for bucket in body["momentum"]["daily"]] == [
        "2024-06-14",
        "2024-06-15",
        "2024-06-16",
    ]


def test_summary_rejects_out_of_range_window():
    client = _build_client(date(2024, 6, 20))

    assert client.get("/api/dashboard/summary", params={"time_window_days": 0}).status_code == 422
    assert client.get("/api/dashboard/summary", params={"time_window_days": 31}).status_code == 422
