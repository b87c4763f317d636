"""Seed script for the run log.

Merges a handful of sample entries so local UIs and API calls have data to
read. Seed ids are fixed, so running it twice leaves a single copy.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import List

from backend.app.config import load_settings
from backend.app.domain.runlog import Entry, RunLogStore, build_blob_store


def build_seed_entries(today: date) -> List[Entry]:
    """Return static seed entries spread across the current week, month and year."""

    return [
        Entry(
            entry_id="seed_0001",
            entry_date=today,
            quantity=3.1,
            note="Easy recovery loop",
        ),
        Entry(
            entry_id="seed_0002",
            entry_date=today - timedelta(days=2),
            quantity=6.25,
            note="Tempo intervals",
        ),
        Entry(
            entry_id="seed_0003",
            entry_date=today - timedelta(days=12),
            quantity=10.0,
            note="Long run, seeded via scripts/seed_runs.py",
        ),
        Entry(
            entry_id="seed_0004",
            entry_date=today - timedelta(days=75),
            quantity=5.0,
            note="",
        ),
    ]


def seed_runs() -> int:
    settings = load_settings()
    store = RunLogStore(build_blob_store(settings), storage_key=settings.storage.key)
    store.load()
    records = build_seed_entries(date.today())
    store.merge(records)
    return len(records)


def main() -> None:
    inserted = seed_runs()
    print(f"Seeded {inserted} run entries.")


if __name__ == "__main__":
    main()
