"""Shared API dependencies."""

from __future__ import annotations

from datetime import date
from functools import lru_cache

from fastapi import Depends

from ..config import Settings, load_settings
from ..domain.dashboard import DashboardSummaryService
from ..domain.runlog import RunLogStore, build_blob_store
from ..infra.logging import get_logger

__all__ = [
    "get_run_store",
    "get_settings",
    "get_summary_service",
    "get_today",
]

logger = get_logger(__name__)


@lru_cache()
def get_settings() -> Settings:
    """Return settings loaded once per process."""

    return load_settings()


@lru_cache()
def _run_store_singleton() -> RunLogStore:
    settings = get_settings()
    blob_store = build_blob_store(settings, fallback_to_memory=True)
    store = RunLogStore(blob_store, storage_key=settings.storage.key)
    loaded = store.load()
    logger.info(
        "run_store_initialized",
        extra={"backend": settings.storage.backend, "entries": loaded},
    )
    return store


def get_run_store() -> RunLogStore:
    """Return the process-wide run store instance."""

    return _run_store_singleton()


def get_today() -> date:
    """Reference date for submissions and to-date totals."""

    return date.today()


def get_summary_service(
    store: RunLogStore = Depends(get_run_store),
    settings: Settings = Depends(get_settings),
) -> DashboardSummaryService:
    return DashboardSummaryService(
        store,
        default_time_window_days=settings.dashboard.default_window_days,
        max_time_window_days=settings.dashboard.max_window_days,
    )
