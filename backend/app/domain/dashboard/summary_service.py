"""Aggregation helpers for `/api/dashboard/summary`."""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from ...infra.logging import get_logger
from ...infra.metrics import MetricsClient, get_metrics_client
from ..periods import Instant, period_bounds, start_of_day, within_range
from ..runlog.models import coerce_quantity, format_entry_date, parse_entry_date
from ..runlog.store import RunLogStore

__all__ = [
    "DashboardSummaryService",
    "PeriodTotals",
    "compute_totals",
    "DEFAULT_TIME_WINDOW_DAYS",
    "MAX_TIME_WINDOW_DAYS",
]

logger = get_logger(__name__)

DEFAULT_TIME_WINDOW_DAYS = 7
MAX_TIME_WINDOW_DAYS = 30
_ZERO = Decimal("0")


@dataclass(frozen=True)
class PeriodTotals:
    """To-date totals for the current week, month and year, plus all time."""

    week: float
    month: float
    year: float
    all_time: float

    def as_dict(self) -> dict[str, float]:
        return {
            "week": self.week,
            "month": self.month,
            "year": self.year,
            "all": self.all_time,
        }


def _entry_amount(entry: Any) -> Decimal:
    return Decimal(str(coerce_quantity(getattr(entry, "quantity", None))))


def compute_totals(entries: Iterable[Any], reference: Instant) -> PeriodTotals:
    """Sum quantities into week/month/year/all buckets in a single pass.

    Entries whose date cannot be parsed are skipped for every bucket. Sums are
    exact decimals, so the result does not depend on input order.
    """

    bounds = period_bounds(reference)
    week = month = year = total = _ZERO
    for entry in entries:
        entry_date = parse_entry_date(getattr(entry, "entry_date", None))
        if entry_date is None:
            continue
        amount = _entry_amount(entry)
        total += amount
        if within_range(entry_date, bounds.year_start, bounds.end_exclusive):
            year += amount
        if within_range(entry_date, bounds.month_start, bounds.end_exclusive):
            month += amount
        if within_range(entry_date, bounds.week_start, bounds.end_exclusive):
            week += amount
    return PeriodTotals(
        week=float(week),
        month=float(month),
        year=float(year),
        all_time=float(total),
    )


class DashboardSummaryService:
    """Builds the dashboard payload from the run store."""

    def __init__(
        self,
        store: RunLogStore,
        *,
        default_time_window_days: int = DEFAULT_TIME_WINDOW_DAYS,
        max_time_window_days: int = MAX_TIME_WINDOW_DAYS,
        metrics: MetricsClient | None = None,
    ) -> None:
        self._store = store
        self._default_time_window_days = default_time_window_days
        self._max_time_window_days = max_time_window_days
        self._metrics = metrics or get_metrics_client()

    def build_summary(
        self,
        *,
        reference: Optional[Instant] = None,
        time_window_days: int | None = None,
    ) -> dict[str, Any]:
        window_days = self._normalize_window(time_window_days)
        reference_date = start_of_day(reference or date.today())
        bounds = period_bounds(reference_date)
        self._metrics.increment("dashboard_summary_requests_total")
        start = time.perf_counter()
        entries = self._store.entries()
        totals = compute_totals(entries, reference_date)
        daily = self._daily_series(entries, reference_date, window_days)
        duration_ms = int((time.perf_counter() - start) * 1000)
        self._metrics.gauge("dashboard_summary_last_duration_ms", duration_ms)
        logger.info(
            "dashboard_summary_generated",
            extra={
                "duration_ms": duration_ms,
                "time_window_days": window_days,
                "reference_date": format_entry_date(reference_date),
            },
        )
        return {
            "totals": totals.as_dict(),
            "periods": {
                "week_start": bounds.week_start,
                "month_start": bounds.month_start,
                "year_start": bounds.year_start,
                "end_exclusive": bounds.end_exclusive,
            },
            "momentum": {"daily": daily},
            "meta": {
                "generated_at": datetime.now(timezone.utc),
                "reference_date": reference_date,
                "time_window_days": window_days,
                "entry_count": len(entries),
            },
        }

    # ------------------------------------------------------------------
    # Utility helpers
    # ------------------------------------------------------------------
    def _daily_series(
        self,
        entries: Iterable[Any],
        reference_date: date,
        days: int,
    ) -> list[dict[str, Any]]:
        window_start = reference_date - timedelta(days=days - 1)
        window_end = reference_date + timedelta(days=1)
        sums: Dict[date, Decimal] = defaultdict(Decimal)
        counts: Dict[date, int] = defaultdict(int)
        for entry in entries:
            entry_date = parse_entry_date(getattr(entry, "entry_date", None))
            if entry_date is None or not within_range(entry_date, window_start, window_end):
                continue
            sums[entry_date] += _entry_amount(entry)
            counts[entry_date] += 1
        series: list[dict[str, Any]] = []
        for offset in range(days):
            bucket_date = window_start + timedelta(days=offset)
            series.append(
                {
                    "date": bucket_date,
                    "quantity": float(sums.get(bucket_date, _ZERO)),
                    "count": counts.get(bucket_date, 0),
                }
            )
        return series

    def _normalize_window(self, window: int | None) -> int:
        base = window or self._default_time_window_days
        return max(1, min(base, self._max_time_window_days))
