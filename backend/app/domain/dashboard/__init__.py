"""Dashboard aggregation package."""

from .summary_service import DashboardSummaryService, PeriodTotals, compute_totals

__all__ = ["DashboardSummaryService", "PeriodTotals", "compute_totals"]
