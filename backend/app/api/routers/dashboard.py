"""Dashboard summary endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...api.dependencies import get_summary_service, get_today
from ...domain.dashboard import DashboardSummaryService
from ...infra.logging import get_logger
from ...infra.metrics import get_metrics_client

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])
logger = get_logger(__name__)
metrics = get_metrics_client()


class TotalsSection(BaseModel):
    week: float
    month: float
    year: float
    all: float


class PeriodsSection(BaseModel):
    week_start: date
    month_start: date
    year_start: date
    end_exclusive: date


class DailyQuantity(BaseModel):
    date: date
    quantity: float
    count: int


class MomentumSection(BaseModel):
    daily: list[DailyQuantity] = Field(default_factory=list)


class DashboardMeta(BaseModel):
    generated_at: datetime
    reference_date: date
    time_window_days: int
    entry_count: int


class DashboardSummaryResponse(BaseModel):
    totals: TotalsSection
    periods: PeriodsSection
    momentum: MomentumSection
    meta: DashboardMeta


@router.get(
    "/summary",
    response_model=DashboardSummaryResponse,
    summary="Week, month, year and all-time to-date totals",
)
def get_dashboard_summary(
    time_window_days: Annotated[Optional[int], Query(ge=1, le=30)] = None,
    reference_date: Annotated[
        Optional[date],
        Query(description="Override today's date for the to-date windows."),
    ] = None,
    today: date = Depends(get_today),
    service: DashboardSummaryService = Depends(get_summary_service),
) -> DashboardSummaryResponse:
    """Return the dashboard summary payload."""

    metrics.increment("dashboard_summary_http_total")
    payload = service.build_summary(
        reference=reference_date or today,
        time_window_days=time_window_days,
    )
    logger.debug(
        "dashboard_summary_payload",
        extra={
            "time_window_days": time_window_days,
            "reference_date": str(reference_date or today),
        },
    )
    return DashboardSummaryResponse.model_validate(payload)
