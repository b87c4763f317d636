"""Calendar period helpers."""

from .boundaries import (
    Instant,
    PeriodBounds,
    end_exclusive_next_day,
    period_bounds,
    start_of_day,
    start_of_month,
    start_of_week,
    start_of_year,
    within_range,
)

__all__ = [
    "Instant",
    "PeriodBounds",
    "end_exclusive_next_day",
    "period_bounds",
    "start_of_day",
    "start_of_month",
    "start_of_week",
    "start_of_year",
    "within_range",
]
