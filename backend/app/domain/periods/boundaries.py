"""Calendar period boundaries for to-date totals.

Every helper accepts either a ``date`` or a ``datetime`` and works on the
naive local calendar date; midnight of a day is represented by the ``date``
itself. Weeks start on Monday.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Union

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

Instant = Union[date, datetime]


def start_of_day(instant: Instant) -> date:
    if isinstance(instant, datetime):
        return instant.date()
    return instant


def start_of_week(instant: Instant) -> date:
    day = start_of_day(instant)
    weekday = day.isoweekday()  # Monday=1 .. Sunday=7
    offset = 6 if weekday == 7 else weekday - 1
    return day - timedelta(days=offset)


def start_of_month(instant: Instant) -> date:
    return start_of_day(instant).replace(day=1)


def start_of_year(instant: Instant) -> date:
    return start_of_day(instant).replace(month=1, day=1)


def end_exclusive_next_day(instant: Instant) -> date:
    """Midnight after ``instant``'s date, so entries dated today stay in range."""

    return start_of_day(instant) + timedelta(days=1)


def within_range(value: Instant, start_inclusive: date, end_exclusive: date) -> bool:
    day = start_of_day(value)
    return start_inclusive <= day < end_exclusive


@dataclass(frozen=True)
class PeriodBounds:
    """Week/month/year starts sharing one exclusive end."""

    reference: date
    week_start: date
    month_start: date
    year_start: date
    end_exclusive: date


def period_bounds(instant: Instant) -> PeriodBounds:
    reference = start_of_day(instant)
    return PeriodBounds(
        reference=reference,
        week_start=start_of_week(reference),
        month_start=start_of_month(reference),
        year_start=start_of_year(reference),
        end_exclusive=end_exclusive_next_day(reference),
    )
