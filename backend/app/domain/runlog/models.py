"""Run entry model plus the normalization rules shared by submit, load and import."""

from __future__ import annotations

import json
import math
import secrets
import time
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from ..periods import end_exclusive_next_day

__all__ = [
    "Entry",
    "EntryRejection",
    "NormalizationMode",
    "RejectionReason",
    "can_submit",
    "coerce_quantity",
    "format_entry_date",
    "format_quantity",
    "generate_entry_id",
    "normalize_entry",
    "parse_entry_date",
    "serialize_entries",
]

QUANTITY_STEP = Decimal("0.01")
LEGACY_QUANTITY_FIELD = "miles"


class NormalizationMode(str, Enum):
    """Where a raw record came from; each source applies slightly different rules."""

    SUBMISSION = "submission"
    LOAD = "load"
    IMPORT = "import"


class RejectionReason(str, Enum):
    INVALID_QUANTITY = "invalid_quantity"
    INVALID_DATE = "invalid_date"
    FUTURE_DATE = "future_date"
    MISSING_ID = "missing_id"
    MALFORMED_RECORD = "malformed_record"


@dataclass(frozen=True)
class EntryRejection:
    """Structured reason a raw record could not become an Entry."""

    reason: RejectionReason
    detail: str

    def as_dict(self) -> dict[str, str]:
        return {"reason": self.reason.value, "detail": self.detail}


@dataclass(frozen=True)
class Entry:
    """A single logged activity: quantity on a calendar date with an optional note."""

    entry_id: str
    entry_date: date
    quantity: float
    note: str = ""

    @property
    def date_text(self) -> str:
        return format_entry_date(self.entry_date)

    def with_changes(
        self,
        *,
        entry_date: date,
        quantity: float,
        note: str,
    ) -> "Entry":
        """Return an edited copy that keeps the original id."""

        return replace(self, entry_date=entry_date, quantity=quantity, note=note)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.entry_id,
            "date": self.date_text,
            "quantity": self.quantity,
            "note": self.note,
        }


def generate_entry_id() -> str:
    """Millisecond timestamp prefix plus a random hex suffix."""

    return f"{int(time.time() * 1000)}_{secrets.token_hex(6)}"


def coerce_quantity(value: Any) -> float:
    """Coerce to a non-negative amount rounded half-up to two decimals.

    Anything unparseable, non-finite or negative collapses to ``0.0``.
    """

    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (Decimal, int)):
        amount = Decimal(value)
    elif isinstance(value, (float, str)):
        text = str(value).strip()
        if not text:
            return 0.0
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return 0.0
    else:
        return 0.0
    if not amount.is_finite() or amount < 0:
        return 0.0
    if not math.isfinite(float(amount)):
        return 0.0
    with localcontext() as ctx:
        # room for every integer digit plus the two cents digits
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        rounded = amount.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
    return float(rounded)


def format_quantity(quantity: float) -> str:
    """Shortest decimal text for a canonical quantity (``3``, ``3.5``, ``3.25``)."""

    return f"{quantity:.2f}".rstrip("0").rstrip(".")


def parse_entry_date(value: Any) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` into a naive date, or ``None`` when invalid."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    parts = value.strip().split("-")
    if len(parts) != 3:
        return None
    if not all(part.isascii() and part.isdigit() for part in parts):
        return None
    year, month, day = (int(part) for part in parts)
    try:
        return date(year, month, day)
    except ValueError:
        return None


def format_entry_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def can_submit(quantity: Any, entry_date: Any, *, today: date) -> bool:
    """Pre-check a form submission without building an entry."""

    if coerce_quantity(quantity) <= 0:
        return False
    parsed = parse_entry_date(entry_date)
    if parsed is None:
        return False
    return parsed < end_exclusive_next_day(today)


def normalize_entry(
    raw: Any,
    *,
    mode: NormalizationMode,
    today: Optional[date] = None,
    id_factory: Callable[[], str] = generate_entry_id,
) -> Union[Entry, EntryRejection]:
    """Validate a loosely-typed record into an Entry or a rejection.

    ``SUBMISSION`` trims the note, fills missing ids and refuses future dates
    relative to ``today``. ``LOAD`` requires an id. ``IMPORT`` fills missing ids.
    """

    if not isinstance(raw, Mapping):
        return EntryRejection(
            RejectionReason.MALFORMED_RECORD,
            f"expected an object, got {type(raw).__name__}",
        )

    raw_quantity = raw.get("quantity")
    if raw_quantity is None:
        raw_quantity = raw.get(LEGACY_QUANTITY_FIELD)
    quantity = coerce_quantity(raw_quantity)
    if quantity <= 0:
        return EntryRejection(
            RejectionReason.INVALID_QUANTITY,
            "quantity must be a positive number",
        )

    entry_date = parse_entry_date(raw.get("date"))
    if entry_date is None:
        return EntryRejection(
            RejectionReason.INVALID_DATE,
            "date must be a valid YYYY-MM-DD calendar date",
        )

    if mode is NormalizationMode.SUBMISSION:
        reference = today or date.today()
        if entry_date >= end_exclusive_next_day(reference):
            return EntryRejection(
                RejectionReason.FUTURE_DATE,
                f"date {format_entry_date(entry_date)} is after {format_entry_date(reference)}",
            )

    raw_id = raw.get("id")
    entry_id = "" if raw_id is None else str(raw_id)
    if not entry_id.strip():
        if mode is NormalizationMode.LOAD:
            return EntryRejection(RejectionReason.MISSING_ID, "stored entry has no id")
        entry_id = id_factory()

    raw_note = raw.get("note")
    note = "" if raw_note is None else str(raw_note)
    if mode is NormalizationMode.SUBMISSION:
        note = note.strip()

    return Entry(
        entry_id=entry_id,
        entry_date=entry_date,
        quantity=quantity,
        note=note,
    )


def serialize_entries(entries: Iterable[Entry], *, indent: Optional[int] = None) -> str:
    return json.dumps([entry.to_record() for entry in entries], indent=indent)
