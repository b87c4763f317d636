"""Case-insensitive search over run entries."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .models import Entry, format_quantity

MAX_QUERY_LENGTH = 256


def normalize_query(value: Optional[str]) -> str:
    if value is None:
        return ""
    return value.strip().lower()


def sort_newest_first(entries: Iterable[Entry]) -> List[Entry]:
    # sorted() is stable, so same-day entries keep their collection order
    return sorted(entries, key=lambda entry: entry.entry_date, reverse=True)


def entry_matches(entry: Entry, needle: str) -> bool:
    if not needle:
        return True
    haystack = (
        entry.date_text.lower(),
        format_quantity(entry.quantity).lower(),
        entry.note.lower(),
    )
    return any(needle in part for part in haystack)


def search_entries(entries: Iterable[Entry], query: Optional[str] = None) -> List[Entry]:
    """Return entries matching ``query`` by date, quantity or note, newest first."""

    needle = normalize_query(query)
    return [entry for entry in sort_newest_first(entries) if entry_matches(entry, needle)]
