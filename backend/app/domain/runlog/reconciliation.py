"""Merge-on-import helpers for combining an external entry set with the store."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List

from .models import (
    Entry,
    EntryRejection,
    NormalizationMode,
    generate_entry_id,
    normalize_entry,
)

__all__ = [
    "ImportBatch",
    "ImportPayloadError",
    "MergeResult",
    "merge_entries",
    "parse_import_payload",
    "summarize_merge",
]

INVALID_IMPORT_MESSAGE = "Could not import file. Please upload a valid JSON export."


class ImportPayloadError(ValueError):
    """Raised when an import payload is not a JSON array of records."""

    def __init__(self, message: str = INVALID_IMPORT_MESSAGE, *, reason: str) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason


@dataclass(frozen=True)
class ImportBatch:
    """Entries that survived normalization plus the rejects that were dropped."""

    entries: tuple[Entry, ...]
    rejections: tuple[EntryRejection, ...] = tuple()

    @property
    def dropped(self) -> int:
        return len(self.rejections)


@dataclass(frozen=True)
class MergeResult:
    added: int
    replaced: int
    unchanged: int
    total: int


def merge_entries(existing: Iterable[Entry], incoming: Iterable[Entry]) -> List[Entry]:
    """Combine two entry sets by id; incoming copies win on collision.

    Existing order is kept, ids seen only in ``incoming`` follow in their
    incoming order. Merging the same incoming set again yields the same list.
    """

    by_id: Dict[str, Entry] = {entry.entry_id: entry for entry in existing}
    for entry in incoming:
        if not entry.entry_id:
            continue
        by_id[entry.entry_id] = entry
    return list(by_id.values())


def summarize_merge(
    existing: Iterable[Entry], incoming: Iterable[Entry], merged: List[Entry]
) -> MergeResult:
    before = {entry.entry_id: entry for entry in existing}
    added = replaced = 0
    seen: set[str] = set()
    for entry in incoming:
        if not entry.entry_id or entry.entry_id in seen:
            continue
        seen.add(entry.entry_id)
        if entry.entry_id not in before:
            added += 1
        elif before[entry.entry_id] != entry:
            replaced += 1
    return MergeResult(
        added=added,
        replaced=replaced,
        unchanged=len(merged) - added - replaced,
        total=len(merged),
    )


def parse_import_payload(
    text: str | bytes,
    *,
    id_factory: Callable[[], str] = generate_entry_id,
) -> ImportBatch:
    """Decode an export file into normalized entries.

    Raises ``ImportPayloadError`` when the payload is not JSON or its top-level
    value is not an array. Individual bad records are dropped, not fatal.
    """

    try:
        parsed = json.loads(text)
    except (TypeError, ValueError, RecursionError) as exc:
        raise ImportPayloadError(reason="invalid_json") from exc
    if not isinstance(parsed, list):
        raise ImportPayloadError(reason="not_an_array")

    entries: List[Entry] = []
    rejections: List[EntryRejection] = []
    for raw in parsed:
        result = normalize_entry(raw, mode=NormalizationMode.IMPORT, id_factory=id_factory)
        if isinstance(result, EntryRejection):
            rejections.append(result)
        else:
            entries.append(result)
    return ImportBatch(entries=tuple(entries), rejections=tuple(rejections))
