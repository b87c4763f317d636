"""Authoritative in-memory run collection with write-through persistence."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ...infra.logging import get_logger
from ...infra.metrics import MetricsClient, get_metrics_client
from .blob_store import BlobStore
from .models import (
    Entry,
    EntryRejection,
    NormalizationMode,
    RejectionReason,
    normalize_entry,
    serialize_entries,
)
from .reconciliation import (
    ImportPayloadError,
    MergeResult,
    merge_entries,
    parse_import_payload,
    summarize_merge,
)
from .search import search_entries

__all__ = [
    "AddResult",
    "ImportResult",
    "RunLogStore",
    "STORAGE_KEY",
    "EXPORT_INDENT",
    "export_filename",
]

logger = get_logger(__name__)

STORAGE_KEY = "run_tracker_v1"
EXPORT_INDENT = 2


@dataclass(frozen=True)
class AddResult:
    """Outcome of a submission: either the stored entry or why it was refused."""

    entry: Optional[Entry] = None
    rejection: Optional[EntryRejection] = None

    @property
    def ok(self) -> bool:
        return self.entry is not None


@dataclass(frozen=True)
class ImportResult:
    ok: bool
    message: str
    merge: Optional[MergeResult] = None
    dropped: int = 0


class RunLogStore:
    """Owns the canonical entries; every mutation re-serializes them to the blob store."""

    def __init__(
        self,
        blob_store: BlobStore,
        *,
        storage_key: str = STORAGE_KEY,
        metrics: MetricsClient | None = None,
    ) -> None:
        self._blob_store = blob_store
        self._storage_key = storage_key
        self._metrics = metrics or get_metrics_client()
        self._lock = threading.RLock()
        self._entries: Dict[str, Entry] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def load(self) -> int:
        """Replace in-memory state with the persisted blob; bad data loads as empty."""

        raw = self._blob_store.read(self._storage_key)
        entries = _decode_stored_blob(raw, storage_key=self._storage_key)
        with self._lock:
            self._entries = {entry.entry_id: entry for entry in entries}
        self._metrics.gauge("runlog_entries", len(entries))
        return len(entries)

    def entries(self) -> tuple[Entry, ...]:
        with self._lock:
            return tuple(self._entries.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_entry(self, entry_id: str) -> Entry:
        with self._lock:
            record = self._entries.get(entry_id)
        if record is None:
            raise KeyError(f"Entry {entry_id} not found")
        return record

    def search(self, query: Optional[str] = None) -> List[Entry]:
        return search_entries(self.entries(), query)

    def export_payload(self) -> str:
        return serialize_entries(self.entries(), indent=EXPORT_INDENT)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add_entry(self, raw: Mapping[str, Any], *, today: date) -> AddResult:
        payload = dict(raw)
        payload.pop("id", None)
        result = normalize_entry(payload, mode=NormalizationMode.SUBMISSION, today=today)
        if isinstance(result, EntryRejection):
            self._record_rejection(result, operation="add")
            return AddResult(rejection=result)
        with self._lock:
            updated = dict(self._entries)
            updated[result.entry_id] = result
            self._commit_locked(updated)
        self._metrics.increment("runlog_entries_added_total")
        logger.info(
            "run_entry_added",
            extra={"entry_id": result.entry_id, "entry_date": result.date_text},
        )
        return AddResult(entry=result)

    def update_entry(
        self, entry_id: str, raw: Mapping[str, Any], *, today: date
    ) -> AddResult:
        """Edit an entry in place; the id never changes."""

        payload = dict(raw)
        payload["id"] = entry_id
        result = normalize_entry(payload, mode=NormalizationMode.SUBMISSION, today=today)
        if isinstance(result, EntryRejection):
            self._record_rejection(result, operation="update")
            return AddResult(rejection=result)
        with self._lock:
            current = self._entries.get(entry_id)
            if current is None:
                return AddResult(
                    rejection=EntryRejection(
                        RejectionReason.MISSING_ID, f"entry {entry_id} not found"
                    )
                )
            updated = current.with_changes(
                entry_date=result.entry_date,
                quantity=result.quantity,
                note=result.note,
            )
            replacement = dict(self._entries)
            replacement[entry_id] = updated
            self._commit_locked(replacement)
        self._metrics.increment("runlog_entries_updated_total")
        logger.info("run_entry_updated", extra={"entry_id": entry_id})
        return AddResult(entry=updated)

    def remove_entry(self, entry_id: str) -> bool:
        with self._lock:
            if entry_id not in self._entries:
                return False
            remaining = dict(self._entries)
            del remaining[entry_id]
            self._commit_locked(remaining)
        self._metrics.increment("runlog_entries_removed_total")
        logger.info("run_entry_removed", extra={"entry_id": entry_id})
        return True

    def clear(self) -> int:
        """Drop every entry. Callers are responsible for confirming with the user."""

        with self._lock:
            removed = len(self._entries)
            self._commit_locked({})
        self._metrics.increment("runlog_clear_total")
        logger.info("run_entries_cleared", extra={"removed": removed})
        return removed

    def merge(self, incoming: Iterable[Entry]) -> MergeResult:
        """Apply incoming entries by id, replacing state in one step."""

        incoming_list = list(incoming)
        with self._lock:
            existing = list(self._entries.values())
            merged = merge_entries(existing, incoming_list)
            summary = summarize_merge(existing, incoming_list, merged)
            self._commit_locked({entry.entry_id: entry for entry in merged})
        logger.info(
            "run_entries_merged",
            extra={
                "added": summary.added,
                "replaced": summary.replaced,
                "total": summary.total,
            },
        )
        return summary

    def import_payload(self, text: str | bytes) -> ImportResult:
        """Parse an export file and merge it; failures leave the collection untouched."""

        self._metrics.increment("runlog_import_attempt_total")
        try:
            batch = parse_import_payload(text)
        except ImportPayloadError as exc:
            self._metrics.increment("runlog_import_failed_total")
            logger.warning("run_import_rejected", extra={"reason": exc.reason})
            return ImportResult(ok=False, message=exc.message)
        summary = self.merge(batch.entries)
        self._metrics.increment("runlog_import_success_total")
        if batch.dropped:
            logger.info("run_import_records_dropped", extra={"dropped": batch.dropped})
        return ImportResult(
            ok=True,
            message=f"Imported {len(batch.entries)} entries",
            merge=summary,
            dropped=batch.dropped,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _commit_locked(self, entries: Dict[str, Entry]) -> None:
        # the in-memory state only moves once the blob write succeeded
        payload = serialize_entries(entries.values())
        try:
            self._blob_store.write(self._storage_key, payload)
        except Exception:
            logger.error(
                "run_entries_persist_failed",
                extra={"storage_key": self._storage_key},
                exc_info=True,
            )
            raise
        self._entries = entries
        self._metrics.gauge("runlog_entries", len(entries))

    def _record_rejection(self, rejection: EntryRejection, *, operation: str) -> None:
        self._metrics.increment("runlog_entries_rejected_total")
        logger.info(
            "run_entry_rejected",
            extra={"operation": operation, **rejection.as_dict()},
        )


def _decode_stored_blob(raw: Optional[str], *, storage_key: str) -> List[Entry]:
    if not raw:
        return []
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        logger.warning("run_store_blob_corrupt", extra={"storage_key": storage_key})
        return []
    if not isinstance(parsed, list):
        logger.warning("run_store_blob_not_array", extra={"storage_key": storage_key})
        return []
    entries: List[Entry] = []
    dropped = 0
    for record in parsed:
        result = normalize_entry(record, mode=NormalizationMode.LOAD)
        if isinstance(result, EntryRejection):
            dropped += 1
            continue
        entries.append(result)
    if dropped:
        logger.warning(
            "run_store_records_dropped",
            extra={"storage_key": storage_key, "dropped": dropped},
        )
    return entries


def export_filename(today: date) -> str:
    """Download name for an export taken on ``today``."""

    return f"runs_{today.isoformat()}.json"
