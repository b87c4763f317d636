"""Run log domain package."""

from .blob_store import (
    BlobStore,
    FileBlobStore,
    InMemoryBlobStore,
    SqlBlobStore,
    build_blob_store,
)
from .models import (
    Entry,
    EntryRejection,
    NormalizationMode,
    RejectionReason,
    can_submit,
    normalize_entry,
)
from .reconciliation import ImportPayloadError, MergeResult, merge_entries
from .store import STORAGE_KEY, AddResult, ImportResult, RunLogStore

__all__ = [
    "AddResult",
    "BlobStore",
    "Entry",
    "EntryRejection",
    "FileBlobStore",
    "ImportPayloadError",
    "ImportResult",
    "InMemoryBlobStore",
    "MergeResult",
    "NormalizationMode",
    "RejectionReason",
    "RunLogStore",
    "STORAGE_KEY",
    "SqlBlobStore",
    "build_blob_store",
    "can_submit",
    "merge_entries",
    "normalize_entry",
]
