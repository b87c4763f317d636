"""Key-value blob stores used to persist the serialized run collection."""

from __future__ import annotations

import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Protocol

from sqlalchemy import Column, DateTime, MetaData, String, Table, Text, select, update
from sqlalchemy.engine import Engine

from ...config import Settings
from ...infra.db import build_engine
from ...infra.logging import get_logger

__all__ = [
    "BlobStore",
    "FileBlobStore",
    "InMemoryBlobStore",
    "SqlBlobStore",
    "build_blob_store",
    "build_blob_table",
]

logger = get_logger(__name__)

BLOB_TABLE_NAME = "kv_blobs"
_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class BlobStore(Protocol):  # pragma: no cover
    """Persistence transport: one opaque text value per fixed key."""

    def read(self, key: str) -> Optional[str]: ...

    def write(self, key: str, value: str) -> None: ...


class InMemoryBlobStore(BlobStore):
    """Dictionary-backed store used for local development and tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._blobs: Dict[str, str] = dict(initial or {})
        self.write_count = 0

    def read(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def write(self, key: str, value: str) -> None:
        self._blobs[key] = value
        self.write_count += 1


class FileBlobStore(BlobStore):
    """Stores each key as ``<directory>/<key>.json``, replaced atomically."""

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory).expanduser()

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.fullmatch(key):
            raise ValueError(f"invalid blob key '{key}'")
        return self._directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def write(self, key: str, value: str) -> None:
        path = self._path_for(key)
        self._directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=str(self._directory), prefix=f".{key}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def build_blob_table(metadata: MetaData) -> Table:
    return Table(
        BLOB_TABLE_NAME,
        metadata,
        Column("key", String(length=128), primary_key=True),
        Column("value", Text(), nullable=False),
        Column("updated_at", DateTime(timezone=True), nullable=False),
    )


class SqlBlobStore(BlobStore):
    """SQLAlchemy-backed adapter persisting blobs to the ``kv_blobs`` table."""

    def __init__(
        self,
        engine: Engine,
        *,
        table: Optional[Table] = None,
        create_table: bool = True,
    ) -> None:
        self._engine = engine
        if table is not None:
            self._blobs = table
        else:
            self._blobs = build_blob_table(MetaData())
        if create_table:
            self._blobs.metadata.create_all(self._engine, tables=[self._blobs])

    def read(self, key: str) -> Optional[str]:
        stmt = select(self._blobs.c.value).where(self._blobs.c.key == key).limit(1)
        with self._engine.begin() as conn:
            row = conn.execute(stmt).first()
        if row is None:
            return None
        return row[0]

    def write(self, key: str, value: str) -> None:
        timestamp = datetime.now(timezone.utc)
        with self._engine.begin() as conn:
            result = conn.execute(
                update(self._blobs)
                .where(self._blobs.c.key == key)
                .values(value=value, updated_at=timestamp)
            )
            if result.rowcount == 0:
                conn.execute(
                    self._blobs.insert().values(
                        key=key, value=value, updated_at=timestamp
                    )
                )


def build_blob_store(
    settings: Settings,
    *,
    fallback_to_memory: bool = False,
) -> BlobStore:
    """Factory that returns the blob store selected by ``settings.storage``."""

    backend = settings.storage.backend
    if backend == "memory":
        return InMemoryBlobStore()
    if backend == "file":
        return FileBlobStore(settings.storage.file_dir)
    try:
        return SqlBlobStore(build_engine(settings.database_url))
    except Exception:
        if not fallback_to_memory:
            raise
        logger.warning(
            "sql_blob_store_unavailable_falling_back",
            extra={"database_url": settings.database_url},
            exc_info=True,
        )
    return InMemoryBlobStore()
