"""Database connection helpers."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

__all__ = ["build_engine"]


def build_engine(database_url: str) -> Engine:
    """Create a SQLAlchemy engine for the given URL.

    In-memory SQLite shares one connection so every session sees the same data.
    """

    if database_url.startswith("sqlite") and ":memory:" in database_url:
        return create_engine(
            database_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, echo=False, future=True)
