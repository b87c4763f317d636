"""Router exports for FastAPI composition."""

from . import backup, dashboard, health, runs

__all__ = ["backup", "dashboard", "health", "runs"]
