"""Configuration loader with YAML profile support."""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_ENVIRONMENT = "dev"
DEFAULT_DATABASE_URL = "sqlite+pysqlite:///runlog.db"
DEFAULT_STORAGE_BACKEND = "sql"
DEFAULT_STORAGE_KEY = "run_tracker_v1"
DEFAULT_STORAGE_FILE_DIR = "data"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_WINDOW_DAYS = 7
MAX_WINDOW_DAYS = 30
STORAGE_BACKENDS = ("sql", "file", "memory")
DEFAULT_PROFILE_DICT: dict[str, Any] = {
    "environment": DEFAULT_ENVIRONMENT,
    "database": {"url": DEFAULT_DATABASE_URL},
    "storage": {
        "backend": DEFAULT_STORAGE_BACKEND,
        "key": DEFAULT_STORAGE_KEY,
        "file_dir": DEFAULT_STORAGE_FILE_DIR,
    },
    "logging": {"level": DEFAULT_LOG_LEVEL, "json": True},
    "dashboard": {
        "default_window_days": DEFAULT_WINDOW_DAYS,
        "max_window_days": MAX_WINDOW_DAYS,
    },
}
CONFIG_PROFILE_ENV = "RUNLOG_CONFIG_PROFILE"
CONFIG_DIR_ENV = "RUNLOG_CONFIG_DIR"
DEFAULT_PROFILE = "dev"
DEFAULT_CONFIG_ROOT = Path(__file__).resolve().parents[3] / "config" / "profiles"
CONFIG_EXTENSIONS = (".yaml", ".yml")


@dataclass
class StorageConfig:
    backend: str = DEFAULT_STORAGE_BACKEND
    key: str = DEFAULT_STORAGE_KEY
    file_dir: str = DEFAULT_STORAGE_FILE_DIR


@dataclass
class DashboardConfig:
    default_window_days: int = DEFAULT_WINDOW_DAYS
    max_window_days: int = MAX_WINDOW_DAYS


@dataclass
class Settings:
    environment: str = DEFAULT_ENVIRONMENT
    database_url: str = DEFAULT_DATABASE_URL
    storage: StorageConfig = field(default_factory=StorageConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)
    logging: dict[str, Any] = field(default_factory=dict)
    features: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)


def load_settings(
    profile: str | None = None, config_dir: str | Path | None = None
) -> Settings:
    """Load settings from the requested profile or fall back to defaults."""

    profile_name = profile or os.getenv(CONFIG_PROFILE_ENV, DEFAULT_PROFILE)
    config_root = Path(
        config_dir or os.getenv(CONFIG_DIR_ENV, DEFAULT_CONFIG_ROOT)
    ).expanduser()
    config_data = _load_profile_dict(profile_name, config_root)
    if not config_data:
        config_data = copy.deepcopy(DEFAULT_PROFILE_DICT)

    database_cfg = config_data.get("database") or {}
    database_url = os.getenv(
        "DATABASE_URL", database_cfg.get("url", DEFAULT_DATABASE_URL)
    )

    return Settings(
        environment=str(config_data.get("environment", DEFAULT_ENVIRONMENT)),
        database_url=database_url,
        storage=_build_storage_config(config_data.get("storage")),
        dashboard=_build_dashboard_config(config_data.get("dashboard")),
        logging=dict(config_data.get("logging") or {}),
        features=dict(config_data.get("features") or {}),
        raw=config_data,
    )


def _load_profile_dict(profile_name: str, config_root: Path) -> dict[str, Any]:
    """Load the YAML profile if available, otherwise return an empty dict."""

    if not config_root.exists():
        return {}

    for extension in CONFIG_EXTENSIONS:
        candidate = config_root / f"{profile_name}{extension}"
        if not candidate.exists():
            continue
        try:
            with candidate.open("r", encoding="utf-8") as handle:
                loaded = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise RuntimeError(
                f"Failed to parse config profile {candidate}: {exc}"
            ) from exc
        if not isinstance(loaded, dict):
            raise RuntimeError(
                f"Config profile {candidate} must be a mapping at the root"
            )
        return loaded

    return {}


def _build_storage_config(storage_cfg: dict[str, Any] | None) -> StorageConfig:
    storage_cfg = storage_cfg or {}
    backend = str(storage_cfg.get("backend", DEFAULT_STORAGE_BACKEND)).lower()
    if backend not in STORAGE_BACKENDS:
        raise RuntimeError(
            f"Unsupported storage backend '{backend}'; expected one of {STORAGE_BACKENDS}"
        )
    return StorageConfig(
        backend=backend,
        key=str(storage_cfg.get("key") or DEFAULT_STORAGE_KEY),
        file_dir=str(storage_cfg.get("file_dir") or DEFAULT_STORAGE_FILE_DIR),
    )


def _build_dashboard_config(dashboard_cfg: dict[str, Any] | None) -> DashboardConfig:
    dashboard_cfg = dashboard_cfg or {}
    max_days = max(1, int(dashboard_cfg.get("max_window_days", MAX_WINDOW_DAYS)))
    default_days = int(dashboard_cfg.get("default_window_days", DEFAULT_WINDOW_DAYS))
    return DashboardConfig(
        default_window_days=max(1, min(default_days, max_days)),
        max_window_days=max_days,
    )
