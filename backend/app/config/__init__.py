"""Config package exporting loader helpers."""

from .loader import DashboardConfig, Settings, StorageConfig, load_settings

__all__ = ["DashboardConfig", "Settings", "StorageConfig", "load_settings"]
