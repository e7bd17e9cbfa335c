"""Configuration module for medialibrary."""

from .settings import (
    DatabaseSettings,
    IndexingSettings,
    ObservabilitySettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "StorageSettings",
    "DatabaseSettings",
    "IndexingSettings",
    "ObservabilitySettings",
    "get_settings",
]
