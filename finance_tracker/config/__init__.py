"""Configuration package."""

from finance_tracker.config.settings import (
    DEFAULT_NAMES,
    DEFAULT_TAGS,
    AppSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "DEFAULT_NAMES",
    "DEFAULT_TAGS",
    "AppSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
