"""Configuration package."""

from bookkeeping.config.settings import (
    AppSettings,
    BackupSettings,
    CogsPolicy,
    LedgerSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "BackupSettings",
    "CogsPolicy",
    "LedgerSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
