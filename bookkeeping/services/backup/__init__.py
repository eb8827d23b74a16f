"""Backup services package."""

from bookkeeping.services.backup.documentation import accounting_documentation
from bookkeeping.services.backup.manager import (
    BackupManager,
    BackupResult,
    parse_backup_payload,
)

__all__ = [
    "BackupManager",
    "BackupResult",
    "accounting_documentation",
    "parse_backup_payload",
]
