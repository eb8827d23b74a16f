"""Services package."""

from bookkeeping.services.backup import (
    BackupManager,
    BackupResult,
    parse_backup_payload,
)
from bookkeeping.services.storage import (
    AuditStorageInterface,
    BackupStorageInterface,
    InMemoryAuditStorage,
    InMemoryBackupStorage,
    InMemoryStateStorage,
    JsonFileStateStorage,
    JsonLinesAuditStorage,
    LocalDirectoryBackupStorage,
    NotFoundError,
    PersistenceError,
    SnapshotError,
    StateStorageInterface,
    StorageError,
)

__all__ = [
    # Backup services
    "BackupManager",
    "BackupResult",
    "parse_backup_payload",
    # Storage services
    "AuditStorageInterface",
    "BackupStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryBackupStorage",
    "InMemoryStateStorage",
    "JsonFileStateStorage",
    "JsonLinesAuditStorage",
    "LocalDirectoryBackupStorage",
    "NotFoundError",
    "PersistenceError",
    "SnapshotError",
    "StateStorageInterface",
    "StorageError",
]
