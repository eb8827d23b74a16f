"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Local JSON files are the production backend; in-memory versions back the
tests and the self-check.
"""

from bookkeeping.services.storage.interface import (
    AuditStorageInterface,
    BackupStorageInterface,
    NotFoundError,
    PersistenceError,
    SnapshotError,
    StateStorageInterface,
    StorageError,
)
from bookkeeping.services.storage.json_file import (
    JsonFileStateStorage,
    JsonLinesAuditStorage,
    LocalDirectoryBackupStorage,
)
from bookkeeping.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBackupStorage,
    InMemoryStateStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BackupStorageInterface",
    "StateStorageInterface",
    # Exceptions
    "NotFoundError",
    "PersistenceError",
    "SnapshotError",
    "StorageError",
    # JSON file implementation
    "JsonFileStateStorage",
    "JsonLinesAuditStorage",
    "LocalDirectoryBackupStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBackupStorage",
    "InMemoryStateStorage",
]
