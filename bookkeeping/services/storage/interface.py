"""
Abstract Storage Interface

DESIGN DECISION: The ledger never talks to a storage backend directly.
It exposes a serializable snapshot; these interfaces save and load it.
This allows us to:
1. Keep the state in a local JSON file for the desktop app
2. Use in-memory storage for testing
3. Swap in another backend later without touching the ledger

The interface is intentionally simple: whole-state save/load, an
append-only audit trail, and named backup blobs.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from bookkeeping.models.audit import AuditEvent


class StateStorageInterface(ABC):
    """
    Abstract interface for the persisted application state.

    The state is saved and loaded wholesale. Implementations must never
    leave a partially written snapshot behind.
    """

    @abstractmethod
    async def save_state(self, snapshot: dict[str, Any]) -> bool:
        """
        Persist a full snapshot.

        Args:
            snapshot: JSON-ready dict from AppState.to_snapshot()

        Returns:
            True if saved successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def load_state(self) -> Optional[dict[str, Any]]:
        """
        Load the last saved snapshot.

        Returns:
            The snapshot dict, or None if nothing was ever saved

        Raises:
            StorageError: If the stored data cannot be read
        """
        pass

    @abstractmethod
    async def clear_state(self) -> bool:
        """
        Remove the saved snapshot (factory reset).

        Returns:
            True if something was removed
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one revert).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'transaction', 'backup')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class BackupStorageInterface(ABC):
    """
    Abstract interface for named backup files.
    """

    @abstractmethod
    async def exists(self, name: str) -> bool:
        pass

    @abstractmethod
    async def write(self, name: str, payload: dict[str, Any]) -> bool:
        """
        Write a backup payload under `name`.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def read(self, name: str) -> dict[str, Any]:
        """
        Read a backup payload.

        Raises:
            NotFoundError: If no backup has that name
            SnapshotError: If the file is not valid JSON
        """
        pass

    @abstractmethod
    async def list_backups(self, prefix: str = "") -> list[str]:
        """Backup names starting with `prefix`, newest first."""
        pass

    @abstractmethod
    async def delete(self, name: str) -> bool:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class SnapshotError(StorageError):
    """A snapshot or backup payload is malformed. The live state is untouched."""
    pass


class PersistenceError(StorageError):
    """State changed in memory but could not be saved."""
    pass
