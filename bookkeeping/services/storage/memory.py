"""
In-Memory Storage Implementation

Same interfaces as the JSON file backends, kept in dicts and lists.
Used by tests and by the self-check, and handy for a throwaway session.
Payloads are deep-copied on the way in and out so callers can never
mutate what is "on disk".
"""

import copy
from typing import Any, Optional
from uuid import UUID

from bookkeeping.models.audit import AuditEvent
from bookkeeping.services.storage.interface import (
    AuditStorageInterface,
    BackupStorageInterface,
    NotFoundError,
    StateStorageInterface,
)


class InMemoryStateStorage(StateStorageInterface):

    def __init__(self, snapshot: Optional[dict[str, Any]] = None):
        self._snapshot = copy.deepcopy(snapshot)
        self.save_count = 0

    async def save_state(self, snapshot: dict[str, Any]) -> bool:
        self._snapshot = copy.deepcopy(snapshot)
        self.save_count += 1
        return True

    async def load_state(self) -> Optional[dict[str, Any]]:
        return copy.deepcopy(self._snapshot)

    async def clear_state(self) -> bool:
        had = self._snapshot is not None
        self._snapshot = None
        return had


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return sorted(
            (e for e in self.events if e.correlation_id == correlation_id),
            key=lambda e: e.timestamp,
        )

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return sorted(
            (e for e in self.events if e.entity_type == entity_type and e.entity_id == str(entity_id)),
            key=lambda e: e.timestamp,
        )

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]


class InMemoryBackupStorage(BackupStorageInterface):

    def __init__(self):
        self._files: dict[str, dict[str, Any]] = {}

    async def exists(self, name: str) -> bool:
        return name in self._files

    async def write(self, name: str, payload: dict[str, Any]) -> bool:
        self._files[name] = copy.deepcopy(payload)
        return True

    async def read(self, name: str) -> dict[str, Any]:
        if name not in self._files:
            raise NotFoundError(f"Backup not found: {name}")
        return copy.deepcopy(self._files[name])

    async def list_backups(self, prefix: str = "") -> list[str]:
        return sorted((n for n in self._files if n.startswith(prefix)), reverse=True)

    async def delete(self, name: str) -> bool:
        return self._files.pop(name, None) is not None
