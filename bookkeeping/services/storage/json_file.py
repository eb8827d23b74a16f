"""
Local JSON File Storage Implementation

DESIGN DECISION: The desktop app keeps everything in plain JSON files:
1. The user can open and read their own data
2. No database setup required
3. A backup is just a copy of a file

TRADEOFFS:
- The whole state is rewritten on every save (fine at small-business scale)
- No concurrent writers (the app has exactly one)

Writes go to a temporary file in the same directory and are moved into
place with os.replace, so a crash mid-write never leaves a truncated
snapshot behind. Transient OS errors are retried.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from bookkeeping.models.audit import AuditEvent
from bookkeeping.services.storage.interface import (
    AuditStorageInterface,
    BackupStorageInterface,
    NotFoundError,
    SnapshotError,
    StateStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

file_retry = retry(
    retry=retry_if_exception_type(OSError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


@file_retry
def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    except OSError:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


@file_retry
def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


@file_retry
def _append_line(path: Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as fh:
        fh.write(line + "\n")


def _dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _loads(text: str, source: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"{source} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SnapshotError(f"{source} does not contain a JSON object")
    return data


class JsonFileStateStorage(StateStorageInterface):
    """
    The application state as one JSON file.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def save_state(self, snapshot: dict[str, Any]) -> bool:
        try:
            _atomic_write_text(self._path, _dumps(snapshot))
            return True
        except OSError as e:
            raise StorageError(f"Failed to save state to {self._path}: {e}") from e

    async def load_state(self) -> Optional[dict[str, Any]]:
        if not self._path.exists():
            return None
        try:
            text = _read_text(self._path)
        except OSError as e:
            raise StorageError(f"Failed to read state from {self._path}: {e}") from e
        return _loads(text, str(self._path))

    async def clear_state(self) -> bool:
        try:
            self._path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to remove {self._path}: {e}") from e


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Audit trail as a JSON-lines file.

    Audit events are append-only.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            _append_line(self._path, event.to_json_line())
            return True
        except OSError as e:
            # Audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), path=str(self._path))
            return False

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []
        try:
            lines = _read_text(self._path).splitlines()
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}") from e

        events = []
        for line in lines:
            if not line.strip():
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValidationError:
                continue
        return events

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._read_events()
            if e.entity_type == entity_type and e.entity_id == str(entity_id)
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._read_events()
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


class LocalDirectoryBackupStorage(BackupStorageInterface):
    """
    Backups as JSON files in one directory.

    Names are date-stamped, so sorting by name sorts by age.
    """

    def __init__(self, directory: Path):
        self._directory = Path(directory)

    def _path(self, name: str) -> Path:
        if "/" in name or "\\" in name or name.startswith("."):
            raise StorageError(f"Invalid backup name: {name}")
        return self._directory / name

    async def exists(self, name: str) -> bool:
        return self._path(name).exists()

    async def write(self, name: str, payload: dict[str, Any]) -> bool:
        try:
            _atomic_write_text(self._path(name), _dumps(payload))
            return True
        except OSError as e:
            raise StorageError(f"Failed to write backup {name}: {e}") from e

    async def read(self, name: str) -> dict[str, Any]:
        path = self._path(name)
        if not path.exists():
            raise NotFoundError(f"Backup not found: {name}")
        try:
            text = _read_text(path)
        except OSError as e:
            raise StorageError(f"Failed to read backup {name}: {e}") from e
        return _loads(text, name)

    async def list_backups(self, prefix: str = "") -> list[str]:
        if not self._directory.exists():
            return []
        names = [
            p.name for p in self._directory.iterdir()
            if p.is_file() and p.suffix == ".json" and p.name.startswith(prefix)
        ]
        return sorted(names, reverse=True)

    async def delete(self, name: str) -> bool:
        try:
            self._path(name).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete backup {name}: {e}") from e
