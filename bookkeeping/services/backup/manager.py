"""
Backup Manager

One automatic snapshot per calendar day, named <prefix>-YYYY-MM-DD.json.
A second attempt on the same day is skipped, and only the newest
`retention` backups are kept.

A backup file is the persisted state snapshot plus two extra blocks:
- documentacion_contable: static documentation of the account taxonomy
- _metadata: app version, schema version and export timestamp

Backups are read-only against the live state: building one serializes a
point-in-time copy and never mutates anything.
"""

from datetime import date, datetime
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field, ValidationError

from bookkeeping.config import BackupSettings, get_settings
from bookkeeping.models.catalog import utc_now
from bookkeeping.models.state import AppState
from bookkeeping.services.backup.documentation import accounting_documentation
from bookkeeping.services.storage.interface import BackupStorageInterface, SnapshotError


logger = structlog.get_logger(__name__)

DOCUMENTATION_KEY = "documentacion_contable"
METADATA_KEY = "_metadata"


class BackupResult(BaseModel):
    """What a daily backup attempt did."""

    name: str
    created: bool
    pruned: list[str] = Field(default_factory=list)


def parse_backup_payload(payload: Any) -> AppState:
    """
    Validate a backup (or exported snapshot) into an AppState.

    Raises:
        SnapshotError: if the payload is not a valid snapshot
    """
    if not isinstance(payload, dict):
        raise SnapshotError("Backup payload must be a JSON object")
    snapshot = {
        k: v for k, v in payload.items()
        if k not in (DOCUMENTATION_KEY, METADATA_KEY)
    }
    try:
        return AppState.model_validate(snapshot)
    except ValidationError as e:
        raise SnapshotError(f"Invalid backup: {e.error_count()} validation error(s)") from e


class BackupManager:
    """
    Daily backups over a BackupStorageInterface.
    """

    def __init__(
        self,
        storage: BackupStorageInterface,
        settings: Optional[BackupSettings] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().backup

    @property
    def retention(self) -> int:
        return self._settings.retention

    def backup_name(self, day: date) -> str:
        return f"{self._settings.filename_prefix}-{day.isoformat()}.json"

    def build_payload(self, state: AppState, now: Optional[datetime] = None) -> dict[str, Any]:
        """Snapshot + documentation + metadata."""
        now = now or utc_now()
        payload = state.to_snapshot()
        payload[DOCUMENTATION_KEY] = accounting_documentation(now)
        payload[METADATA_KEY] = {
            "appVersion": self._settings.app_version,
            "schemaVersion": self._settings.schema_version,
            "exportedAt": now.isoformat(),
        }
        return payload

    async def save_daily_backup(
        self,
        state: AppState,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> BackupResult:
        """
        Write today's backup unless it already exists, then prune.

        Raises:
            StorageError: if the write fails
        """
        now = now or utc_now()
        today = today or now.date()
        name = self.backup_name(today)

        if await self._storage.exists(name):
            logger.debug("backup_skipped", name=name)
            return BackupResult(name=name, created=False)

        await self._storage.write(name, self.build_payload(state, now))
        pruned = await self.prune()
        logger.info("backup_created", name=name, pruned=len(pruned))
        return BackupResult(name=name, created=True, pruned=pruned)

    async def prune(self) -> list[str]:
        """Delete everything beyond the newest `retention` backups."""
        names = await self.list_backups()
        stale = names[self._settings.retention:]
        for name in stale:
            await self._storage.delete(name)
        return stale

    async def list_backups(self) -> list[str]:
        """Backup names, newest first."""
        return await self._storage.list_backups(self._settings.filename_prefix)

    async def restore_backup(self, name: str) -> AppState:
        """
        Load and validate a backup. Does not touch the live state.

        Raises:
            NotFoundError: if there is no such backup
            SnapshotError: if the backup is corrupt
        """
        payload = await self._storage.read(name)
        state = parse_backup_payload(payload)
        logger.info("backup_loaded", name=name, transactions=len(state.transactions))
        return state
