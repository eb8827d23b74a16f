"""
Tests for the storage backends (JSON files and in-memory).
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from bookkeeping.models import AppState, AuditEventBuilder
from bookkeeping.services.storage import (
    InMemoryAuditStorage,
    InMemoryBackupStorage,
    InMemoryStateStorage,
    JsonFileStateStorage,
    JsonLinesAuditStorage,
    LocalDirectoryBackupStorage,
    NotFoundError,
    SnapshotError,
    StorageError,
)


class TestJsonFileStateStorage:
    """The state file."""

    @pytest.mark.asyncio
    async def test_missing_file_loads_none(self, tmp_path):
        """Test that a first run has no snapshot."""
        storage = JsonFileStateStorage(tmp_path / "state.json")
        assert await storage.load_state() is None

    @pytest.mark.asyncio
    async def test_save_and_load(self, tmp_path, engine):
        """Test that a saved snapshot validates back into the same state."""
        storage = JsonFileStateStorage(tmp_path / "data" / "state.json")
        await storage.save_state(engine.export_state())

        loaded = await storage.load_state()

        assert AppState.model_validate(loaded) == engine.state
        assert "expenseTypes" in loaded

    @pytest.mark.asyncio
    async def test_no_temp_files_left_behind(self, tmp_path):
        """Test that the atomic write cleans up after itself."""
        storage = JsonFileStateStorage(tmp_path / "state.json")
        await storage.save_state({"initialized": False})
        await storage.save_state({"initialized": True})

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    @pytest.mark.asyncio
    async def test_corrupt_file_raises_snapshot_error(self, tmp_path):
        """Test that garbage on disk is reported, not silently dropped."""
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(SnapshotError):
            await JsonFileStateStorage(path).load_state()

    @pytest.mark.asyncio
    async def test_non_object_raises_snapshot_error(self, tmp_path):
        """Test that a JSON list is not a snapshot."""
        path = tmp_path / "state.json"
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(SnapshotError):
            await JsonFileStateStorage(path).load_state()

    @pytest.mark.asyncio
    async def test_clear(self, tmp_path):
        """Test that clearing removes the file and reports whether it existed."""
        storage = JsonFileStateStorage(tmp_path / "state.json")
        await storage.save_state({"initialized": True})

        assert await storage.clear_state() is True
        assert await storage.clear_state() is False
        assert await storage.load_state() is None


class TestJsonLinesAuditStorage:
    """The append-only audit file."""

    @pytest.mark.asyncio
    async def test_append_and_read_recent(self, tmp_path):
        """Test that events come back newest first."""
        storage = JsonLinesAuditStorage(tmp_path / "audit.jsonl")
        first = AuditEventBuilder.state_reset()
        second = AuditEventBuilder.backup_created("respaldo-2026-03-02.json")
        second.timestamp = first.timestamp + timedelta(seconds=1)

        assert await storage.append_event(first)
        assert await storage.append_event(second)

        recent = await storage.get_recent_events()
        assert [e.event_id for e in recent] == [second.event_id, first.event_id]
        assert len((tmp_path / "audit.jsonl").read_text(encoding="utf-8").splitlines()) == 2

    @pytest.mark.asyncio
    async def test_query_by_correlation_and_entity(self, tmp_path):
        """Test the two filtered lookups."""
        storage = JsonLinesAuditStorage(tmp_path / "audit.jsonl")
        correlation_id = uuid4()
        await storage.append_event(
            AuditEventBuilder.transaction_voided("tx-1", "tx-2", correlation_id)
        )
        await storage.append_event(
            AuditEventBuilder.operation_recorded("tx-3", "SALE", "100.00", "Venta")
        )

        by_correlation = await storage.get_events_by_correlation_id(correlation_id)
        by_entity = await storage.get_events_by_entity("transaction", "tx-3")

        assert [e.entity_id for e in by_correlation] == ["tx-1"]
        assert [e.entity_id for e in by_entity] == ["tx-3"]

    @pytest.mark.asyncio
    async def test_malformed_lines_are_skipped(self, tmp_path):
        """Test that a torn line does not hide the rest of the trail."""
        path = tmp_path / "audit.jsonl"
        storage = JsonLinesAuditStorage(path)
        await storage.append_event(AuditEventBuilder.state_reset())
        with path.open("a", encoding="utf-8") as fh:
            fh.write("{broken\n\n")

        assert len(await storage.get_recent_events()) == 1

    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        """Test that no file means no events."""
        storage = JsonLinesAuditStorage(tmp_path / "audit.jsonl")
        assert await storage.get_recent_events() == []


class TestLocalDirectoryBackupStorage:
    """Backup files in a directory."""

    @pytest.mark.asyncio
    async def test_write_read_exists(self, tmp_path):
        """Test the basic file lifecycle."""
        storage = LocalDirectoryBackupStorage(tmp_path / "backups")
        assert not await storage.exists("respaldo-2026-03-02.json")

        await storage.write("respaldo-2026-03-02.json", {"initialized": True})

        assert await storage.exists("respaldo-2026-03-02.json")
        assert await storage.read("respaldo-2026-03-02.json") == {"initialized": True}

    @pytest.mark.asyncio
    async def test_list_newest_first_with_prefix(self, tmp_path):
        """Test that names sort newest first and foreign files are ignored."""
        directory = tmp_path / "backups"
        storage = LocalDirectoryBackupStorage(directory)
        for day in ("2026-03-01", "2026-03-03", "2026-03-02"):
            await storage.write(f"respaldo-{day}.json", {})
        (directory / "notas.txt").write_text("x", encoding="utf-8")
        await storage.write("otro-2026-03-04.json", {})

        assert await storage.list_backups("respaldo") == [
            "respaldo-2026-03-03.json",
            "respaldo-2026-03-02.json",
            "respaldo-2026-03-01.json",
        ]

    @pytest.mark.asyncio
    async def test_read_missing(self, tmp_path):
        """Test that an unknown name raises NotFoundError."""
        storage = LocalDirectoryBackupStorage(tmp_path)
        with pytest.raises(NotFoundError):
            await storage.read("respaldo-1999-01-01.json")

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        """Test that delete reports whether a file was removed."""
        storage = LocalDirectoryBackupStorage(tmp_path)
        await storage.write("respaldo-2026-03-02.json", {})

        assert await storage.delete("respaldo-2026-03-02.json") is True
        assert await storage.delete("respaldo-2026-03-02.json") is False

    @pytest.mark.asyncio
    async def test_path_traversal_rejected(self, tmp_path):
        """Test that names cannot escape the backup directory."""
        storage = LocalDirectoryBackupStorage(tmp_path / "backups")
        with pytest.raises(StorageError):
            await storage.write("../state.json", {})


class TestInMemoryStorage:
    """The in-memory doubles."""

    @pytest.mark.asyncio
    async def test_state_is_copied(self):
        """Test that mutating a loaded snapshot does not change what was saved."""
        storage = InMemoryStateStorage()
        await storage.save_state({"accounts": {"cash": "10"}})

        loaded = await storage.load_state()
        loaded["accounts"]["cash"] = "999"

        assert (await storage.load_state())["accounts"]["cash"] == "10"
        assert storage.save_count == 1

    @pytest.mark.asyncio
    async def test_state_clear(self):
        """Test clearing an empty and a filled store."""
        storage = InMemoryStateStorage({"initialized": True})
        assert await storage.clear_state() is True
        assert await storage.clear_state() is False

    @pytest.mark.asyncio
    async def test_audit_recent_limit(self):
        """Test that the limit keeps the newest events."""
        storage = InMemoryAuditStorage()
        base = datetime(2026, 3, 2, tzinfo=timezone.utc)
        for offset in range(5):
            event = AuditEventBuilder.state_reset()
            event.timestamp = base + timedelta(minutes=offset)
            await storage.append_event(event)

        recent = await storage.get_recent_events(limit=2)
        assert [e.timestamp for e in recent] == [base + timedelta(minutes=4), base + timedelta(minutes=3)]

    @pytest.mark.asyncio
    async def test_backup_storage(self):
        """Test listing, reading and deleting in-memory backups."""
        storage = InMemoryBackupStorage()
        await storage.write("respaldo-2026-03-01.json", {"cash": Decimal("1")})
        await storage.write("respaldo-2026-03-02.json", {})

        assert await storage.list_backups("respaldo") == [
            "respaldo-2026-03-02.json",
            "respaldo-2026-03-01.json",
        ]
        assert await storage.delete("respaldo-2026-03-01.json")
        with pytest.raises(NotFoundError):
            await storage.read("respaldo-2026-03-01.json")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
