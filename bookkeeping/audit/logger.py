"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of every balance change back to one user action
2. Debugging capability
3. A history of voids, imports, resets and backups

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from bookkeeping.models.audit import AuditEvent, AuditEventBuilder
from bookkeeping.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (JSON lines file) for persistence
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("bookkeeping.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_operation(
        self,
        tx_id: str,
        tx_type: str,
        amount: str,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a recorded business operation."""
        event = AuditEventBuilder.operation_recorded(
            tx_id=tx_id,
            tx_type=tx_type,
            amount=amount,
            description=description,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_voided(
        self,
        tx_id: str,
        contra_tx_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_voided(
            tx_id=tx_id,
            contra_tx_id=contra_tx_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_revert_rejected(
        self,
        tx_id: str,
        status: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.revert_rejected(
            tx_id=tx_id,
            status=status,
            message=message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_catalog_changed(
        self,
        entity_type: str,
        entity_id: str,
        action: str,
        name: str,
    ) -> None:
        event = AuditEventBuilder.catalog_changed(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            name=name,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            operation=operation,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_state_initialized(self, equity: str) -> None:
        await self.log(AuditEventBuilder.state_initialized(equity))

    async def log_state_imported(self, transaction_count: int, source: str) -> None:
        await self.log(AuditEventBuilder.state_imported(transaction_count, source))

    async def log_state_import_failed(self, source: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.state_import_failed(source, error_message))

    async def log_state_reset(self) -> None:
        await self.log(AuditEventBuilder.state_reset())

    async def log_save_failed(self, error_message: str) -> None:
        await self.log(AuditEventBuilder.save_failed(error_message))

    async def log_backup_created(self, name: str) -> None:
        await self.log(AuditEventBuilder.backup_created(name))

    async def log_backup_skipped(self, name: str) -> None:
        await self.log(AuditEventBuilder.backup_skipped(name))

    async def log_backup_pruned(self, names: list[str]) -> None:
        await self.log(AuditEventBuilder.backup_pruned(names))

    async def log_backup_restored(self, name: str) -> None:
        await self.log(AuditEventBuilder.backup_restored(name))

    async def log_identity_check(self, passed: bool, difference: str) -> None:
        await self.log(AuditEventBuilder.identity_check(passed, difference))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a revert).
    Pass it through all subsequent operations.
    """
    return uuid4()
