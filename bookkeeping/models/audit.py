"""
Audit Models for the Bookkeeping Engine

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every balance change back to one user action
2. Debugging information when things go wrong
3. A record of voids, imports and restores

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Ledger operations
    OPERATION_RECORDED = "operation_recorded"
    TRANSACTION_VOIDED = "transaction_voided"
    REVERT_REJECTED = "revert_rejected"
    CATALOG_CHANGED = "catalog_changed"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # State lifecycle
    STATE_INITIALIZED = "state_initialized"
    STATE_IMPORTED = "state_imported"
    STATE_IMPORT_FAILED = "state_import_failed"
    STATE_RESET = "state_reset"
    SAVE_FAILED = "save_failed"

    # Backups
    BACKUP_CREATED = "backup_created"
    BACKUP_SKIPPED = "backup_skipped"
    BACKUP_PRUNED = "backup_pruned"
    BACKUP_RESTORED = "backup_restored"

    # Integrity
    IDENTITY_CHECK_PASSED = "identity_check_passed"
    IDENTITY_CHECK_FAILED = "identity_check_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'backup', 'state')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a void and its contra-entry)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """One line of a JSON-lines audit file."""
        return json.dumps(self.model_dump(mode="json"), ensure_ascii=False)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.operation_recorded(tx_id, "SALE", "2500.00", "Sale: Pan")
        event = AuditEventBuilder.transaction_voided(tx_id, contra_id, correlation_id)
    """

    @staticmethod
    def operation_recorded(
        tx_id: str,
        tx_type: str,
        amount: str,
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_RECORDED,
            entity_type="transaction",
            entity_id=tx_id,
            correlation_id=correlation_id,
            description=f"{tx_type} recorded: {description}"[:500],
            details={
                "transaction_type": tx_type,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_voided(
        tx_id: str,
        contra_tx_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_VOIDED,
            entity_type="transaction",
            entity_id=tx_id,
            correlation_id=correlation_id,
            description=f"Transaction {tx_id} voided",
            details={
                "contra_tx_id": contra_tx_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def revert_rejected(
        tx_id: str,
        status: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REVERT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=tx_id,
            correlation_id=correlation_id,
            description=f"Revert rejected ({status}): {message}"[:500],
            details={
                "status": status,
            },
            is_user_action=True,
        )

    @staticmethod
    def catalog_changed(
        entity_type: str,
        entity_id: str,
        action: str,
        name: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATALOG_CHANGED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"{entity_type} {action}: {name}"[:500],
            details={
                "action": action,
                "name": name,
            },
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="operation",
            correlation_id=correlation_id,
            description=f"Validation of {operation} failed with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
        )

    @staticmethod
    def state_initialized(equity: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_INITIALIZED,
            entity_type="state",
            description=f"Books opened with equity {equity}",
            details={"equity": equity},
            is_user_action=True,
        )

    @staticmethod
    def state_imported(transaction_count: int, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_IMPORTED,
            entity_type="state",
            description=f"State imported from {source}",
            details={
                "source": source,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def state_import_failed(source: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="state",
            description=f"State import from {source} failed",
            error_message=error_message,
            details={"source": source},
        )

    @staticmethod
    def state_reset() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATE_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="state",
            description="All data erased",
            is_user_action=True,
        )

    @staticmethod
    def save_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="state",
            description="Saving state failed",
            error_message=error_message,
        )

    @staticmethod
    def backup_created(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_CREATED,
            entity_type="backup",
            entity_id=name,
            description=f"Backup created: {name}",
        )

    @staticmethod
    def backup_skipped(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_SKIPPED,
            severity=AuditSeverity.DEBUG,
            entity_type="backup",
            entity_id=name,
            description=f"Backup already exists for today: {name}",
        )

    @staticmethod
    def backup_pruned(names: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_PRUNED,
            entity_type="backup",
            description=f"Pruned {len(names)} old backups",
            details={"names": names},
        )

    @staticmethod
    def backup_restored(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_RESTORED,
            entity_type="backup",
            entity_id=name,
            description=f"Backup restored: {name}",
            is_user_action=True,
        )

    @staticmethod
    def identity_check(
        passed: bool,
        difference: str,
    ) -> AuditEvent:
        if passed:
            return AuditEvent(
                event_type=AuditEventType.IDENTITY_CHECK_PASSED,
                entity_type="state",
                description="Accounting identity holds",
                details={"difference": difference},
            )
        return AuditEvent(
            event_type=AuditEventType.IDENTITY_CHECK_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="state",
            description=f"Accounting identity violated by {difference}",
            details={"difference": difference},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
