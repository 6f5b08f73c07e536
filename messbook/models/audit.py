"""
Audit Models for the Mess Ledger

Every change to the roster or the transaction log is recorded as an
audit event. This provides:
1. A history of who was added, who left and what was deleted
2. Debugging information when a balance looks wrong
3. Visibility into failures of external services (storage, AI insight)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Roster
    MEMBER_ADDED = "member_added"
    MEMBER_LEFT = "member_left"
    MEMBER_REJOINED = "member_rejoined"
    MEMBER_DELETED = "member_deleted"

    # Transaction log
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_REJECTED = "transaction_rejected"
    TRANSACTION_DELETED = "transaction_deleted"

    # Persistence
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_SAVED = "ledger_saved"
    SAVE_FAILED = "save_failed"
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_RESTORED = "backup_restored"

    # Insight
    INSIGHT_GENERATED = "insight_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


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
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
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

    # Context - which ledger and which entity is this about?
    user_id: Optional[str] = Field(
        default=None,
        description="Ledger owner the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'member', 'transaction', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a member delete and its cascade)"
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
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.member_added(user_id, member_id, name)
        event = AuditEventBuilder.member_deleted(user_id, member_id, name, removed_ids)
    """

    @staticmethod
    def member_added(
        user_id: str,
        member_id: str,
        name: str,
        joined_at: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_ADDED,
            user_id=user_id,
            entity_type="member",
            entity_id=member_id,
            description=f"Member added: {name}",
            details={"name": name, "joined_at": joined_at},
            is_user_action=True,
        )

    @staticmethod
    def member_left(
        user_id: str,
        member_id: str,
        name: str,
        left_at: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_LEFT,
            user_id=user_id,
            entity_type="member",
            entity_id=member_id,
            description=f"Member left: {name}",
            details={"name": name, "left_at": left_at},
            is_user_action=True,
        )

    @staticmethod
    def member_rejoined(
        user_id: str,
        member_id: str,
        name: str,
        rejoined_at: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMBER_REJOINED,
            user_id=user_id,
            entity_type="member",
            entity_id=member_id,
            description=f"Member rejoined: {name}",
            details={"name": name, "rejoined_at": rejoined_at},
            is_user_action=True,
        )

    @staticmethod
    def member_deleted(
        user_id: str,
        member_id: str,
        name: str,
        removed_transaction_ids: list[str],
        policy: str,
    ) -> AuditEvent:
        # Cascaded removals erase financial history, so they are flagged
        severity = (
            AuditSeverity.WARNING if removed_transaction_ids else AuditSeverity.INFO
        )
        return AuditEvent(
            event_type=AuditEventType.MEMBER_DELETED,
            severity=severity,
            user_id=user_id,
            entity_type="member",
            entity_id=member_id,
            description=(
                f"Member deleted: {name} "
                f"({len(removed_transaction_ids)} linked transactions removed)"
            ),
            details={
                "name": name,
                "deletion_policy": policy,
                "removed_transaction_ids": removed_transaction_ids,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_added(
        user_id: str,
        transaction_id: str,
        kind: str,
        amount: float,
        target_member_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"{kind.capitalize()} transaction added: {amount:,.2f}",
            details={
                "kind": kind,
                "amount": amount,
                "target_member_id": target_member_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_rejected(
        user_id: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="transaction",
            description=f"Transaction rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        user_id: str,
        transaction_id: str,
        kind: str,
        amount: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"{kind.capitalize()} transaction deleted: {amount:,.2f}",
            details={"kind": kind, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def ledger_loaded(
        user_id: str,
        member_count: int,
        transaction_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            user_id=user_id,
            entity_type="ledger",
            entity_id=user_id,
            description=(
                f"Ledger loaded: {member_count} members, "
                f"{transaction_count} transactions"
            ),
            details={
                "member_count": member_count,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def ledger_saved(
        user_id: str,
        member_count: int,
        transaction_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_SAVED,
            user_id=user_id,
            entity_type="ledger",
            entity_id=user_id,
            description=(
                f"Ledger saved: {member_count} members, "
                f"{transaction_count} transactions"
            ),
            details={
                "member_count": member_count,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def save_failed(
        user_id: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="ledger",
            entity_id=user_id,
            description="Ledger save failed",
            error_message=error_message,
        )

    @staticmethod
    def backup_exported(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            user_id=user_id,
            entity_type="ledger",
            entity_id=user_id,
            description="Backup code exported",
            is_user_action=True,
        )

    @staticmethod
    def backup_restored(
        user_id: str,
        member_count: int,
        transaction_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_RESTORED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="ledger",
            entity_id=user_id,
            description="Ledger replaced from backup code",
            details={
                "member_count": member_count,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def insight_generated(
        user_id: str,
        used_fallback: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHT_GENERATED,
            user_id=user_id,
            entity_type="ledger",
            entity_id=user_id,
            description=(
                "Insight fallback returned" if used_fallback else "Insight generated"
            ),
            details={"used_fallback": used_fallback},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
        )
