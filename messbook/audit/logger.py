"""
Audit Logger

DESIGN DECISION: Every change to a ledger is logged.
This provides:
1. Complete traceability of roster and transaction changes
2. Debugging capability when a balance looks wrong
3. A record of failures in external services

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Stamps every event with the owning ledger (user id)
"""

from typing import Optional
from uuid import UUID

import structlog

from messbook.models.audit import AuditEvent, AuditEventBuilder
from messbook.services.storage import AuditStorageInterface


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


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when one is configured
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
        self._logger = structlog.get_logger()

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

    async def log_member_added(
        self,
        user_id: str,
        member_id: str,
        name: str,
        joined_at: int,
    ) -> None:
        """Log a new member."""
        await self.log(AuditEventBuilder.member_added(
            user_id=user_id,
            member_id=member_id,
            name=name,
            joined_at=joined_at,
        ))

    async def log_member_left(
        self,
        user_id: str,
        member_id: str,
        name: str,
        left_at: int,
    ) -> None:
        """Log a member leaving."""
        await self.log(AuditEventBuilder.member_left(
            user_id=user_id,
            member_id=member_id,
            name=name,
            left_at=left_at,
        ))

    async def log_member_rejoined(
        self,
        user_id: str,
        member_id: str,
        name: str,
        rejoined_at: int,
    ) -> None:
        """Log a member coming back."""
        await self.log(AuditEventBuilder.member_rejoined(
            user_id=user_id,
            member_id=member_id,
            name=name,
            rejoined_at=rejoined_at,
        ))

    async def log_member_deleted(
        self,
        user_id: str,
        member_id: str,
        name: str,
        removed_transaction_ids: list[str],
        policy: str,
    ) -> None:
        """Log a member deletion and whatever it cascaded to."""
        await self.log(AuditEventBuilder.member_deleted(
            user_id=user_id,
            member_id=member_id,
            name=name,
            removed_transaction_ids=removed_transaction_ids,
            policy=policy,
        ))

    async def log_transaction_added(
        self,
        user_id: str,
        transaction_id: str,
        kind: str,
        amount: float,
        target_member_id: Optional[str],
    ) -> None:
        await self.log(AuditEventBuilder.transaction_added(
            user_id=user_id,
            transaction_id=transaction_id,
            kind=kind,
            amount=amount,
            target_member_id=target_member_id,
        ))

    async def log_transaction_rejected(
        self,
        user_id: str,
        issues: list[dict],
    ) -> None:
        await self.log(AuditEventBuilder.transaction_rejected(
            user_id=user_id,
            issues=issues,
        ))

    async def log_transaction_deleted(
        self,
        user_id: str,
        transaction_id: str,
        kind: str,
        amount: float,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            user_id=user_id,
            transaction_id=transaction_id,
            kind=kind,
            amount=amount,
        ))

    async def log_ledger_loaded(
        self,
        user_id: str,
        member_count: int,
        transaction_count: int,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_loaded(
            user_id=user_id,
            member_count=member_count,
            transaction_count=transaction_count,
        ))

    async def log_ledger_saved(
        self,
        user_id: str,
        member_count: int,
        transaction_count: int,
    ) -> None:
        await self.log(AuditEventBuilder.ledger_saved(
            user_id=user_id,
            member_count=member_count,
            transaction_count=transaction_count,
        ))

    async def log_save_failed(
        self,
        user_id: str,
        error_message: str,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            user_id=user_id,
            error_message=error_message,
        ))

    async def log_backup_exported(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.backup_exported(user_id=user_id))

    async def log_backup_restored(
        self,
        user_id: str,
        member_count: int,
        transaction_count: int,
    ) -> None:
        await self.log(AuditEventBuilder.backup_restored(
            user_id=user_id,
            member_count=member_count,
            transaction_count=transaction_count,
        ))

    async def log_insight_generated(
        self,
        user_id: str,
        used_fallback: bool,
    ) -> None:
        await self.log(AuditEventBuilder.insight_generated(
            user_id=user_id,
            used_fallback=used_fallback,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            user_id=user_id,
        ))

