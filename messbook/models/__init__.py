"""
Data Models Package

This package contains all Pydantic models used by the mess ledger.
All data flowing through the system must conform to these schemas.
"""

from messbook.models.ledger import (
    DeletionPolicy,
    LedgerSnapshot,
    Member,
    MemberBalance,
    MembershipPeriod,
    MessSummary,
    NetBalance,
    Transaction,
    TransactionKind,
    ValidationIssue,
    ValidationResult,
    new_id,
    now_ms,
)
from messbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DeletionPolicy",
    "LedgerSnapshot",
    "Member",
    "MemberBalance",
    "MembershipPeriod",
    "MessSummary",
    "NetBalance",
    "Transaction",
    "TransactionKind",
    "ValidationIssue",
    "ValidationResult",
    "new_id",
    "now_ms",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
