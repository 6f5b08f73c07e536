"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger on the local disk, in Google Sheets, or in memory for tests
2. Keep the balance engine completely free of storage calls
3. Key every ledger by an explicit user identity instead of ad hoc key strings

The interface is intentionally simple - a ledger is loaded and saved as a
whole, because the engine always recomputes from the full collections.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from messbook.models.audit import AuditEvent
from messbook.models.ledger import LedgerSnapshot, Member, Transaction


class LedgerRepository(ABC):
    """
    Abstract interface for ledger persistence.

    Any storage implementation (JSON files, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def load(self, user_id: str) -> LedgerSnapshot:
        """
        Load the last-saved collections for a user.

        Args:
            user_id: Ledger owner identity

        Returns:
            The saved snapshot, or an empty one if nothing was saved yet

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save(
        self,
        user_id: str,
        members: Sequence[Member],
        transactions: Sequence[Transaction],
    ) -> bool:
        """
        Persist the current collections for a user, replacing what was there.

        Args:
            user_id: Ledger owner identity
            members: Full current roster
            transactions: Full current transaction log

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def exists(self, user_id: str) -> bool:
        """Check whether anything was ever saved for this user."""
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
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'member', 'transaction')
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

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
