"""
In-memory storage, used by tests and by sessions that should not persist.
"""

from typing import Sequence

from messbook.models.audit import AuditEvent
from messbook.models.ledger import LedgerSnapshot, Member, Transaction
from messbook.services.storage.interface import (
    AuditStorageInterface,
    LedgerRepository,
)


class InMemoryLedgerRepository(LedgerRepository):
    """Keeps one serialized snapshot per user in a dict."""

    def __init__(self):
        self._records: dict[str, dict] = {}

    async def load(self, user_id: str) -> LedgerSnapshot:
        record = self._records.get(user_id)
        if record is None:
            return LedgerSnapshot()
        # Round-trip through the record so callers never share model instances
        return LedgerSnapshot.model_validate(record)

    async def save(
        self,
        user_id: str,
        members: Sequence[Member],
        transactions: Sequence[Transaction],
    ) -> bool:
        snapshot = LedgerSnapshot(members=list(members), transactions=list(transactions))
        self._records[user_id] = snapshot.to_record()
        return True

    async def exists(self, user_id: str) -> bool:
        return user_id in self._records


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
