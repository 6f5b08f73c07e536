"""
Main Orchestrator for the Mess Ledger

This module ties together all the components and defines the
session flow for one ledger (one user identity):
1. Load (repository → members + transactions)
2. Mutate (validate → apply → audit → save)
3. Summarize (engine recomputes everything from scratch)
4. Insight (AI note, separate from the summary)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No transaction enters the log without passing validation
- The engine never sees storage, and storage never sees the engine
- Every change is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from typing import Optional, Union

import structlog

from messbook.agents import InsightAgent
from messbook.audit import AuditLogger
from messbook.config import LedgerSettings, get_settings
from messbook.engine import calculate_mess_summary, leave, rejoin
from messbook.models.ledger import (
    DeletionPolicy,
    LedgerSnapshot,
    Member,
    MembershipPeriod,
    MessSummary,
    Transaction,
    TransactionKind,
    ValidationResult,
    now_ms,
)
from messbook.queries import LedgerQueryExecutor
from messbook.services.backup import export_backup, restore_backup
from messbook.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerRepository,
    InMemoryAuditStorage,
    InMemoryLedgerRepository,
    JsonFileLedgerRepository,
    LedgerRepository,
    StorageError,
)
from messbook.validation import LedgerValidator

logger = structlog.get_logger(__name__)


class LedgerError(Exception):
    """Base error for ledger session operations."""
    pass


class MemberNotFoundError(LedgerError):
    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"No member with id {member_id}")


class TransactionNotFoundError(LedgerError):
    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"No transaction with id {transaction_id}")


class RejectedError(LedgerError):
    """An entry failed validation. The full result is attached."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.error_messages))


class TransactionRejectedError(RejectedError):
    pass


class MemberRejectedError(RejectedError):
    pass


class MessLedger:
    """
    A live ledger session.

    Holds the member roster and the transaction log in memory, applies
    changes, and writes the whole ledger back through the repository.

    With `autosave` on (the default), every successful change is saved
    immediately. A failed save raises StorageError but leaves the change
    applied in memory, so the caller can retry `save()`.
    """

    def __init__(
        self,
        user_id: str,
        repository: LedgerRepository,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        insight_agent: Optional[InsightAgent] = None,
        settings: Optional[LedgerSettings] = None,
        autosave: bool = True,
    ):
        self.user_id = user_id
        self._repository = repository
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or LedgerValidator()
        self._insight_agent = insight_agent or InsightAgent()
        self._settings = settings or get_settings().ledger
        self._autosave = autosave

        self._members: list[Member] = []
        self._transactions: list[Transaction] = []

    @property
    def members(self) -> list[Member]:
        return list(self._members)

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def currency_code(self) -> str:
        return self._settings.currency_code

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(members=self.members, transactions=self.transactions)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    async def load(self) -> LedgerSnapshot:
        """Replace the in-memory ledger with the stored one."""
        snapshot = await self._repository.load(self.user_id)
        self._members = list(snapshot.members)
        self._transactions = list(snapshot.transactions)

        await self._audit_logger.log_ledger_loaded(
            user_id=self.user_id,
            member_count=len(self._members),
            transaction_count=len(self._transactions),
        )
        return snapshot

    async def save(self) -> bool:
        """Write the whole ledger through the repository."""
        try:
            saved = await self._repository.save(
                self.user_id, self._members, self._transactions
            )
        except StorageError as e:
            await self._audit_logger.log_save_failed(
                user_id=self.user_id,
                error_message=str(e),
            )
            raise

        await self._audit_logger.log_ledger_saved(
            user_id=self.user_id,
            member_count=len(self._members),
            transaction_count=len(self._transactions),
        )
        return saved

    async def _changed(self) -> None:
        if self._autosave:
            await self.save()

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    def get_member(self, member_id: str) -> Member:
        for member in self._members:
            if member.id == member_id:
                return member
        raise MemberNotFoundError(member_id)

    def _replace_member(self, updated: Member) -> None:
        self._members = [
            updated if m.id == updated.id else m for m in self._members
        ]

    async def add_member(
        self,
        name: str,
        joined_at: Optional[int] = None,
        avatar: Optional[str] = None,
    ) -> Member:
        """
        Add a member, present from `joined_at` (now if omitted).

        Raises:
            MemberRejectedError: If the name is empty
        """
        result = self._validator.validate_member_name(name, self._members)
        if not result.is_valid:
            raise MemberRejectedError(result)
        if result.warnings:
            logger.warning("member_warnings", name=name, warnings=result.warnings)

        joined_at = now_ms() if joined_at is None else joined_at
        member = Member(
            name=name,
            avatar=avatar,
            periods=[MembershipPeriod(join=joined_at)],
        )
        self._members.append(member)

        await self._audit_logger.log_member_added(
            user_id=self.user_id,
            member_id=member.id,
            name=member.name,
            joined_at=joined_at,
        )
        await self._changed()
        return member

    async def mark_left(
        self,
        member_id: str,
        at: Optional[int] = None,
    ) -> Member:
        """
        Close the member's current period at `at` (now if omitted).

        Raises:
            MemberNotFoundError: Unknown member
            MembershipError: The member already left, or `at` precedes their join
        """
        at = now_ms() if at is None else at
        updated = leave(self.get_member(member_id), at)
        self._replace_member(updated)

        await self._audit_logger.log_member_left(
            user_id=self.user_id,
            member_id=member_id,
            name=updated.name,
            left_at=at,
        )
        await self._changed()
        return updated

    async def rejoin(
        self,
        member_id: str,
        at: Optional[int] = None,
    ) -> Member:
        """
        Start a new period for a member who left.

        Raises:
            MemberNotFoundError: Unknown member
            MembershipError: The member is present, or `at` is not after their last leave
        """
        at = now_ms() if at is None else at
        updated = rejoin(self.get_member(member_id), at)
        self._replace_member(updated)

        await self._audit_logger.log_member_rejoined(
            user_id=self.user_id,
            member_id=member_id,
            name=updated.name,
            rejoined_at=at,
        )
        await self._changed()
        return updated

    async def delete_member(
        self,
        member_id: str,
        policy: Optional[DeletionPolicy] = None,
    ) -> list[Transaction]:
        """
        Remove a member from the roster.

        With CASCADE, personal charges and payments targeting the member are
        removed as well. With ORPHAN they stay in the log and are reported as
        orphaned by the summary. Shared transactions are never removed, but
        they are re-split among the remaining members on the next summary.

        Returns:
            The transactions that were removed
        """
        member = self.get_member(member_id)
        policy = DeletionPolicy(policy or self._settings.deletion_policy)

        removed = []
        if policy is DeletionPolicy.CASCADE:
            removed = [t for t in self._transactions if t.target_member_id == member_id]
            self._transactions = [
                t for t in self._transactions if t.target_member_id != member_id
            ]
        self._members = [m for m in self._members if m.id != member_id]

        await self._audit_logger.log_member_deleted(
            user_id=self.user_id,
            member_id=member_id,
            name=member.name,
            removed_transaction_ids=[t.id for t in removed],
            policy=policy.value,
        )
        await self._changed()
        return removed

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def get_transaction(self, transaction_id: str) -> Transaction:
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        raise TransactionNotFoundError(transaction_id)

    async def add_transaction(
        self,
        description: str,
        amount: float,
        kind: Union[TransactionKind, str],
        target_member_id: Optional[str] = None,
        at: Optional[int] = None,
    ) -> Transaction:
        """
        Validate and record a transaction dated `at` (now if omitted).

        The target of a SHARED transaction is ignored.

        Raises:
            TransactionRejectedError: Validation found errors
            ValueError: `kind` is not a transaction kind
        """
        kind = TransactionKind(kind)
        at = now_ms() if at is None else at
        if kind is TransactionKind.SHARED:
            target_member_id = None

        result = self._validator.validate_transaction(
            description=description,
            amount=amount,
            kind=kind,
            target_member_id=target_member_id,
            at=at,
            members=self._members,
        )
        if not result.is_valid:
            await self._audit_logger.log_transaction_rejected(
                user_id=self.user_id,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
            )
            raise TransactionRejectedError(result)
        if result.warnings:
            logger.warning(
                "transaction_warnings",
                user_id=self.user_id,
                warnings=result.warnings,
            )

        transaction = Transaction(
            description=description,
            amount=float(amount),
            kind=kind,
            target_member_id=target_member_id,
            date=at,
        )
        self._transactions.append(transaction)

        await self._audit_logger.log_transaction_added(
            user_id=self.user_id,
            transaction_id=transaction.id,
            kind=transaction.kind.value,
            amount=transaction.amount,
            target_member_id=transaction.target_member_id,
        )
        await self._changed()
        return transaction

    async def delete_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        self._transactions = [t for t in self._transactions if t.id != transaction_id]

        await self._audit_logger.log_transaction_deleted(
            user_id=self.user_id,
            transaction_id=transaction.id,
            kind=transaction.kind.value,
            amount=transaction.amount,
        )
        await self._changed()
        return transaction

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def summary(self) -> MessSummary:
        """Recompute the full summary from the current roster and log."""
        return calculate_mess_summary(
            self._members,
            self._transactions,
            breakfast_tag=self._settings.breakfast_tag,
        )

    def queries(self) -> LedgerQueryExecutor:
        return LedgerQueryExecutor(
            self._members,
            self._transactions,
            breakfast_tag=self._settings.breakfast_tag,
        )

    async def insight(self) -> str:
        """Ask the insight agent about the current summary. Never raises."""
        response = await self._insight_agent.generate(
            self.summary(), self.currency_code
        )
        if response.reason == "service_error":
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message="Insight generation failed",
                user_id=self.user_id,
            )
        await self._audit_logger.log_insight_generated(
            user_id=self.user_id,
            used_fallback=response.used_fallback,
        )
        return response.text

    # -------------------------------------------------------------------------
    # Backup
    # -------------------------------------------------------------------------

    async def export_backup(self) -> str:
        code = export_backup(self.snapshot())
        await self._audit_logger.log_backup_exported(user_id=self.user_id)
        return code

    async def restore_backup(self, code: str) -> LedgerSnapshot:
        """
        Replace the whole ledger with the contents of a backup code.

        Raises:
            BackupError: The code is malformed. The ledger is left untouched.
        """
        snapshot = restore_backup(code)
        self._members = list(snapshot.members)
        self._transactions = list(snapshot.transactions)

        await self._audit_logger.log_backup_restored(
            user_id=self.user_id,
            member_count=len(self._members),
            transaction_count=len(self._transactions),
        )
        await self._changed()
        return snapshot


def create_app_components(
    user_id: str,
    backend: Optional[str] = None,
) -> MessLedger:
    """
    Factory function to create a ledger session with configured services.

    Args:
        user_id: Ledger owner
        backend: "json", "sheets" or "memory". Defaults to the
                configured storage backend. If Google Sheets is not
                configured, falls back to the JSON file backend.

    Returns:
        An unloaded MessLedger. Call `await ledger.load()` before use.
    """
    settings = get_settings()
    backend = backend or settings.storage.backend

    repository: LedgerRepository
    if backend == "memory":
        repository = InMemoryLedgerRepository()
        audit_logger = AuditLogger(InMemoryAuditStorage())
    elif backend == "sheets":
        try:
            sheets_client = GoogleSheetsClient()
            repository = GoogleSheetsLedgerRepository(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue with local files
            logger.warning("sheets_not_configured", error=str(e))
            repository = JsonFileLedgerRepository(settings.storage.data_dir)
            audit_logger = AuditLogger()  # Local-only logging
    elif backend == "json":
        repository = JsonFileLedgerRepository(settings.storage.data_dir)
        audit_logger = AuditLogger()  # Local-only logging
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    return MessLedger(
        user_id=user_id,
        repository=repository,
        audit_logger=audit_logger,
        settings=settings.ledger,
    )
