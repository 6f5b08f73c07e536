"""
Ledger Query Views

DESIGN DECISION: Queries are DETERMINISTIC and read-only.
They slice the raw transaction log for display. Balances always come
from the engine, never from these views.

Transactions whose target member was deleted are kept in the listings
with an "Unknown member" placeholder so the log stays complete.
"""

from typing import Optional, Sequence

from pydantic import BaseModel, Field

from messbook.engine.calculations import (
    BREAKFAST_TAG,
    calculate_mess_summary,
    is_breakfast_payment,
)
from messbook.engine.membership import active_members_at
from messbook.models.ledger import (
    Member,
    MemberBalance,
    Transaction,
    TransactionKind,
)

UNKNOWN_MEMBER = "Unknown member"


class QueryExecutionError(Exception):
    """Error during query execution."""
    pass


class TransactionView(BaseModel):
    """A transaction prepared for display."""

    id: str
    description: str
    amount: float
    kind: TransactionKind
    date: int
    target_member_id: Optional[str] = None
    target_name: Optional[str] = Field(
        default=None,
        description="Target's name, the placeholder if they were deleted, None for shared"
    )
    is_orphaned: bool = False
    is_breakfast: bool = False
    share: Optional[float] = Field(
        default=None,
        description="The viewing member's slice of a shared transaction"
    )


class MemberStatement(BaseModel):
    """Everything that makes up one member's balance."""

    balance: MemberBalance
    transactions: list[TransactionView] = Field(
        default_factory=list,
        description="Personal charges and payments targeting the member"
    )
    shared_transactions: list[TransactionView] = Field(
        default_factory=list,
        description="Shared transactions dated while the member was present"
    )


class LedgerQueryExecutor:
    """
    Read-only views over one ledger's members and transactions.

    GUARANTEES:
    - Only returns transactions that exist in the log
    - Never hides a transaction because its target is gone
    """

    def __init__(
        self,
        members: Sequence[Member],
        transactions: Sequence[Transaction],
        breakfast_tag: str = BREAKFAST_TAG,
    ):
        self._members = list(members)
        self._transactions = list(transactions)
        self._breakfast_tag = breakfast_tag
        self._names = {m.id: m.name for m in self._members}

    def _to_view(self, transaction: Transaction) -> TransactionView:
        target_name = None
        is_orphaned = False
        if transaction.target_member_id is not None:
            target_name = self._names.get(transaction.target_member_id)
            if target_name is None:
                target_name = UNKNOWN_MEMBER
                is_orphaned = True

        return TransactionView(
            id=transaction.id,
            description=transaction.description,
            amount=transaction.amount,
            kind=transaction.kind,
            date=transaction.date,
            target_member_id=transaction.target_member_id,
            target_name=target_name,
            is_orphaned=is_orphaned,
            is_breakfast=is_breakfast_payment(transaction, self._breakfast_tag),
        )

    def list_transactions(
        self,
        kind: Optional[TransactionKind] = None,
        member_id: Optional[str] = None,
        date_from: Optional[int] = None,
        date_to: Optional[int] = None,
        limit: Optional[int] = 100,
    ) -> list[TransactionView]:
        """
        List transactions, newest first.

        Args:
            kind: Only this kind
            member_id: Only transactions targeting this member
            date_from: Inclusive lower bound (epoch ms)
            date_to: Inclusive upper bound (epoch ms)
            limit: Maximum number of results, None for all
        """
        if date_from is not None and date_to is not None and date_from > date_to:
            raise QueryExecutionError("date_from must not be after date_to")
        if limit is not None and limit < 1:
            raise QueryExecutionError("limit must be at least 1")

        selected = [
            t for t in self._transactions
            if (kind is None or t.kind is kind)
            and (member_id is None or t.target_member_id == member_id)
            and (date_from is None or t.date >= date_from)
            and (date_to is None or t.date <= date_to)
        ]
        selected.sort(key=lambda t: t.date, reverse=True)
        if limit is not None:
            selected = selected[:limit]

        return [self._to_view(t) for t in selected]

    def member_statement(self, member_id: str) -> MemberStatement:
        """Balance of one member together with the transactions behind it."""
        if member_id not in self._names:
            raise QueryExecutionError(f"No member with id {member_id}")

        summary = calculate_mess_summary(
            self._members, self._transactions, self._breakfast_tag
        )
        member = next(m for m in self._members if m.id == member_id)

        shared = []
        for transaction in self._transactions:
            if transaction.kind is not TransactionKind.SHARED:
                continue
            active = active_members_at(self._members, transaction.date)
            if member in active:
                view = self._to_view(transaction)
                view.share = transaction.amount / len(active)
                shared.append(view)
        shared.sort(key=lambda v: v.date, reverse=True)

        return MemberStatement(
            balance=summary.balance_for(member_id),
            transactions=self.list_transactions(member_id=member_id, limit=None),
            shared_transactions=shared,
        )
