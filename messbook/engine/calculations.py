"""
Balance Calculation Engine

Turns the member roster and the transaction log into a MessSummary.

DESIGN DECISION: The summary is recomputed from scratch on every call.
There is no cached or incremental state, so the result can never drift
from the inputs. A household's history is small enough for this to be
instant.

Flow:
1. Distribute - walk the log once, slicing shared costs across the members
   active on each date and routing personal charges and payments to their
   targets.
2. Aggregate - fold the per-member accumulators into MemberBalance records
   and compute the mess-wide totals.

The engine never raises for well-formed input. Transactions that cannot be
attributed (nobody active on the date, target member deleted) are skipped
and reported on the summary instead.
"""

from dataclasses import dataclass, field
from typing import Sequence

import structlog

from messbook.engine.membership import active_members_at, current_members
from messbook.models.ledger import (
    Member,
    MemberBalance,
    MessSummary,
    NetBalance,
    Transaction,
    TransactionKind,
)

BREAKFAST_TAG = "breakfast"

logger = structlog.get_logger(__name__)


@dataclass
class CostDistribution:
    """Per-member accumulators and log-wide totals from one pass over the log."""
    shared_share: dict[str, float]
    personal_total: dict[str, float]
    paid: dict[str, float]
    breakfast_paid: dict[str, float]
    total_shared: float = 0.0
    total_personal: float = 0.0
    total_payments: float = 0.0
    total_breakfast_payments: float = 0.0
    unattributed_shared: float = 0.0
    orphaned_ids: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls, members: Sequence[Member]) -> "CostDistribution":
        return cls(
            shared_share={m.id: 0.0 for m in members},
            personal_total={m.id: 0.0 for m in members},
            paid={m.id: 0.0 for m in members},
            breakfast_paid={m.id: 0.0 for m in members},
        )


def is_breakfast_payment(transaction: Transaction, tag: str = BREAKFAST_TAG) -> bool:
    """Payments tagged for the breakfast sub-ledger (case-insensitive substring)."""
    tag = tag.strip().lower()
    return (
        transaction.kind is TransactionKind.PAYMENT
        and bool(tag)
        and tag in transaction.description.lower()
    )


def _credit(bucket: dict[str, float], transaction: Transaction, dist: CostDistribution) -> None:
    # Targets are looked up in the live roster only; deleted members have no entry
    if transaction.target_member_id in bucket:
        bucket[transaction.target_member_id] += transaction.amount
    else:
        dist.orphaned_ids.append(transaction.id)


def distribute_costs(
    members: Sequence[Member],
    transactions: Sequence[Transaction],
    breakfast_tag: str = BREAKFAST_TAG,
) -> CostDistribution:
    """Walk the whole log once and accumulate per-member figures."""
    dist = CostDistribution.empty(members)

    for transaction in transactions:
        if transaction.kind is TransactionKind.SHARED:
            dist.total_shared += transaction.amount
            active = active_members_at(members, transaction.date)
            if not active:
                dist.unattributed_shared += transaction.amount
                logger.debug(
                    "shared_transaction_unattributed",
                    transaction_id=transaction.id,
                    date=transaction.date,
                    amount=transaction.amount,
                )
                continue
            slice_ = transaction.amount / len(active)
            for member in active:
                dist.shared_share[member.id] += slice_

        elif transaction.kind is TransactionKind.PERSONAL:
            dist.total_personal += transaction.amount
            _credit(dist.personal_total, transaction, dist)

        elif transaction.kind is TransactionKind.PAYMENT:
            if is_breakfast_payment(transaction, breakfast_tag):
                dist.total_breakfast_payments += transaction.amount
                _credit(dist.breakfast_paid, transaction, dist)
            else:
                dist.total_payments += transaction.amount
                _credit(dist.paid, transaction, dist)

        else:
            raise ValueError(f"Unhandled transaction kind: {transaction.kind!r}")

    return dist


def aggregate_balances(
    members: Sequence[Member],
    dist: CostDistribution,
) -> MessSummary:
    """Fold a cost distribution into per-member balances and mess-wide totals."""
    balances = []
    for member in members:
        shared_share = dist.shared_share[member.id]
        personal_total = dist.personal_total[member.id]
        total_cost = shared_share + personal_total
        paid = dist.paid[member.id]
        balances.append(MemberBalance(
            member=member,
            shared_share=shared_share,
            personal_total=personal_total,
            total_cost=total_cost,
            paid=paid,
            breakfast_paid=dist.breakfast_paid[member.id],
            net_balance=NetBalance.from_totals(paid, total_cost),
        ))

    # Present-day roster, not the roster at each transaction's date
    active_count = len(current_members(members))
    average = dist.total_shared / active_count if active_count > 0 else 0.0

    return MessSummary(
        total_shared_expense=dist.total_shared,
        total_personal_expense=dist.total_personal,
        total_payments=dist.total_payments,
        total_breakfast_payments=dist.total_breakfast_payments,
        grand_total_debt=(dist.total_shared + dist.total_personal) - dist.total_payments,
        average_per_person=average,
        unattributed_shared_expense=dist.unattributed_shared,
        orphaned_transaction_ids=list(dist.orphaned_ids),
        member_balances=balances,
    )


def calculate_mess_summary(
    members: Sequence[Member],
    transactions: Sequence[Transaction],
    breakfast_tag: str = BREAKFAST_TAG,
) -> MessSummary:
    """
    Compute the full summary for a roster and a transaction log.

    Pure and idempotent: equal inputs give structurally equal summaries.

    Args:
        members: Current roster (deleted members are simply absent)
        transactions: Full transaction log, any order
        breakfast_tag: Description tag routing payments to the breakfast sub-ledger

    Returns:
        A fresh MessSummary
    """
    return aggregate_balances(
        members,
        distribute_costs(members, transactions, breakfast_tag),
    )
