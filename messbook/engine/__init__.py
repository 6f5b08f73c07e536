"""Balance engine package."""

from messbook.engine.calculations import (
    BREAKFAST_TAG,
    CostDistribution,
    aggregate_balances,
    calculate_mess_summary,
    distribute_costs,
    is_breakfast_payment,
)
from messbook.engine.membership import (
    MembershipError,
    active_members_at,
    current_members,
    is_active_at,
    is_current,
    leave,
    rejoin,
)

__all__ = [
    "BREAKFAST_TAG",
    "CostDistribution",
    "aggregate_balances",
    "calculate_mess_summary",
    "distribute_costs",
    "is_breakfast_payment",
    "MembershipError",
    "active_members_at",
    "current_members",
    "is_active_at",
    "is_current",
    "leave",
    "rejoin",
]
