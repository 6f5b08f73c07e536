"""Query views package."""

from messbook.queries.executor import (
    UNKNOWN_MEMBER,
    LedgerQueryExecutor,
    MemberStatement,
    QueryExecutionError,
    TransactionView,
)

__all__ = [
    "UNKNOWN_MEMBER",
    "LedgerQueryExecutor",
    "MemberStatement",
    "QueryExecutionError",
    "TransactionView",
]
