"""Tests for the read-only ledger query views."""

import pytest

from conftest import make_member
from messbook.models import Transaction, TransactionKind
from messbook.queries import UNKNOWN_MEMBER, LedgerQueryExecutor, QueryExecutionError


@pytest.fixture
def executor():
    members = [make_member("A", (0, None)), make_member("B", (0, 15))]
    transactions = [
        Transaction(id="t1", description="Bazar", amount=100, kind=TransactionKind.SHARED, date=10),
        Transaction(
            id="t2",
            description="Soap",
            amount=20,
            kind=TransactionKind.PERSONAL,
            target_member_id="A",
            date=12,
        ),
        Transaction(
            id="t3",
            description="Breakfast deposit",
            amount=50,
            kind=TransactionKind.PAYMENT,
            target_member_id="A",
            date=14,
        ),
        Transaction(id="t4", description="Gas", amount=60, kind=TransactionKind.SHARED, date=20),
        Transaction(
            id="t5",
            description="Old charge",
            amount=5,
            kind=TransactionKind.PERSONAL,
            target_member_id="C",
            date=1,
        ),
    ]
    return LedgerQueryExecutor(members, transactions)


class TestListTransactions:
    """Tests for list_transactions."""

    def test_newest_first(self, executor):
        """Test ordering by date, newest first."""
        assert [v.id for v in executor.list_transactions()] == ["t4", "t3", "t2", "t1", "t5"]

    def test_filters(self, executor):
        """Test kind, member and inclusive date filters."""
        assert [v.id for v in executor.list_transactions(kind=TransactionKind.SHARED)] == ["t4", "t1"]
        assert [v.id for v in executor.list_transactions(member_id="A")] == ["t3", "t2"]
        assert [v.id for v in executor.list_transactions(date_from=12, date_to=14)] == ["t3", "t2"]
        assert len(executor.list_transactions(limit=2)) == 2

    def test_view_fields(self, executor):
        """Test target names, placeholders and breakfast flags."""
        views = {v.id: v for v in executor.list_transactions()}
        assert views["t1"].target_name is None
        assert views["t2"].target_name == "A"
        assert views["t3"].is_breakfast
        assert views["t5"].target_name == UNKNOWN_MEMBER
        assert views["t5"].is_orphaned

    def test_bad_arguments(self, executor):
        """Test that an inverted range or a zero limit is refused."""
        with pytest.raises(QueryExecutionError):
            executor.list_transactions(date_from=20, date_to=10)
        with pytest.raises(QueryExecutionError):
            executor.list_transactions(limit=0)


class TestMemberStatement:
    """Tests for member_statement."""

    def test_statement(self, executor):
        """Test a member's balance with the transactions behind it."""
        statement = executor.member_statement("A")
        assert statement.balance.shared_share == 50 + 60
        assert statement.balance.breakfast_paid == 50
        assert [v.id for v in statement.transactions] == ["t3", "t2"]
        assert [(v.id, v.share) for v in statement.shared_transactions] == [("t4", 60), ("t1", 50)]

    def test_statement_for_departed_member(self, executor):
        """Test that a member only sees shared costs from their stay."""
        statement = executor.member_statement("B")
        assert [v.id for v in statement.shared_transactions] == ["t1"]

    def test_unknown_member(self, executor):
        """Test that unknown ids are refused."""
        with pytest.raises(QueryExecutionError):
            executor.member_statement("C")
