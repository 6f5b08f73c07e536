"""Tests for the balance engine: membership intervals, distribution and aggregation."""

import pytest

from conftest import make_member
from messbook.engine import (
    MembershipError,
    active_members_at,
    calculate_mess_summary,
    current_members,
    distribute_costs,
    is_active_at,
    is_breakfast_payment,
    leave,
    rejoin,
)
from messbook.models import Transaction, TransactionKind


def shared(amount, date, tid=None):
    kwargs = {"id": tid} if tid else {}
    return Transaction(amount=amount, kind=TransactionKind.SHARED, date=date, **kwargs)


def personal(amount, target, date=0, tid=None):
    kwargs = {"id": tid} if tid else {}
    return Transaction(
        amount=amount,
        kind=TransactionKind.PERSONAL,
        target_member_id=target,
        date=date,
        **kwargs,
    )


def payment(amount, target, description="", date=0, tid=None):
    kwargs = {"id": tid} if tid else {}
    return Transaction(
        amount=amount,
        kind=TransactionKind.PAYMENT,
        target_member_id=target,
        description=description,
        date=date,
        **kwargs,
    )


class TestMembership:
    """Tests for interval resolution and leave/rejoin transitions."""

    def test_interval_correctness(self):
        """Test activity across two periods with a gap."""
        member = make_member("A", (10, 20), (30, None))
        assert is_active_at(member, 15)
        assert is_active_at(member, 35)
        assert not is_active_at(member, 25)
        assert not is_active_at(member, 5)

    def test_leave_day_is_inclusive(self):
        """Test that a member is still active on their leave time."""
        member = make_member("A", (0, 20))
        assert is_active_at(member, 20)
        assert not is_active_at(member, 21)

    def test_active_members_keeps_roster_order(self):
        """Test that active members come back in roster order."""
        a = make_member("A", (0, None))
        b = make_member("B", (10, None))
        c = make_member("C", (0, 5))
        assert active_members_at([a, b, c], 12) == [a, b]
        assert current_members([a, b, c]) == [a, b]

    def test_leave_closes_open_period(self):
        """Test that leaving closes the current period without mutating the input."""
        member = make_member("A", (0, None))
        left = leave(member, 50)
        assert left.leave_date == 50
        assert member.leave_date is None

    def test_leave_twice_rejected(self):
        """Test that a member who already left cannot leave again."""
        with pytest.raises(MembershipError):
            leave(make_member("A", (0, 10)), 20)

    def test_leave_before_join_rejected(self):
        """Test that leaving before the current period began is rejected."""
        with pytest.raises(MembershipError):
            leave(make_member("A", (0, 10), (20, None)), 15)

    def test_rejoin_opens_new_period(self):
        """Test that rejoining appends an open period."""
        member = rejoin(make_member("A", (0, 10)), 20)
        assert len(member.periods) == 2
        assert member.current_period.join == 20

    def test_rejoin_at_leave_time_rejected(self):
        """Test that a rejoin must be strictly after the last leave."""
        with pytest.raises(MembershipError):
            rejoin(make_member("A", (0, 10)), 10)

    def test_rejoin_current_member_rejected(self):
        """Test that a present member cannot rejoin."""
        with pytest.raises(MembershipError):
            rejoin(make_member("A", (0, None)), 10)


class TestDistribution:
    """Tests for the worked scenarios of cost distribution."""

    def test_shared_split_evenly(self):
        """Test that a shared cost is split among everyone present."""
        members = [make_member("A", (0, None)), make_member("B", (0, None))]
        summary = calculate_mess_summary(members, [shared(100, 5)])
        assert summary.balance_for("A").shared_share == 50
        assert summary.balance_for("B").shared_share == 50
        assert summary.total_shared_expense == 100

    def test_member_joining_later_not_charged(self):
        """Test that a member who joined after the purchase pays nothing for it."""
        members = [make_member("A", (0, None)), make_member("B", (10, None))]
        summary = calculate_mess_summary(members, [shared(90, 5)])
        assert summary.balance_for("A").shared_share == 90
        assert summary.balance_for("B").shared_share == 0

    def test_gap_between_periods_not_charged(self):
        """Test that purchases during a member's absence are not charged to them."""
        members = [make_member("A", (0, 10), (20, None))]
        summary = calculate_mess_summary(members, [shared(40, 5), shared(60, 15)])
        assert summary.balance_for("A").shared_share == 40
        assert summary.unattributed_shared_expense == 60

    def test_personal_charged_to_target(self):
        """Test that a personal charge lands on its target only."""
        members = [make_member("A", (0, None)), make_member("B", (0, None))]
        summary = calculate_mess_summary(members, [personal(30, "A", date=3)])
        assert summary.balance_for("A").personal_total == 30
        assert summary.balance_for("B").personal_total == 0

    def test_breakfast_payment_separated(self):
        """Test that breakfast deposits go to their own sub-ledger."""
        members = [make_member("A", (0, None))]
        summary = calculate_mess_summary(members, [
            payment(50, "A"),
            payment(20, "A", description="breakfast"),
        ])
        balance = summary.balance_for("A")
        assert balance.paid == 50
        assert balance.breakfast_paid == 20
        assert summary.total_payments == 50
        assert summary.total_breakfast_payments == 20
        assert summary.grand_total_debt == -50

    def test_breakfast_tag_is_case_insensitive_substring(self):
        """Test breakfast detection on descriptions."""
        assert is_breakfast_payment(payment(10, "A", description="June Breakfast deposit"))
        assert not is_breakfast_payment(payment(10, "A", description="rent"))
        assert not is_breakfast_payment(personal(10, "A"))

    def test_custom_breakfast_tag(self):
        """Test that the sub-ledger tag is configurable."""
        members = [make_member("A", (0, None))]
        summary = calculate_mess_summary(
            members, [payment(20, "A", description="nasta")], breakfast_tag="nasta"
        )
        assert summary.balance_for("A").breakfast_paid == 20

    def test_orphaned_target_dropped_from_balances(self):
        """Test that a charge for a missing member affects no balance but is reported."""
        members = [make_member("A", (0, None))]
        summary = calculate_mess_summary(members, [personal(30, "ghost", tid="t1")])
        assert summary.balance_for("A").personal_total == 0
        assert summary.total_personal_expense == 30
        assert summary.orphaned_transaction_ids == ["t1"]

    def test_distribution_conserves_shared_amount(self):
        """Test that slices of a shared cost add back up to the amount."""
        members = [make_member(name, (0, None)) for name in "ABC"]
        dist = distribute_costs(members, [shared(100, 1)])
        assert sum(dist.shared_share.values()) == pytest.approx(100)


class TestAggregation:
    """Tests for balance aggregation and summary-wide properties."""

    def test_total_cost_and_net_balance(self):
        """Test that total cost is shared plus personal and net is paid minus cost."""
        members = [make_member("A", (0, None)), make_member("B", (0, None))]
        summary = calculate_mess_summary(members, [
            shared(100, 1),
            personal(30, "A"),
            payment(70, "A"),
        ])
        a = summary.balance_for("A")
        assert a.total_cost == a.shared_share + a.personal_total == 80
        assert a.net_balance.value == -10
        assert a.net_balance.amount_owed == 10
        b = summary.balance_for("B")
        assert b.net_balance.value == -50
        assert summary.grand_total_debt == 60

    def test_average_uses_current_roster(self):
        """Test that the average divides by members present today."""
        members = [make_member("A", (0, None)), make_member("B", (0, 10))]
        summary = calculate_mess_summary(members, [shared(90, 5)])
        assert summary.balance_for("B").shared_share == 45
        assert summary.average_per_person == 90

    def test_empty_roster_does_not_raise(self):
        """Test the zero-member edge case."""
        summary = calculate_mess_summary([], [shared(100, 1), personal(5, "A")])
        assert summary.average_per_person == 0
        assert summary.member_balances == []
        assert summary.unattributed_shared_expense == 100

    def test_empty_ledger(self):
        """Test that an empty ledger gives an all-zero summary."""
        summary = calculate_mess_summary([], [])
        assert summary.total_shared_expense == 0
        assert summary.grand_total_debt == 0

    def test_idempotent(self):
        """Test that recomputing gives a structurally equal summary."""
        members = [make_member("A", (0, 10), (20, None)), make_member("B", (0, None))]
        transactions = [shared(33, 5), shared(10, 15), personal(7, "B"), payment(12, "A")]
        assert calculate_mess_summary(members, transactions) == calculate_mess_summary(
            members, transactions
        )

    def test_order_of_log_irrelevant(self):
        """Test that the order of transactions does not change balances."""
        members = [make_member("A", (0, None)), make_member("B", (3, None))]
        transactions = [shared(30, 1), shared(60, 5), personal(7, "B")]
        forward = calculate_mess_summary(members, transactions)
        backward = calculate_mess_summary(members, list(reversed(transactions)))
        for member in members:
            assert forward.balance_for(member.id).total_cost == pytest.approx(
                backward.balance_for(member.id).total_cost
            )
