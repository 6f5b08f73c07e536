"""Tests for the two-stage ledger validator."""

import math

from conftest import DAY_MS, make_member
from messbook.models import TransactionKind, now_ms


class TestTransactionSchema:
    """Stage 1: schema checks."""

    def test_valid_shared_transaction(self, validator):
        """Test that a well-formed shared purchase passes."""
        result = validator.validate_transaction(
            description="Rice and lentils",
            amount=120.0,
            kind=TransactionKind.SHARED,
            target_member_id=None,
            at=now_ms(),
            members=[],
        )
        assert result.is_valid
        assert result.issues == []

    def test_empty_description_rejected(self, validator):
        """Test that a blank description is an error."""
        result = validator.validate_transaction(
            description="   ",
            amount=10,
            kind=TransactionKind.SHARED,
            target_member_id=None,
            at=now_ms(),
            members=[],
        )
        assert not result.schema_valid
        assert result.issues[0].field == "description"

    def test_non_finite_amount_rejected(self, validator):
        """Test that NaN, infinity and text amounts are errors."""
        for amount in (math.nan, math.inf, "12", None, True):
            result = validator.validate_transaction(
                description="Milk",
                amount=amount,
                kind=TransactionKind.SHARED,
                target_member_id=None,
                at=now_ms(),
                members=[],
            )
            assert not result.is_valid, amount
            assert result.issues[0].issue_type == "invalid_value"

    def test_non_positive_amount_rejected(self, validator):
        """Test that zero and negative amounts are errors."""
        result = validator.validate_transaction(
            description="Milk",
            amount=0,
            kind=TransactionKind.SHARED,
            target_member_id=None,
            at=now_ms(),
            members=[],
        )
        assert result.has_errors
        assert "greater than zero" in result.error_messages[0]

    def test_payment_without_target_rejected(self, validator):
        """Test that payments need a member."""
        result = validator.validate_transaction(
            description="Deposit",
            amount=500,
            kind=TransactionKind.PAYMENT,
            target_member_id=None,
            at=now_ms(),
            members=[],
        )
        assert not result.schema_valid
        assert not result.semantic_valid
        assert result.issues[0].field == "target_member_id"

    def test_overlong_description_rejected(self, validator):
        """Test that a description past the stored limit is an error."""
        result = validator.validate_transaction(
            description="x" * 201,
            amount=10,
            kind=TransactionKind.SHARED,
            target_member_id=None,
            at=now_ms(),
            members=[],
        )
        assert not result.schema_valid
        assert result.issues[0].issue_type == "too_long"

    def test_description_at_limit_passes(self, validator):
        """Test that exactly 200 characters are accepted."""
        result = validator.validate_transaction(
            description="x" * 200,
            amount=10,
            kind=TransactionKind.SHARED,
            target_member_id=None,
            at=now_ms(),
            members=[],
        )
        assert result.is_valid

    def test_negative_date_rejected(self, validator):
        """Test that a date before the epoch is an error."""
        result = validator.validate_transaction(
            description="Milk",
            amount=10,
            kind=TransactionKind.SHARED,
            target_member_id=None,
            at=-1,
            members=[],
        )
        assert not result.schema_valid
        assert result.issues[0].field == "date"


class TestTransactionSemantics:
    """Stage 2: checks against the roster and thresholds."""

    def test_unknown_target_rejected(self, validator):
        """Test that a target outside the roster is an error."""
        result = validator.validate_transaction(
            description="Soap",
            amount=15,
            kind=TransactionKind.PERSONAL,
            target_member_id="ghost",
            at=now_ms(),
            members=[make_member("A", (0, None))],
        )
        assert result.schema_valid
        assert not result.semantic_valid
        assert result.issues[0].issue_type == "unknown_member"

    def test_inactive_target_is_warning(self, validator):
        """Test that charging an absent member only warns."""
        result = validator.validate_transaction(
            description="Soap",
            amount=15,
            kind=TransactionKind.PERSONAL,
            target_member_id="A",
            at=50,
            members=[make_member("A", (0, 10))],
        )
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_large_amount_is_warning(self, validator):
        """Test that suspiciously large amounts are flagged, not blocked."""
        result = validator.validate_transaction(
            description="Fridge",
            amount=250000,
            kind=TransactionKind.SHARED,
            target_member_id=None,
            at=now_ms(),
            members=[],
        )
        assert result.is_valid
        assert result.issues[0].issue_type == "suspicious_value"

    def test_future_date_is_warning(self, validator):
        """Test that dates past the tolerance are flagged."""
        result = validator.validate_transaction(
            description="Gas",
            amount=40,
            kind=TransactionKind.SHARED,
            target_member_id=None,
            at=now_ms() + 3 * DAY_MS,
            members=[],
        )
        assert result.is_valid
        assert result.issues[0].issue_type == "future_date"


class TestMemberNames:
    """Tests for member name checks."""

    def test_empty_name_rejected(self, validator):
        """Test that an empty name is an error."""
        result = validator.validate_member_name("  ", [])
        assert not result.is_valid

    def test_duplicate_name_warns(self, validator):
        """Test that a duplicate name (any case) is only a warning."""
        result = validator.validate_member_name("a", [make_member("A", (0, None))])
        assert result.is_valid
        assert result.issues[0].issue_type == "duplicate"

    def test_overlong_name_rejected(self, validator):
        """Test that a name past the stored limit is an error."""
        result = validator.validate_member_name("n" * 101, [])
        assert not result.is_valid
        assert result.issues[0].issue_type == "too_long"
        assert validator.validate_member_name("n" * 100, []).is_valid


class TestUserFriendlySummary:
    """Tests for the display summary."""

    def test_all_passed(self, validator):
        """Test the clean message."""
        result = validator.validate_member_name("Rahim", [])
        assert "All checks passed" in validator.get_user_friendly_summary(result)

    def test_errors_listed_with_fix(self, validator):
        """Test that errors and their suggested fixes are listed."""
        result = validator.validate_transaction(
            description="",
            amount=10,
            kind=TransactionKind.SHARED,
            target_member_id=None,
            at=now_ms(),
            members=[],
        )
        text = validator.get_user_friendly_summary(result)
        assert "cannot be saved" in text
        assert "Describe what was bought or paid" in text
