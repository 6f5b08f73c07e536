"""Tests for currency display."""

import pytest

from messbook.formatting import format_balance, format_currency
from messbook.models import NetBalance


class TestFormatCurrency:
    """Tests for format_currency."""

    @pytest.mark.parametrize("amount,code,expected", [
        (1250.5, "SAR", "SR 1,250.50"),
        (-40, "INR", "-₹40.00"),
        (0.004, "USD", "$0.00"),
        (-0.004, "USD", "$0.00"),
        (99.999, "BDT", "৳100.00"),
        (12, "XYZ", "XYZ 12.00"),
        (7, "aed", "AED 7.00"),
    ])
    def test_formats(self, amount, code, expected):
        """Test rounding, grouping, symbols and sign placement."""
        assert format_currency(amount, code) == expected

    def test_signed_positive(self):
        """Test the explicit plus sign."""
        assert format_currency(15, "EUR", signed=True) == "+€15.00"
        assert format_currency(0, "EUR", signed=True) == "€0.00"


class TestFormatBalance:
    """Tests for format_balance."""

    def test_debt(self):
        """Test that debts show the amount due without a sign."""
        assert format_balance(NetBalance(value=-80), "SAR") == "SR 80.00 due"

    def test_credit(self):
        """Test that credits are labelled as such."""
        assert format_balance(NetBalance(value=30.456), "USD") == "$30.46 credit"

    def test_settled(self):
        """Test that near-zero balances are settled."""
        assert format_balance(NetBalance(value=0.001), "SAR") == "SR 0.00 settled"
