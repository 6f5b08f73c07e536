"""
Currency display helpers.

The engine emits signed floats with no rounding. Rounding to two decimals
and sign handling happen here, at display time only.
"""

from messbook.models.ledger import NetBalance

# Display symbols. SAR is shown as "SR" on receipts in the Gulf.
CURRENCY_SYMBOLS = {
    "SAR": "SR",
    "BDT": "৳",
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "AED": "AED",
}


def format_currency(
    amount: float,
    currency_code: str = "SAR",
    signed: bool = False,
) -> str:
    """
    Format an amount for display, e.g. "SR 1,250.50" or "-₹40.00".

    Negative amounts always carry a leading "-". With `signed=True`,
    positive amounts get a "+". Anything that rounds to 0.00 is unsigned.
    """
    code = currency_code.upper()
    symbol = CURRENCY_SYMBOLS.get(code, code)

    rounded = round(float(amount), 2)
    if rounded == 0:
        sign = ""
    elif rounded < 0:
        sign = "-"
    else:
        sign = "+" if signed else ""

    # Letter symbols need a space before the digits, glyphs do not
    separator = " " if symbol[-1].isalpha() else ""
    return f"{sign}{symbol}{separator}{abs(rounded):,.2f}"


def format_balance(balance: NetBalance, currency_code: str = "SAR") -> str:
    """Render a net balance with an explicit direction label."""
    if round(balance.value, 2) == 0:
        return f"{format_currency(0, currency_code)} settled"
    if balance.is_debt:
        return f"{format_currency(balance.amount_owed, currency_code)} due"
    return f"{format_currency(balance.credit, currency_code)} credit"
