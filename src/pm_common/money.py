"""Money and percentage formatting at the API boundary.

Balances, stakes and payouts are play-money euros held as float with full
precision internally; only the boundary rounds (2 dp for money, whole numbers
for percentages).
"""

import math


def round_money(amount: float) -> float:
    """Round a euro amount to cents for display: 66.66666 -> 66.67."""
    return round(amount, 2)


def euros_to_display(amount: float) -> str:
    """Format a euro amount: 1234.5 -> '€1,234.50', -12 -> '-€12.00'."""
    if amount < 0:
        return f"-€{-amount:,.2f}"
    return f"€{amount:,.2f}"


def round_percent(value: float) -> int:
    """Whole-number percentage for the UI, halves rounded up: 62.5 -> 63."""
    return math.floor(value + 0.5)


def is_finite_number(value: object) -> bool:
    """True for real, finite numbers (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def parse_amount(value: object) -> object:
    """Numeric strings become floats; anything else is passed through as-is.

    Amounts arrive from query strings and loosely typed JSON. Conversion never
    raises, so the simulator gets to reject bad input with its own reason.
    """
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return value
    return value
