"""Sell fee — charged on the gross liquidation value of a position."""


def calc_sell_fee(gross_value: float, fee_rate: float) -> float:
    """Fee taken from a sale: gross x rate, never negative, never above gross."""
    if gross_value <= 0 or fee_rate <= 0:
        return 0.0
    return min(gross_value * fee_rate, gross_value)
