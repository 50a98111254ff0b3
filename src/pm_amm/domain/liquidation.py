"""Position liquidation — value of selling shares back into the pool.

Selling ``s`` shares of YES for ``r`` euros: the seller hands ``s`` YES to
the pool, and the pool burns ``r`` complete YES+NO sets to pay out ``r``.
The product must survive:

    (yes + s - r) * (no - r) = k
    r^2 - (yes + no + s) * r + s * no = 0

(mirror the pools for NO). Of the two roots only the smaller keeps both
post-redemption pools positive; it always lies in [0, min(s, no)], so a
sale never pays more than the shares held.
"""

import math

from src.pm_amm.domain.models import SellQuote
from src.pm_amm.domain.pricing import pools_are_valid
from src.pm_common.money import is_finite_number


def _burn_amount(shares: float, own_pool: float, other_pool: float) -> float | None:
    """Solve the redemption quadratic. ``own_pool`` is the selling side's pool."""
    b = own_pool + other_pool + shares
    discriminant = b * b - 4 * shares * other_pool
    if not math.isfinite(discriminant) or discriminant < 0:
        return None
    # Smaller root in the cancellation-free form 2c / (b + sqrt(D)).
    return 2 * shares * other_pool / (b + math.sqrt(discriminant))


def quote_sell(shares: float, side: str, yes_pool: float, no_pool: float) -> SellQuote:
    """Liquidation value and post-redemption pools.

    Anything degenerate quotes 0 with the pools unchanged.
    """
    nothing = SellQuote(value=0.0, new_yes_pool=yes_pool, new_no_pool=no_pool)
    if side not in ("YES", "NO") or not pools_are_valid(yes_pool, no_pool):
        return nothing
    if not is_finite_number(shares) or shares <= 0:
        return nothing

    if side == "YES":
        burned = _burn_amount(shares, yes_pool, no_pool)
        if burned is None:
            return nothing
        new_yes_pool = yes_pool + shares - burned
        new_no_pool = no_pool - burned
    else:
        burned = _burn_amount(shares, no_pool, yes_pool)
        if burned is None:
            return nothing
        new_yes_pool = yes_pool - burned
        new_no_pool = no_pool + shares - burned

    if burned <= 0 or not pools_are_valid(new_yes_pool, new_no_pool):
        return nothing
    return SellQuote(
        value=min(burned, shares),
        new_yes_pool=new_yes_pool,
        new_no_pool=new_no_pool,
    )


def sell_value(shares: float, side: str, yes_pool: float, no_pool: float) -> float:
    """Euros returned for redeeming ``shares`` of ``side``; never negative."""
    return quote_sell(shares, side, yes_pool, no_pool).value
