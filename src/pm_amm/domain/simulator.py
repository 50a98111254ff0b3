"""Trade simulator — effect of a hypothetical buy against the pool.

Buying ``amount`` of one side is a complete-set trade: the stake mints
``amount`` YES+NO pairs, the unwanted half is deposited into the opposite
pool, and shares of the wanted side are withdrawn until ``k`` is restored:

    side=YES: new_no  = no  + amount; new_yes = k / new_no; from_pool = yes - new_yes
    side=NO:  new_yes = yes + amount; new_no  = k / new_yes; from_pool = no - new_no
    shares = amount + from_pool

Each share redeems for 1 euro if its side wins, so potential winnings equal
the share count.

The simulator is pure: it never touches storage and never raises, so the UI
may call it on every amount change.
"""

import math

from src.pm_amm.domain.constants import MAX_TRADE_AMOUNT
from src.pm_amm.domain.models import RejectionReason, TradeProjection, TradeRejection
from src.pm_amm.domain.pricing import pools_are_valid, price, side_price
from src.pm_common.enums import TradeSide
from src.pm_common.money import is_finite_number

VALID_SIDES = tuple(s.value for s in TradeSide)


def _reject(reason: RejectionReason, error: str) -> TradeRejection:
    return TradeRejection(reason=reason, error=error)


def validate_amount(
    amount: object, max_trade_amount: float = MAX_TRADE_AMOUNT
) -> TradeRejection | None:
    if not is_finite_number(amount):
        return _reject(RejectionReason.INVALID_AMOUNT, "Amount must be a finite number")
    if amount <= 0:  # type: ignore[operator]
        return _reject(RejectionReason.AMOUNT_TOO_SMALL, "Amount must be greater than €0")
    if amount > max_trade_amount:  # type: ignore[operator]
        return _reject(
            RejectionReason.AMOUNT_ABOVE_MAXIMUM,
            f"Maximum €{max_trade_amount:,.2f} per trade",
        )
    return None


def validate_side(side: object) -> TradeRejection | None:
    if not isinstance(side, str) or side not in VALID_SIDES:
        return _reject(RejectionReason.INVALID_SIDE, "Invalid side (must be YES or NO)")
    return None


def simulate(
    amount: float,
    side: str,
    yes_pool: float,
    no_pool: float,
    max_trade_amount: float = MAX_TRADE_AMOUNT,
) -> TradeProjection | TradeRejection:
    """Project a buy of ``amount`` euros of ``side`` at the given pool state."""
    rejection = validate_amount(amount, max_trade_amount) or validate_side(side)
    if rejection is not None:
        return rejection
    if not pools_are_valid(yes_pool, no_pool):
        return _reject(
            RejectionReason.INVALID_POOL_STATE, "Market liquidity pool is in an invalid state"
        )

    k = yes_pool * no_pool
    if side == "YES":
        new_no_pool = no_pool + amount
        new_yes_pool = k / new_no_pool
        from_pool = yes_pool - new_yes_pool
    else:
        new_yes_pool = yes_pool + amount
        new_no_pool = k / new_yes_pool
        from_pool = no_pool - new_no_pool

    shares = amount + from_pool
    if not (
        math.isfinite(shares)
        and shares > 0
        and pools_are_valid(new_yes_pool, new_no_pool)
    ):
        return _reject(RejectionReason.INVALID_TRADE_SIZE, "Invalid trade size")

    price_before = side_price(price(yes_pool, no_pool), side)
    price_after = side_price(price(new_yes_pool, new_no_pool), side)
    avg_price = amount / shares
    potential_profit = shares - amount

    return TradeProjection(
        shares=shares,
        avg_price=avg_price,
        new_yes_pool=new_yes_pool,
        new_no_pool=new_no_pool,
        price_before=price_before,
        price_after=price_after,
        price_impact=abs(price_after - price_before),
        slippage=avg_price - price_before / 100,
        potential_winnings=shares,
        potential_profit=potential_profit,
        roi=potential_profit / amount * 100,
    )
