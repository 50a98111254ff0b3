"""Value objects produced by the pure AMM functions."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class Prices:
    """Quoted probabilities in percent.

    yes/no are whole numbers for display and always sum to 100;
    yes_exact/no_exact keep full precision for trade math.
    """

    yes: int
    no: int
    yes_exact: float
    no_exact: float
    fallback: bool = False


class RejectionReason(str, Enum):
    INVALID_AMOUNT = "INVALID_AMOUNT"
    AMOUNT_TOO_SMALL = "AMOUNT_TOO_SMALL"
    AMOUNT_ABOVE_MAXIMUM = "AMOUNT_ABOVE_MAXIMUM"
    INVALID_SIDE = "INVALID_SIDE"
    INVALID_POOL_STATE = "INVALID_POOL_STATE"
    INVALID_TRADE_SIZE = "INVALID_TRADE_SIZE"


@dataclass(frozen=True)
class TradeRejection:
    reason: RejectionReason
    error: str
    valid: bool = False


@dataclass(frozen=True)
class TradeProjection:
    shares: float
    avg_price: float
    new_yes_pool: float
    new_no_pool: float
    price_before: float     # traded side, percent
    price_after: float      # traded side, percent
    price_impact: float     # percentage points
    slippage: float         # avg_price - price_before / 100
    potential_winnings: float
    potential_profit: float
    roi: float              # percent
    valid: bool = True


@dataclass(frozen=True)
class SellQuote:
    """Liquidation value plus the pool state after redeeming into it."""

    value: float
    new_yes_pool: float
    new_no_pool: float
