"""Trade (position) domain model — pure dataclass, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import TradeStatus


@dataclass
class Trade:
    id: str
    user_email: str
    market_id: str
    side: str  # YES / NO
    shares: float  # contracts held, each redeems for 1 euro if correct
    amount: float  # euros originally paid
    avg_price: float
    status: str = TradeStatus.OPEN.value  # OPEN / SOLD / WON / LOST
    sell_fee: float | None = None
    net_payout: float | None = None  # sell proceeds after fee, or resolution payout
    closed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN


@dataclass
class TradeExecution:
    """Outcome of an executed buy."""

    trade: Trade
    new_balance: float
    yes_price: int
    no_price: int


@dataclass
class SellExecution:
    """Outcome of a position sold back to the pool."""

    trade: Trade
    gross_value: float
    fee: float
    net_payout: float
    new_balance: float
