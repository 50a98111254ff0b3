"""Domain models for pm_market — pure dataclasses plus lifecycle predicates."""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.enums import MarketStatus


@dataclass
class Market:
    id: str
    title: str
    description: str | None
    category: str | None
    status: str
    yes_pool: float
    no_pool: float
    liquidity_k: float          # yes_pool * no_pool at seeding
    total_volume: float         # euros, never decreases
    close_date: datetime
    resolution_kind: str | None
    resolution_threshold: float | None
    resolution_entity: str | None
    resolved_outcome: bool | None
    resolution_source: str | None
    resolved_at: datetime | None
    version: int                # bumped on every pool mutation (CAS token)
    created_at: datetime
    updated_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.close_date < now

    def is_trading_open(self, now: datetime) -> bool:
        return self.status == MarketStatus.ACTIVE and not self.is_expired(now)

    def effective_status(self, now: datetime) -> str:
        """CLOSED is derived from close_date; it need not be stored."""
        if self.status == MarketStatus.RESOLVED:
            return MarketStatus.RESOLVED.value
        if self.status == MarketStatus.CLOSED or self.is_expired(now):
            return MarketStatus.CLOSED.value
        return MarketStatus.ACTIVE.value


@dataclass
class PriceSnapshot:
    """Append-only price history point, one per executed trade or sell."""

    market_id: str
    yes_price: float
    no_price: float
    yes_pool: float
    no_pool: float
    created_at: datetime | None = None
    id: int | None = None
