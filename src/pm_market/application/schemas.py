"""Pydantic schemas for pm_market API responses.

Cursor format for markets (VARCHAR PK, not sequential):
  {"ts": "<created_at ISO>", "id": "<market_id>"}
  Encoded as Base64 JSON string.

Money is rounded to cents and percentages to whole numbers here, at the
boundary; the domain keeps full precision.
"""

import base64
import binascii
import json
from datetime import datetime

from pydantic import BaseModel

from src.pm_amm.domain.models import Prices, TradeProjection, TradeRejection
from src.pm_amm.domain.pricing import price
from src.pm_common.money import euros_to_display, round_money, round_percent
from src.pm_market.domain.models import Market, PriceSnapshot

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market) -> str:
    """Encode composite cursor from last market in page."""
    payload = {
        "ts": last_market.created_at.isoformat(),
        "id": last_market.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[str | None, str | None]:
    """Decode composite cursor -> (ts_iso, market_id), or (None, None) on error."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        return data["ts"], data["id"]
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError):
        return None, None


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


class PricesOut(BaseModel):
    yes: int
    no: int
    fallback: bool

    @classmethod
    def from_prices(cls, p: Prices) -> "PricesOut":
        return cls(yes=p.yes, no=p.no, fallback=p.fallback)


# ---------------------------------------------------------------------------
# Market list item (lightweight, no pool internals)
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: str
    title: str
    description: str | None
    category: str | None
    status: str
    prices: PricesOut
    total_volume: float
    total_volume_display: str
    close_date: str
    resolution_kind: str | None

    @classmethod
    def from_domain(cls, m: Market, now: datetime) -> "MarketListItem":
        return cls(
            id=m.id,
            title=m.title,
            description=m.description,
            category=m.category,
            status=m.effective_status(now),
            prices=PricesOut.from_prices(price(m.yes_pool, m.no_pool)),
            total_volume=round_money(m.total_volume),
            total_volume_display=euros_to_display(m.total_volume),
            close_date=m.close_date.isoformat(),
            resolution_kind=m.resolution_kind,
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool


# ---------------------------------------------------------------------------
# Market detail (pool state and resolution included)
# ---------------------------------------------------------------------------


class MarketDetail(BaseModel):
    id: str
    title: str
    description: str | None
    category: str | None
    status: str
    stored_status: str
    prices: PricesOut
    yes_pool: float
    no_pool: float
    liquidity_k: float
    total_volume: float
    total_volume_display: str
    close_date: str
    resolution_kind: str | None
    resolution_threshold: float | None
    resolution_entity: str | None
    resolved_outcome: bool | None
    resolution_source: str | None
    resolved_at: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, m: Market, now: datetime) -> "MarketDetail":
        return cls(
            id=m.id,
            title=m.title,
            description=m.description,
            category=m.category,
            status=m.effective_status(now),
            stored_status=m.status,
            prices=PricesOut.from_prices(price(m.yes_pool, m.no_pool)),
            yes_pool=m.yes_pool,
            no_pool=m.no_pool,
            liquidity_k=m.liquidity_k,
            total_volume=round_money(m.total_volume),
            total_volume_display=euros_to_display(m.total_volume),
            close_date=m.close_date.isoformat(),
            resolution_kind=m.resolution_kind,
            resolution_threshold=m.resolution_threshold,
            resolution_entity=m.resolution_entity,
            resolved_outcome=m.resolved_outcome,
            resolution_source=m.resolution_source,
            resolved_at=_iso(m.resolved_at),
            created_at=_iso(m.created_at),
        )


# ---------------------------------------------------------------------------
# Price history
# ---------------------------------------------------------------------------


class PricePoint(BaseModel):
    yes_price: float
    no_price: float
    yes_pool: float
    no_pool: float
    created_at: str | None

    @classmethod
    def from_domain(cls, s: PriceSnapshot) -> "PricePoint":
        return cls(
            yes_price=s.yes_price,
            no_price=s.no_price,
            yes_pool=s.yes_pool,
            no_pool=s.no_pool,
            created_at=_iso(s.created_at),
        )


class PriceHistoryResponse(BaseModel):
    market_id: str
    items: list[PricePoint]


# ---------------------------------------------------------------------------
# Trade preview
# ---------------------------------------------------------------------------


class TradePreviewResponse(BaseModel):
    valid: bool
    error: str | None = None
    reason: str | None = None
    shares: float | None = None
    avg_price: float | None = None
    new_yes_pool: float | None = None
    new_no_pool: float | None = None
    price_before: int | None = None
    price_after: int | None = None
    price_impact: int | None = None
    slippage: float | None = None
    potential_winnings: float | None = None
    potential_profit: float | None = None
    roi: int | None = None

    @classmethod
    def from_result(
        cls, result: TradeProjection | TradeRejection
    ) -> "TradePreviewResponse":
        if isinstance(result, TradeRejection):
            return cls(valid=False, error=result.error, reason=result.reason.value)
        return cls(
            valid=True,
            shares=round_money(result.shares),
            avg_price=round_money(result.avg_price),
            new_yes_pool=result.new_yes_pool,
            new_no_pool=result.new_no_pool,
            price_before=round_percent(result.price_before),
            price_after=round_percent(result.price_after),
            price_impact=round_percent(result.price_impact),
            slippage=round_money(result.slippage),
            potential_winnings=round_money(result.potential_winnings),
            potential_profit=round_money(result.potential_profit),
            roi=round_percent(result.roi),
        )

    @classmethod
    def closed(cls, market_id: str) -> "TradePreviewResponse":
        return cls(valid=False, error=f"Market is closed for trading: {market_id}")
