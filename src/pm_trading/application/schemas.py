"""Pydantic schemas for pm_trading API."""

from typing import Any

from pydantic import BaseModel, EmailStr, Field

from src.pm_common.money import euros_to_display, round_money, round_percent
from src.pm_trading.domain.models import SellExecution, Trade, TradeExecution

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class ExecuteTradeRequest(BaseModel):
    email: EmailStr
    market_id: str = Field(..., min_length=1, max_length=64)
    # Left loosely typed: side and amount are validated by the simulator so
    # the caller gets its rejection reason rather than a schema error.
    side: str
    amount: Any = Field(..., description="Stake in euros")


class SellRequest(BaseModel):
    email: EmailStr


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ExecuteTradeResponse(BaseModel):
    success: bool = True
    trade_id: str
    market_id: str
    side: str
    amount: float
    shares: float
    avg_price: float
    new_balance: float
    new_balance_display: str
    yes_price: int
    no_price: int

    @classmethod
    def from_execution(cls, ex: TradeExecution) -> "ExecuteTradeResponse":
        return cls(
            trade_id=ex.trade.id,
            market_id=ex.trade.market_id,
            side=ex.trade.side,
            amount=round_money(ex.trade.amount),
            shares=round_money(ex.trade.shares),
            avg_price=round_money(ex.trade.avg_price),
            new_balance=round_money(ex.new_balance),
            new_balance_display=euros_to_display(ex.new_balance),
            yes_price=ex.yes_price,
            no_price=ex.no_price,
        )


class SellResponse(BaseModel):
    success: bool = True
    trade_id: str
    gross_value: float
    fee: float
    net_payout: float
    new_balance: float
    new_balance_display: str

    @classmethod
    def from_execution(cls, ex: SellExecution) -> "SellResponse":
        return cls(
            trade_id=ex.trade.id,
            gross_value=round_money(ex.gross_value),
            fee=round_money(ex.fee),
            net_payout=round_money(ex.net_payout),
            new_balance=round_money(ex.new_balance),
            new_balance_display=euros_to_display(ex.new_balance),
        )


class SellQuoteResponse(BaseModel):
    trade_id: str
    shares: float
    gross_value: float
    fee: float
    net_payout: float
    profit: float


class PositionItem(BaseModel):
    id: str
    market_id: str
    side: str
    shares: float
    amount: float
    avg_price: float
    status: str
    # OPEN positions: current liquidation value before fee.
    current_value: float | None = None
    # Closed positions: what the sale or resolution paid out.
    net_payout: float | None = None
    sell_fee: float | None = None
    pnl: float | None = None
    pnl_percent: int | None = None
    created_at: str | None = None
    closed_at: str | None = None

    @classmethod
    def from_domain(cls, t: Trade, current_value: float | None) -> "PositionItem":
        realised = current_value if t.is_open else t.net_payout
        pnl = realised - t.amount if realised is not None else None
        pnl_percent = None
        if pnl is not None and t.amount > 0:
            pnl_percent = round_percent(pnl / t.amount * 100)
        return cls(
            id=t.id,
            market_id=t.market_id,
            side=t.side,
            shares=round_money(t.shares),
            amount=round_money(t.amount),
            avg_price=round_money(t.avg_price),
            status=t.status,
            current_value=round_money(current_value) if current_value is not None else None,
            net_payout=round_money(t.net_payout) if t.net_payout is not None else None,
            sell_fee=round_money(t.sell_fee) if t.sell_fee is not None else None,
            pnl=round_money(pnl) if pnl is not None else None,
            pnl_percent=pnl_percent,
            created_at=t.created_at.isoformat() if t.created_at else None,
            closed_at=t.closed_at.isoformat() if t.closed_at else None,
        )


class PositionListResponse(BaseModel):
    email: str
    items: list[PositionItem]
