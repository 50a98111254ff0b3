"""Pydantic schemas for pm_admin API."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.pm_common.enums import ResolutionKind


class CreateMarketRequest(BaseModel):
    title: str = Field(..., min_length=5, max_length=300)
    description: str | None = Field(None, max_length=2000)
    category: str | None = Field(None, max_length=50)
    # Either an explicit close date or a duration from now (weekly by default).
    close_date: datetime | None = None
    duration_hours: int = Field(168, ge=1, le=24 * 365)
    liquidity_k: float | None = Field(None, gt=0)
    # Inferred from the title when omitted.
    resolution_kind: ResolutionKind | None = None
    resolution_threshold: float | None = None
    resolution_entity: str | None = Field(None, max_length=200)


class ResolveRequest(BaseModel):
    outcome: bool
    source: str | None = Field(None, max_length=500)


class SettlementResult(BaseModel):
    market_id: str
    outcome: bool
    source: str
    winners: int
    losers: int
    total_payout: float


class ScanItem(BaseModel):
    market_id: str
    title: str
    status: str
    outcome: bool | None = None
    source: str | None = None
    error: str | None = None


class ResolutionScanResponse(BaseModel):
    total: int
    resolved: int
    pending: int
    details: list[ScanItem]


class InvariantReport(BaseModel):
    ok: bool
    checked_markets: int
    violations: list[str]


class MarketStats(BaseModel):
    market_id: str
    status: str
    total_trades: int
    open_positions: int
    unique_traders: int
    total_volume: float
    total_fees: float
    open_yes_shares: float
    open_no_shares: float
