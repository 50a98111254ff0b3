"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_trading.domain.models import Trade


class TradeRepositoryProtocol(Protocol):
    async def insert_trade(self, db: AsyncSession, trade: Trade) -> Trade: ...

    async def get_trade(self, db: AsyncSession, trade_id: str) -> Trade | None: ...

    async def mark_sold(
        self,
        db: AsyncSession,
        trade_id: str,
        user_email: str,
        net_payout: float,
        fee: float,
        closed_at: datetime,
    ) -> Trade | None: ...

    async def list_user_trades(
        self,
        db: AsyncSession,
        user_email: str,
        status: str | None,
        limit: int,
    ) -> list[Trade]: ...
