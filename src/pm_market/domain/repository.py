# src/pm_market/domain/repository.py
"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market, PriceSnapshot


class MarketRepositoryProtocol(Protocol):
    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]: ...

    async def get_market_by_id(
        self,
        db: AsyncSession,
        market_id: str,
    ) -> Market | None: ...

    async def insert_market(self, db: AsyncSession, market: Market) -> Market: ...

    async def commit_pool(
        self,
        db: AsyncSession,
        market_id: str,
        expected_version: int,
        new_yes_pool: float,
        new_no_pool: float,
        volume_delta: float,
    ) -> Market | None: ...

    async def mark_closed(self, db: AsyncSession, market_id: str) -> Market | None: ...

    async def list_expired_markets(
        self, db: AsyncSession, now: datetime
    ) -> list[Market]: ...

    async def list_unresolved_markets(self, db: AsyncSession) -> list[Market]: ...

    async def insert_price_snapshot(
        self, db: AsyncSession, snapshot: PriceSnapshot
    ) -> None: ...

    async def list_price_snapshots(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[PriceSnapshot]: ...
