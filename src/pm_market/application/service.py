"""MarketApplicationService — thin composition layer.

All methods are read-only; no commit/rollback needed.
The caller (router) passes db session; service delegates to repository.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_amm.domain.simulator import simulate
from src.pm_common.datetime_utils import utc_now
from src.pm_common.errors import MarketNotFoundError
from src.pm_common.money import parse_amount
from src.pm_market.application.schemas import (
    MarketDetail,
    MarketListItem,
    MarketListResponse,
    PriceHistoryResponse,
    PricePoint,
    TradePreviewResponse,
    cursor_decode,
    cursor_encode,
)
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository


class MarketApplicationService:
    def __init__(self, repo: MarketRepositoryProtocol | None = None) -> None:
        self._repo: MarketRepositoryProtocol = repo or MarketRepository()

    async def _require_market(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._repo.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        cursor: str | None,
        limit: int,
    ) -> MarketListResponse:
        # status=None → default ACTIVE; status='ALL' → no filter
        sql_status = None if status == "ALL" else (status or "ACTIVE")
        cursor_ts, cursor_id = cursor_decode(cursor)

        # Fetch limit+1 to detect has_more without COUNT(*)
        markets = await self._repo.list_markets(
            db, sql_status, category, cursor_ts, cursor_id, limit + 1
        )
        has_more = len(markets) > limit
        page = markets[:limit]

        now = utc_now()
        items = [MarketListItem.from_domain(m, now) for m in page]
        next_cursor = cursor_encode(page[-1]) if has_more and page else None
        return MarketListResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def get_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        market = await self._require_market(db, market_id)
        return MarketDetail.from_domain(market, utc_now())

    async def get_price_history(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> PriceHistoryResponse:
        await self._require_market(db, market_id)
        snapshots = await self._repo.list_price_snapshots(db, market_id, limit)
        # Newest first from storage; charts want oldest first.
        items = [PricePoint.from_domain(s) for s in reversed(snapshots)]
        return PriceHistoryResponse(market_id=market_id, items=items)

    async def preview_trade(
        self, db: AsyncSession, market_id: str, amount: object, side: str
    ) -> TradePreviewResponse:
        """Projection of a buy at the market's current pool state. No side effects."""
        market = await self._require_market(db, market_id)
        if not market.is_trading_open(utc_now()):
            return TradePreviewResponse.closed(market_id)
        result = simulate(
            parse_amount(amount),
            side,
            market.yes_pool,
            market.no_pool,
            max_trade_amount=settings.MAX_TRADE_AMOUNT,
        )
        return TradePreviewResponse.from_result(result)
