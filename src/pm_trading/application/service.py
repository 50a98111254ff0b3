"""TradingService — buys and sells against a market's pool.

Every mutation runs in one DB transaction on the caller's session:

    buy:  CAS pool commit -> debit balance -> insert OPEN position -> snapshot
    sell: CAS pool commit -> mark position SOLD -> credit net payout -> snapshot

The market row is always the first row written, then positions, then users;
settlement takes its locks in the same order.

The pool commit is compare-and-swap on ``markets.version``. When another
trade got there first the whole transaction is rolled back and replayed
against fresh state, up to ``TRADE_MAX_ATTEMPTS`` times.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.email import normalize_email
from src.pm_account.domain.repository import AccountRepositoryProtocol
from src.pm_account.infrastructure.persistence import AccountRepository
from src.pm_amm.domain.liquidation import quote_sell, sell_value
from src.pm_amm.domain.models import TradeRejection
from src.pm_amm.domain.pool import validate_pools
from src.pm_amm.domain.pricing import price
from src.pm_amm.domain.simulator import simulate
from src.pm_clearing.domain.fee import calc_sell_fee
from src.pm_common.datetime_utils import utc_now
from src.pm_common.errors import (
    InsufficientBalanceError,
    MarketNotActiveError,
    MarketNotFoundError,
    NoLiquidityError,
    PoolIntegrityError,
    PositionClosedError,
    StalePoolError,
    StorageConflictError,
    TradeNotFoundError,
    TradeRejectedError,
)
from src.pm_common.money import parse_amount, round_money
from src.pm_market.domain.models import Market, PriceSnapshot
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_trading.application.schemas import (
    ExecuteTradeResponse,
    PositionItem,
    PositionListResponse,
    SellQuoteResponse,
    SellResponse,
)
from src.pm_trading.domain.models import SellExecution, Trade, TradeExecution
from src.pm_trading.domain.repository import TradeRepositoryProtocol
from src.pm_trading.infrastructure.persistence import TradeRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TradingService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        account_repo: AccountRepositoryProtocol | None = None,
        trade_repo: TradeRepositoryProtocol | None = None,
    ) -> None:
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._accounts: AccountRepositoryProtocol = account_repo or AccountRepository()
        self._trades: TradeRepositoryProtocol = trade_repo or TradeRepository()

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    async def _run_with_retry(
        self,
        db: AsyncSession,
        key: str,
        attempt_fn: Callable[[], Awaitable[T]],
    ) -> T:
        """Run one attempt per transaction; ``key`` names the operation in errors."""
        max_attempts = max(1, settings.TRADE_MAX_ATTEMPTS)
        attempt = 1
        while True:
            try:
                result = await attempt_fn()
                await db.commit()
                return result
            except StalePoolError as exc:
                await db.rollback()
                if attempt >= max_attempts:
                    raise
                logger.info(
                    "Stale pool on market %s, retrying (attempt %d/%d)",
                    exc.market_id,
                    attempt,
                    max_attempts,
                )
                attempt += 1
            except SQLAlchemyError as exc:
                await db.rollback()
                logger.error("Storage failure on %s: %s", key, exc)
                raise StorageConflictError(key) from exc
            except Exception:
                await db.rollback()
                raise

    async def _load_tradable_market(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._markets.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        if not market.is_trading_open(utc_now()):
            raise MarketNotActiveError(market_id)
        errors = validate_pools(market.yes_pool, market.no_pool, market.liquidity_k)
        if errors:
            logger.error(
                "Pool integrity violation on market %s: %s", market.id, "; ".join(errors)
            )
            raise PoolIntegrityError(market.id, "; ".join(errors))
        return market

    async def _record_snapshot(self, db: AsyncSession, market: Market) -> tuple[int, int]:
        prices = price(market.yes_pool, market.no_pool)
        await self._markets.insert_price_snapshot(
            db,
            PriceSnapshot(
                market_id=market.id,
                yes_price=prices.yes_exact,
                no_price=prices.no_exact,
                yes_pool=market.yes_pool,
                no_pool=market.no_pool,
            ),
        )
        return prices.yes, prices.no

    async def _load_owned_trade(
        self, db: AsyncSession, trade_id: str, email: str
    ) -> Trade:
        trade = await self._trades.get_trade(db, trade_id)
        # Someone else's position is indistinguishable from a missing one.
        if trade is None or trade.user_email != email:
            raise TradeNotFoundError(trade_id)
        return trade

    # ------------------------------------------------------------------
    # Buy
    # ------------------------------------------------------------------

    async def _execute_once(
        self, db: AsyncSession, email: str, market_id: str, side: str, amount: float
    ) -> TradeExecution:
        market = await self._load_tradable_market(db, market_id)

        result = simulate(
            amount,
            side,
            market.yes_pool,
            market.no_pool,
            max_trade_amount=settings.MAX_TRADE_AMOUNT,
        )
        if isinstance(result, TradeRejection):
            raise TradeRejectedError(result.error)

        updated = await self._markets.commit_pool(
            db,
            market.id,
            market.version,
            result.new_yes_pool,
            result.new_no_pool,
            amount,
        )
        if updated is None:
            raise StalePoolError(market.id)

        user = await self._accounts.get_or_create_user(db, email, settings.STARTING_BALANCE)
        debited = await self._accounts.debit(db, email, amount)
        if debited is None:
            raise InsufficientBalanceError(amount, user.balance)

        trade = await self._trades.insert_trade(
            db,
            Trade(
                id=str(uuid.uuid4()),
                user_email=email,
                market_id=market.id,
                side=side,
                shares=result.shares,
                amount=amount,
                avg_price=result.avg_price,
            ),
        )
        yes_price, no_price = await self._record_snapshot(db, updated)
        return TradeExecution(
            trade=trade,
            new_balance=debited.balance,
            yes_price=yes_price,
            no_price=no_price,
        )

    async def execute_trade(
        self, db: AsyncSession, email: str, market_id: str, side: str, amount: object
    ) -> ExecuteTradeResponse:
        normalized = normalize_email(email)
        amount = parse_amount(amount)
        execution = await self._run_with_retry(
            db,
            market_id,
            lambda: self._execute_once(db, normalized, market_id, side, amount),
        )
        logger.info(
            "Trade %s: %s bought %s for %.2f on market %s",
            execution.trade.id,
            normalized,
            side,
            amount,
            market_id,
        )
        return ExecuteTradeResponse.from_execution(execution)

    # ------------------------------------------------------------------
    # Sell
    # ------------------------------------------------------------------

    async def _sell_once(self, db: AsyncSession, trade_id: str, email: str) -> SellExecution:
        trade = await self._load_owned_trade(db, trade_id, email)
        if not trade.is_open:
            raise PositionClosedError(trade.id, trade.status)

        market = await self._load_tradable_market(db, trade.market_id)
        quote = quote_sell(trade.shares, trade.side, market.yes_pool, market.no_pool)
        if quote.value <= 0:
            raise NoLiquidityError(trade.id)

        gross = quote.value
        fee = calc_sell_fee(gross, settings.SELL_FEE_RATE)
        net = gross - fee

        updated = await self._markets.commit_pool(
            db,
            market.id,
            market.version,
            quote.new_yes_pool,
            quote.new_no_pool,
            gross,
        )
        if updated is None:
            raise StalePoolError(market.id)

        sold = await self._trades.mark_sold(db, trade.id, email, net, fee, utc_now())
        if sold is None:
            # Lost the race to a concurrent sell.
            raise PositionClosedError(trade.id, "no longer OPEN")

        user = await self._accounts.credit(db, email, net)
        await self._record_snapshot(db, updated)
        return SellExecution(
            trade=sold,
            gross_value=gross,
            fee=fee,
            net_payout=net,
            new_balance=user.balance,
        )

    async def sell_trade(self, db: AsyncSession, trade_id: str, email: str) -> SellResponse:
        normalized = normalize_email(email)
        execution = await self._run_with_retry(
            db,
            trade_id,
            lambda: self._sell_once(db, trade_id, normalized),
        )
        logger.info(
            "Trade %s sold by %s: gross=%.2f fee=%.2f net=%.2f",
            trade_id,
            normalized,
            execution.gross_value,
            execution.fee,
            execution.net_payout,
        )
        return SellResponse.from_execution(execution)

    async def quote_sell_trade(
        self, db: AsyncSession, trade_id: str, email: str
    ) -> SellQuoteResponse:
        """What selling the position right now would pay. No side effects."""
        normalized = normalize_email(email)
        trade = await self._load_owned_trade(db, trade_id, normalized)
        if not trade.is_open:
            raise PositionClosedError(trade.id, trade.status)
        market = await self._load_tradable_market(db, trade.market_id)

        gross = sell_value(trade.shares, trade.side, market.yes_pool, market.no_pool)
        fee = calc_sell_fee(gross, settings.SELL_FEE_RATE)
        net = gross - fee
        return SellQuoteResponse(
            trade_id=trade.id,
            shares=round_money(trade.shares),
            gross_value=round_money(gross),
            fee=round_money(fee),
            net_payout=round_money(net),
            profit=round_money(net - trade.amount),
        )

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_user_trades(
        self, db: AsyncSession, email: str, status: str | None, limit: int
    ) -> PositionListResponse:
        normalized = normalize_email(email)
        trades = await self._trades.list_user_trades(db, normalized, status, limit)

        now = utc_now()
        markets: dict[str, Market | None] = {}
        items: list[PositionItem] = []
        for t in trades:
            current_value = None
            if t.is_open:
                if t.market_id not in markets:
                    markets[t.market_id] = await self._markets.get_market_by_id(
                        db, t.market_id
                    )
                market = markets[t.market_id]
                # Expired or closed markets pay out only through resolution.
                if market is not None and market.is_trading_open(now):
                    current_value = sell_value(
                        t.shares, t.side, market.yes_pool, market.no_pool
                    )
            items.append(PositionItem.from_domain(t, current_value))
        return PositionListResponse(email=normalized, items=items)
