"""Unit tests for TradingService — buys, sells and CAS retries with mock repos."""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from unittest.mock import ANY, AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.pm_account.domain.models import User
from src.pm_common.errors import (
    InsufficientBalanceError,
    MarketNotActiveError,
    MarketNotFoundError,
    PoolIntegrityError,
    PositionClosedError,
    StalePoolError,
    StorageConflictError,
    TradeNotFoundError,
    TradeRejectedError,
)
from src.pm_market.domain.models import Market
from src.pm_trading.application.service import TradingService
from src.pm_trading.domain.models import Trade

EMAIL = "ana@example.com"


def _make_market(**kwargs) -> Market:
    now = datetime.now(UTC)
    defaults = dict(
        id="mkt-1", title="¿El IBEX 35 cierra en verde?", description=None,
        category="ECONOMIA", status="ACTIVE", yes_pool=100.0, no_pool=100.0,
        liquidity_k=10000.0, total_volume=0.0, close_date=now + timedelta(days=7),
        resolution_kind="STOCK_INDEX", resolution_threshold=None,
        resolution_entity="^IBEX", resolved_outcome=None, resolution_source=None,
        resolved_at=None, version=3, created_at=now, updated_at=now,
    )
    defaults.update(kwargs)
    return Market(**defaults)


def _make_trade(**kwargs) -> Trade:
    defaults = dict(
        id="trd-1", user_email=EMAIL, market_id="mkt-1", side="YES",
        shares=150.0, amount=100.0, avg_price=100 / 150, status="OPEN",
    )
    defaults.update(kwargs)
    return Trade(**defaults)


@pytest.fixture
def db():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def markets():
    repo = MagicMock()
    repo.get_market_by_id = AsyncMock(return_value=_make_market())
    repo.commit_pool = AsyncMock(
        return_value=_make_market(yes_pool=50.0, no_pool=200.0, version=4, total_volume=100.0)
    )
    repo.insert_price_snapshot = AsyncMock()
    return repo


@pytest.fixture
def accounts():
    repo = MagicMock()
    repo.get_or_create_user = AsyncMock(return_value=User(EMAIL, 1000.0))
    repo.debit = AsyncMock(return_value=User(EMAIL, 900.0))
    repo.credit = AsyncMock(return_value=User(EMAIL, 998.0))
    return repo


@pytest.fixture
def trades():
    repo = MagicMock()
    repo.insert_trade = AsyncMock(side_effect=lambda db, trade: trade)
    repo.get_trade = AsyncMock(return_value=_make_trade())
    repo.mark_sold = AsyncMock(
        return_value=_make_trade(status="SOLD", net_payout=98.0, sell_fee=2.0)
    )
    repo.list_user_trades = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def svc(markets, accounts, trades):
    return TradingService(market_repo=markets, account_repo=accounts, trade_repo=trades)


class TestExecuteTrade:
    async def test_happy_path(self, svc, db, markets, accounts, trades):
        resp = await svc.execute_trade(db, " Ana@Example.com ", "mkt-1", "YES", 100)

        accounts.debit.assert_awaited_once_with(db, EMAIL, 100)
        markets.commit_pool.assert_awaited_once_with(db, "mkt-1", 3, 50.0, 200.0, 100)
        inserted = trades.insert_trade.call_args.args[1]
        assert inserted.user_email == EMAIL
        assert inserted.shares == pytest.approx(150)
        assert inserted.status == "OPEN"
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

        assert resp.success is True
        assert resp.shares == 150.0
        assert resp.avg_price == 0.67
        assert resp.new_balance == 900.0
        assert (resp.yes_price, resp.no_price) == (80, 20)

    async def test_snapshot_uses_post_trade_pool(self, svc, db, markets):
        await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 100)

        snapshot = markets.insert_price_snapshot.call_args.args[1]
        assert snapshot.yes_price == pytest.approx(80.0)
        assert (snapshot.yes_pool, snapshot.no_pool) == (50.0, 200.0)

    async def test_stale_pool_is_retried_against_fresh_state(self, svc, db, markets):
        updated = markets.commit_pool.return_value
        markets.commit_pool = AsyncMock(side_effect=[None, updated])

        resp = await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 100)

        assert resp.success is True
        assert markets.get_market_by_id.await_count == 2
        assert markets.commit_pool.await_count == 2
        db.rollback.assert_awaited_once()
        db.commit.assert_awaited_once()

    async def test_stale_pool_gives_up_after_max_attempts(self, svc, db, markets):
        markets.commit_pool = AsyncMock(return_value=None)

        with pytest.raises(StalePoolError):
            await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 100)

        assert markets.commit_pool.await_count == 3
        assert db.rollback.await_count == 3
        db.commit.assert_not_awaited()

    async def test_insufficient_balance(self, svc, db, markets, accounts, trades):
        accounts.get_or_create_user = AsyncMock(return_value=User(EMAIL, 40.0))
        accounts.debit = AsyncMock(return_value=None)

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 100)

        assert "€40.00" in exc_info.value.message
        # The pool write came first and is undone by the rollback.
        markets.commit_pool.assert_awaited_once()
        db.commit.assert_not_awaited()
        trades.insert_trade.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_simulator_rejection_surfaces_reason(self, svc, db, accounts):
        with pytest.raises(TradeRejectedError) as exc_info:
            await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 501)

        assert exc_info.value.message == "Maximum €500.00 per trade"
        accounts.debit.assert_not_awaited()

    async def test_invalid_side(self, svc, db):
        with pytest.raises(TradeRejectedError, match="Invalid side"):
            await svc.execute_trade(db, EMAIL, "mkt-1", "BOTH", 50)

    async def test_market_not_found(self, svc, db, markets):
        markets.get_market_by_id = AsyncMock(return_value=None)

        with pytest.raises(MarketNotFoundError):
            await svc.execute_trade(db, EMAIL, "nope", "YES", 10)

    async def test_expired_market_rejects_trades(self, svc, db, markets, accounts):
        markets.get_market_by_id = AsyncMock(
            return_value=_make_market(close_date=datetime.now(UTC) - timedelta(seconds=1))
        )

        with pytest.raises(MarketNotActiveError):
            await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 10)

        accounts.debit.assert_not_awaited()

    async def test_resolved_market_rejects_trades(self, svc, db, markets):
        markets.get_market_by_id = AsyncMock(return_value=_make_market(status="RESOLVED"))

        with pytest.raises(MarketNotActiveError):
            await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 10)

    async def test_corrupted_pool_fails_integrity_check(self, svc, db, markets, accounts):
        markets.get_market_by_id = AsyncMock(return_value=_make_market(yes_pool=60.0, no_pool=200.0))

        with pytest.raises(PoolIntegrityError):
            await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 10)

        accounts.debit.assert_not_awaited()

    async def test_market_row_is_written_first(self, svc, db, markets, accounts, trades):
        order = []
        updated = markets.commit_pool.return_value
        markets.commit_pool = AsyncMock(side_effect=lambda *a: order.append("market") or updated)
        accounts.debit = AsyncMock(
            side_effect=lambda *a: order.append("user") or User(EMAIL, 900.0)
        )
        trades.insert_trade = AsyncMock(side_effect=lambda db, t: order.append("trade") or t)

        await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 100)

        assert order == ["market", "user", "trade"]

    async def test_storage_failure_maps_to_app_error(self, svc, db, accounts):
        accounts.debit = AsyncMock(
            side_effect=OperationalError("UPDATE users", {}, Exception("deadlock detected"))
        )

        with pytest.raises(StorageConflictError) as exc_info:
            await svc.execute_trade(db, EMAIL, "mkt-1", "YES", 100)

        assert exc_info.value.code == 9004
        assert exc_info.value.http_status == 503
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_numeric_string_amount_is_accepted(self, svc, db, accounts):
        resp = await svc.execute_trade(db, EMAIL, "mkt-1", "YES", " 100 ")

        accounts.debit.assert_awaited_once_with(db, EMAIL, 100.0)
        assert resp.shares == 150.0

    @pytest.mark.parametrize("raw", ["abc", "", None, True])
    async def test_non_numeric_amount_is_rejected_with_reason(self, svc, db, markets, accounts, raw):
        with pytest.raises(TradeRejectedError) as exc_info:
            await svc.execute_trade(db, EMAIL, "mkt-1", "YES", raw)

        assert exc_info.value.message == "Amount must be a finite number"
        markets.commit_pool.assert_not_awaited()


        accounts.debit.assert_not_awaited()


class TestSellTrade:
    @pytest.fixture(autouse=True)
    def _post_buy_pool(self, markets):
        markets.get_market_by_id = AsyncMock(
            return_value=_make_market(yes_pool=50.0, no_pool=200.0, version=4)
        )
        markets.commit_pool = AsyncMock(return_value=_make_market(version=5))

    async def test_happy_path(self, svc, db, markets, accounts, trades):
        resp = await svc.sell_trade(db, "trd-1", EMAIL)

        trades.mark_sold.assert_awaited_once_with(db, "trd-1", EMAIL, 98.0, 2.0, ANY)
        markets.commit_pool.assert_awaited_once_with(db, "mkt-1", 4, 100.0, 100.0, 100.0)
        accounts.credit.assert_awaited_once_with(db, EMAIL, 98.0)
        db.commit.assert_awaited_once()

        assert resp.gross_value == 100.0
        assert resp.fee == 2.0
        assert resp.net_payout == 98.0
        assert resp.new_balance == 998.0

    async def test_round_trip_loses_the_fee(self, svc, db):
        resp = await svc.sell_trade(db, "trd-1", EMAIL)
        assert resp.net_payout < 100.0

    async def test_other_users_position_is_not_found(self, svc, db, trades):
        with pytest.raises(TradeNotFoundError):
            await svc.sell_trade(db, "trd-1", "bob@example.com")

        trades.mark_sold.assert_not_awaited()

    async def test_missing_position(self, svc, db, trades):
        trades.get_trade = AsyncMock(return_value=None)

        with pytest.raises(TradeNotFoundError):
            await svc.sell_trade(db, "trd-x", EMAIL)

    @pytest.mark.parametrize("status", ["SOLD", "WON", "LOST"])
    async def test_closed_position_cannot_be_sold(self, svc, db, trades, accounts, status):
        trades.get_trade = AsyncMock(return_value=_make_trade(status=status))

        with pytest.raises(PositionClosedError):
            await svc.sell_trade(db, "trd-1", EMAIL)

        accounts.credit.assert_not_awaited()

    async def test_lost_race_to_concurrent_close(self, svc, db, trades, markets, accounts):
        trades.mark_sold = AsyncMock(return_value=None)

        with pytest.raises(PositionClosedError):
            await svc.sell_trade(db, "trd-1", EMAIL)

        markets.commit_pool.assert_awaited_once()
        accounts.credit.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_expired_market_settles_only_by_resolution(self, svc, db, markets):
        markets.get_market_by_id = AsyncMock(
            return_value=_make_market(
                yes_pool=50.0, no_pool=200.0,
                close_date=datetime.now(UTC) - timedelta(hours=1),
            )
        )

        with pytest.raises(MarketNotActiveError):
            await svc.sell_trade(db, "trd-1", EMAIL)

    async def test_stale_pool_retry_replays_whole_sale(self, svc, db, markets, trades):
        updated = markets.commit_pool.return_value
        markets.commit_pool = AsyncMock(side_effect=[None, updated])

        resp = await svc.sell_trade(db, "trd-1", EMAIL)

        assert resp.success is True
        assert markets.commit_pool.await_count == 2
        trades.mark_sold.assert_awaited_once()
        db.rollback.assert_awaited_once()

    async def test_market_row_is_written_first(self, svc, db, markets, accounts, trades):
        order = []
        updated = markets.commit_pool.return_value
        sold = trades.mark_sold.return_value
        markets.commit_pool = AsyncMock(side_effect=lambda *a: order.append("market") or updated)
        trades.mark_sold = AsyncMock(side_effect=lambda *a: order.append("trade") or sold)
        accounts.credit = AsyncMock(
            side_effect=lambda *a: order.append("user") or User(EMAIL, 998.0)
        )

        await svc.sell_trade(db, "trd-1", EMAIL)

        assert order == ["market", "trade", "user"]

    async def test_exhausted_retries_name_the_market(self, svc, db, markets):
        markets.commit_pool = AsyncMock(return_value=None)

        with pytest.raises(StalePoolError) as exc_info:
            await svc.sell_trade(db, "trd-1", EMAIL)

        assert exc_info.value.market_id == "mkt-1"
        assert "mkt-1" in exc_info.value.message
        assert "trd-1" not in exc_info.value.message


class TestQuoteAndList:
    async def test_quote_sell(self, svc, db, markets, trades):
        markets.get_market_by_id = AsyncMock(
            return_value=_make_market(yes_pool=50.0, no_pool=200.0)
        )

        quote = await svc.quote_sell_trade(db, "trd-1", EMAIL)

        assert quote.gross_value == 100.0
        assert quote.fee == 2.0
        assert quote.net_payout == 98.0
        assert quote.profit == -2.0
        trades.mark_sold.assert_not_awaited()
        db.commit.assert_not_awaited()

    async def test_list_values_open_positions(self, svc, db, markets, trades):
        markets.get_market_by_id = AsyncMock(
            return_value=_make_market(yes_pool=50.0, no_pool=200.0)
        )
        sold = _make_trade(id="trd-2", status="SOLD", net_payout=49.0, sell_fee=1.0, amount=60.0)
        trades.list_user_trades = AsyncMock(return_value=[_make_trade(), sold])

        resp = await svc.list_user_trades(db, "ANA@example.com", None, 50)

        trades.list_user_trades.assert_awaited_once_with(db, EMAIL, None, 50)
        open_item, sold_item = resp.items
        assert open_item.current_value == 100.0
        assert open_item.pnl == 0.0
        assert sold_item.current_value is None
        assert sold_item.pnl == -11.0
        assert markets.get_market_by_id.await_count == 1

    async def test_list_caches_market_lookups(self, svc, db, markets, trades):
        trades.list_user_trades = AsyncMock(
            return_value=[_make_trade(id=f"t{i}") for i in range(3)]
        )

        await svc.list_user_trades(db, EMAIL, "OPEN", 50)

        assert markets.get_market_by_id.await_count == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"close_date": datetime.now(UTC) - timedelta(minutes=5)},
            {"status": "CLOSED"},
        ],
    )
    async def test_no_sale_value_once_trading_stopped(self, svc, db, markets, trades, overrides):
        markets.get_market_by_id = AsyncMock(
            return_value=_make_market(yes_pool=50.0, no_pool=200.0, **overrides)
        )
        trades.list_user_trades = AsyncMock(return_value=[_make_trade()])

        resp = await svc.list_user_trades(db, EMAIL, None, 50)

        assert resp.items[0].current_value is None
        assert resp.items[0].pnl is None


def test_trade_is_open_property() -> None:
    t = _make_trade()
    assert t.is_open
    assert not replace(t, status="WON").is_open
