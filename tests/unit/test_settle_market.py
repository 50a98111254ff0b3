"""Unit tests for pm_clearing settle_market (resolution payout)."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_clearing.domain.settlement import settle_market
from src.pm_common.errors import MarketAlreadyResolvedError, MarketNotFoundError


def _result(row=None, rows=None) -> MagicMock:
    r = MagicMock()
    r.fetchone.return_value = row
    r.fetchall.return_value = rows or []
    return r


class TestSettleMarketYesOutcome:
    async def test_yes_winner_credited_one_euro_per_share(self) -> None:
        db = AsyncMock()
        # RESOLVE market, GET open trades, SETTLE t1, CREDIT ana, SETTLE t2
        db.execute.side_effect = [
            _result(row=("mkt-1",)),
            _result(rows=[
                ("t1", "ana@example.com", "YES", 150.0),
                ("t2", "bob@example.com", "NO", 80.0),
            ]),
            _result(row=("t1",)),
            _result(),
            _result(row=("t2",)),
        ]

        summary = await settle_market("mkt-1", True, "Yahoo Finance ^IBEX", db)

        calls = db.execute.call_args_list
        assert len(calls) == 5

        resolve_params = calls[0].args[1]
        assert resolve_params["outcome"] is True
        assert resolve_params["source"] == "Yahoo Finance ^IBEX"

        assert calls[2].args[1]["status"] == "WON"
        assert calls[2].args[1]["payout"] == 150.0

        credit_params = calls[3].args[1]
        assert credit_params == {"email": "ana@example.com", "amount": 150.0}

        assert calls[4].args[1]["status"] == "LOST"
        assert calls[4].args[1]["payout"] == 0.0

        assert summary.winners == 1
        assert summary.losers == 1
        assert summary.total_payout == 150.0


class TestSettleMarketNoOutcome:
    async def test_no_holders_win(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(row=("mkt-1",)),
            _result(rows=[("t1", "ana@example.com", "YES", 150.0), ("t2", "bob@example.com", "NO", 80.0)]),
            _result(row=("t1",)),
            _result(row=("t2",)),
            _result(),
        ]

        summary = await settle_market("mkt-1", False, "operator", db)

        credit_params = db.execute.call_args_list[4].args[1]
        assert credit_params == {"email": "bob@example.com", "amount": 80.0}
        assert summary.winners == 1
        assert summary.total_payout == 80.0


class TestSettleMarketIdempotency:
    async def test_second_resolution_is_rejected_and_pays_nothing(self) -> None:
        db = AsyncMock()
        # RESOLVE matches nothing, existence check finds the market
        db.execute.side_effect = [_result(row=None), _result(row=("RESOLVED",))]

        with pytest.raises(MarketAlreadyResolvedError):
            await settle_market("mkt-1", True, "again", db)

        assert db.execute.await_count == 2

    async def test_unknown_market(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(row=None), _result(row=None)]

        with pytest.raises(MarketNotFoundError):
            await settle_market("nope", True, "x", db)

    async def test_position_closed_concurrently_is_skipped(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            _result(row=("mkt-1",)),
            _result(rows=[("t1", "ana@example.com", "YES", 150.0)]),
            _result(row=None),  # sold between the read and the update
        ]

        summary = await settle_market("mkt-1", True, "x", db)

        assert db.execute.await_count == 3
        assert summary.winners == 0
        assert summary.total_payout == 0.0

    async def test_market_without_open_positions(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_result(row=("mkt-1",)), _result(rows=[])]

        summary = await settle_market("mkt-1", False, "x", db)

        assert summary.winners == summary.losers == 0
