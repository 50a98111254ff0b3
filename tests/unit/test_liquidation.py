"""Unit tests for position liquidation (selling shares back to the pool)."""

import math

import pytest

from src.pm_amm.domain.liquidation import quote_sell, sell_value
from src.pm_amm.domain.simulator import simulate


class TestQuoteSell:
    def test_immediate_sell_back_restores_pool(self) -> None:
        buy = simulate(100, "YES", 100, 100)
        q = quote_sell(buy.shares, "YES", buy.new_yes_pool, buy.new_no_pool)
        assert q.value == pytest.approx(100)
        assert q.new_yes_pool == pytest.approx(100)
        assert q.new_no_pool == pytest.approx(100)

    def test_round_trip_after_fee_is_not_profitable(self) -> None:
        for side, amount in [("YES", 100), ("NO", 37.5), ("YES", 500), ("NO", 0.5)]:
            buy = simulate(amount, side, 130, 77)
            gross = sell_value(buy.shares, side, buy.new_yes_pool, buy.new_no_pool)
            assert gross <= amount + 1e-9
            assert gross * (1 - 0.02) < amount

    def test_no_side(self) -> None:
        buy = simulate(100, "NO", 100, 100)
        q = quote_sell(buy.shares, "NO", buy.new_yes_pool, buy.new_no_pool)
        assert q.value == pytest.approx(100)
        assert q.new_yes_pool == pytest.approx(100)

    def test_product_is_conserved(self) -> None:
        q = quote_sell(42, "NO", 90, 110)
        assert q.new_yes_pool * q.new_no_pool == pytest.approx(90 * 110)

    def test_value_never_exceeds_shares(self) -> None:
        q = quote_sell(10, "YES", 1, 10000)
        assert 0 < q.value <= 10

    def test_huge_sale_stays_within_opposite_pool(self) -> None:
        q = quote_sell(1e6, "YES", 100, 100)
        assert 0 < q.value < 100
        assert q.new_no_pool > 0


class TestSellValueNeverNegative:
    @pytest.mark.parametrize(
        "shares,side,yes_pool,no_pool",
        [
            (10, "YES", 0, 100),
            (10, "NO", 100, -1),
            (-5, "YES", 100, 100),
            (0, "NO", 100, 100),
            (math.nan, "YES", 100, 100),
            (10, "YES", math.inf, 100),
            (10, "MAYBE", 100, 100),
            (None, "YES", 100, 100),
        ],
    )
    def test_degenerate_inputs_quote_zero(self, shares, side, yes_pool, no_pool) -> None:
        assert sell_value(shares, side, yes_pool, no_pool) == 0

    def test_degenerate_quote_keeps_pools(self) -> None:
        q = quote_sell(-1, "YES", 80, 125)
        assert (q.new_yes_pool, q.new_no_pool) == (80, 125)
