"""Unit tests for the sell fee and global consistency checks."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_clearing.domain.fee import calc_sell_fee
from src.pm_clearing.domain.global_invariants import verify_global_invariants


class TestSellFee:
    def test_two_percent(self) -> None:
        assert calc_sell_fee(100.0, 0.02) == pytest.approx(2.0)

    def test_zero_gross_or_rate(self) -> None:
        assert calc_sell_fee(0.0, 0.02) == 0.0
        assert calc_sell_fee(50.0, 0.0) == 0.0

    def test_never_above_gross(self) -> None:
        assert calc_sell_fee(10.0, 1.5) == 10.0


def _scalar(value: int) -> MagicMock:
    r = MagicMock()
    r.scalar_one.return_value = value
    return r


class TestGlobalInvariants:
    async def test_clean(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_scalar(0), _scalar(0), _scalar(0)]
        assert await verify_global_invariants(db) == []

    async def test_reports_each_violation(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [_scalar(1), _scalar(2), _scalar(0)]

        violations = await verify_global_invariants(db)

        assert len(violations) == 2
        assert "negative balance" in violations[0]
        assert "RESOLVED" in violations[1]
