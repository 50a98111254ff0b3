"""Platform-wide consistency checks (no balance below zero, no orphaned positions)."""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_NEGATIVE_BALANCES_SQL = text("SELECT COUNT(*) FROM users WHERE balance < 0")
_OPEN_ON_RESOLVED_SQL = text("""
    SELECT COUNT(*)
    FROM trades t
    JOIN markets m ON m.id = t.market_id
    WHERE t.status = 'OPEN' AND m.status = 'RESOLVED'
""")
_SOLD_WITHOUT_PAYOUT_SQL = text("""
    SELECT COUNT(*)
    FROM trades
    WHERE status IN ('SOLD', 'WON') AND net_payout IS NULL
""")


async def verify_global_invariants(db: AsyncSession) -> list[str]:
    """Return violation strings; empty when the ledger is consistent."""
    violations: list[str] = []

    negative = (await db.execute(_NEGATIVE_BALANCES_SQL)).scalar_one()
    if negative:
        violations.append(f"{negative} user(s) with a negative balance")

    orphaned = (await db.execute(_OPEN_ON_RESOLVED_SQL)).scalar_one()
    if orphaned:
        violations.append(f"{orphaned} OPEN position(s) on RESOLVED markets")

    unpaid = (await db.execute(_SOLD_WITHOUT_PAYOUT_SQL)).scalar_one()
    if unpaid:
        violations.append(f"{unpaid} closed position(s) without a recorded payout")

    for msg in violations:
        logger.error("Global invariant violated: %s", msg)
    return violations
