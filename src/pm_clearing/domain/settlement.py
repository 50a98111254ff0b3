"""Market settlement — resolve a market and pay out its OPEN positions.

Order matters:
  1. Conditional ACTIVE|CLOSED -> RESOLVED on the market. Zero rows means the
     market is unknown or already resolved; nothing is paid.
  2. Every OPEN position moves OPEN -> WON|LOST, again conditionally.
  3. Only a position whose transition matched and whose side won is credited
     ``shares`` euros (each winning share redeems for 1 euro).

SOLD positions were already paid by the pool and are left alone. Runs on the
caller's session; the caller commits or rolls back.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.datetime_utils import utc_now
from src.pm_common.errors import MarketAlreadyResolvedError, MarketNotFoundError

logger = logging.getLogger(__name__)

_RESOLVE_MARKET_SQL = text(
    "UPDATE markets"
    " SET status = 'RESOLVED',"
    "     resolved_outcome = :outcome,"
    "     resolution_source = :source,"
    "     resolved_at = :resolved_at,"
    "     updated_at = NOW()"
    " WHERE id = :market_id AND status IN ('ACTIVE', 'CLOSED')"
    " RETURNING id"
)
_MARKET_EXISTS_SQL = text("SELECT status FROM markets WHERE id = :market_id")
_GET_OPEN_TRADES_SQL = text(
    "SELECT id, user_email, side, shares FROM trades"
    " WHERE market_id = :market_id AND status = 'OPEN'"
    " ORDER BY created_at, id"
)
_SETTLE_TRADE_SQL = text(
    "UPDATE trades"
    " SET status = :status,"
    "     net_payout = :payout,"
    "     closed_at = :closed_at,"
    "     updated_at = NOW()"
    " WHERE id = :trade_id AND status = 'OPEN'"
    " RETURNING id"
)
_CREDIT_SQL = text(
    "UPDATE users"
    " SET balance = balance + :amount,"
    "     updated_at = NOW()"
    " WHERE email = :email"
)


@dataclass
class SettlementSummary:
    market_id: str
    outcome: bool
    source: str
    winners: int = 0
    losers: int = 0
    total_payout: float = 0.0


async def settle_market(
    market_id: str,
    outcome: bool,
    source: str,
    db: AsyncSession,
) -> SettlementSummary:
    """Resolve ``market_id`` to ``outcome`` (True = YES won) and settle positions."""
    now = utc_now()
    resolved = (
        await db.execute(
            _RESOLVE_MARKET_SQL,
            {
                "market_id": market_id,
                "outcome": outcome,
                "source": source,
                "resolved_at": now,
            },
        )
    ).fetchone()
    if resolved is None:
        exists = (
            await db.execute(_MARKET_EXISTS_SQL, {"market_id": market_id})
        ).fetchone()
        if exists is None:
            raise MarketNotFoundError(market_id)
        raise MarketAlreadyResolvedError(market_id)

    winning_side = "YES" if outcome else "NO"
    summary = SettlementSummary(market_id=market_id, outcome=outcome, source=source)

    rows = (await db.execute(_GET_OPEN_TRADES_SQL, {"market_id": market_id})).fetchall()
    for trade_id, user_email, side, shares in rows:
        won = side == winning_side
        payout = shares if won else 0.0
        settled = (
            await db.execute(
                _SETTLE_TRADE_SQL,
                {
                    "trade_id": trade_id,
                    "status": "WON" if won else "LOST",
                    "payout": payout,
                    "closed_at": now,
                },
            )
        ).fetchone()
        if settled is None:
            continue  # sold in the meantime
        if won:
            await db.execute(_CREDIT_SQL, {"email": user_email, "amount": payout})
            summary.winners += 1
            summary.total_payout += payout
        else:
            summary.losers += 1

    logger.info(
        "Market %s resolved %s: winners=%d losers=%d payout=%.2f",
        market_id,
        winning_side,
        summary.winners,
        summary.losers,
        summary.total_payout,
    )
    return summary
