"""TradeRepository — positions table, raw text() SQL.

Status transitions are conditional on ``status = 'OPEN'`` so a position can
be closed exactly once, whichever of sell or resolution gets there first.
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_trading.domain.models import Trade

_TRADE_COLUMNS = """
    id, user_email, market_id, side, shares, amount, avg_price,
    status, sell_fee, net_payout, closed_at, created_at, updated_at
"""

_INSERT_SQL = text(f"""
    INSERT INTO trades
        (id, user_email, market_id, side, shares, amount, avg_price, status)
    VALUES
        (:id, :user_email, :market_id, :side, :shares, :amount, :avg_price, 'OPEN')
    RETURNING {_TRADE_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_TRADE_COLUMNS} FROM trades WHERE id = :trade_id")

_MARK_SOLD_SQL = text(f"""
    UPDATE trades
    SET status = 'SOLD',
        net_payout = :net_payout,
        sell_fee = :fee,
        closed_at = :closed_at,
        updated_at = NOW()
    WHERE id = :trade_id
      AND user_email = :user_email
      AND status = 'OPEN'
    RETURNING {_TRADE_COLUMNS}
""")

_LIST_BY_USER_SQL = text(f"""
    SELECT {_TRADE_COLUMNS}
    FROM trades
    WHERE user_email = :user_email
      AND (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")


def _row_to_trade(row: object) -> Trade:
    return Trade(
        id=row.id,  # type: ignore[attr-defined]
        user_email=row.user_email,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        side=row.side,  # type: ignore[attr-defined]
        shares=row.shares,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        avg_price=row.avg_price,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        sell_fee=row.sell_fee,  # type: ignore[attr-defined]
        net_payout=row.net_payout,  # type: ignore[attr-defined]
        closed_at=row.closed_at,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class TradeRepository:
    async def insert_trade(self, db: AsyncSession, trade: Trade) -> Trade:
        result = await db.execute(
            _INSERT_SQL,
            {
                "id": trade.id,
                "user_email": trade.user_email,
                "market_id": trade.market_id,
                "side": trade.side,
                "shares": trade.shares,
                "amount": trade.amount,
                "avg_price": trade.avg_price,
            },
        )
        return _row_to_trade(result.fetchone())

    async def get_trade(self, db: AsyncSession, trade_id: str) -> Trade | None:
        result = await db.execute(_GET_SQL, {"trade_id": trade_id})
        row = result.fetchone()
        return _row_to_trade(row) if row else None

    async def mark_sold(
        self,
        db: AsyncSession,
        trade_id: str,
        user_email: str,
        net_payout: float,
        fee: float,
        closed_at: datetime,
    ) -> Trade | None:
        result = await db.execute(
            _MARK_SOLD_SQL,
            {
                "trade_id": trade_id,
                "user_email": user_email,
                "net_payout": net_payout,
                "fee": fee,
                "closed_at": closed_at,
            },
        )
        row = result.fetchone()
        return _row_to_trade(row) if row else None

    async def list_user_trades(
        self,
        db: AsyncSession,
        user_email: str,
        status: str | None,
        limit: int,
    ) -> list[Trade]:
        result = await db.execute(
            _LIST_BY_USER_SQL,
            {"user_email": user_email, "status": status, "limit": limit},
        )
        return [_row_to_trade(row) for row in result.fetchall()]
