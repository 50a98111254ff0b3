"""MarketRepository — concrete implementation of MarketRepositoryProtocol.

All queries use raw text() SQL (no ORM).
asyncpg NULL parameter pattern: CAST(:param AS TYPE) IS NULL required for None values.

Pool mutations are compare-and-swap on ``version``: the UPDATE only matches
if nobody committed a trade against the market since the caller read it.
Zero rows returned means the read was stale (or the market left ACTIVE).
"""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_market.domain.models import Market, PriceSnapshot

# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------

_MARKET_COLUMNS = """
    id, title, description, category, status,
    yes_pool, no_pool, liquidity_k, total_volume, close_date,
    resolution_kind, resolution_threshold, resolution_entity,
    resolved_outcome, resolution_source, resolved_at,
    version, created_at, updated_at
"""

_GET_MARKET_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE id = :market_id
""")

_LIST_MARKETS_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE
        (CAST(:status AS TEXT) IS NULL OR status = CAST(:status AS TEXT))
        AND (CAST(:category AS TEXT) IS NULL OR category = CAST(:category AS TEXT))
        AND (
            CAST(:cursor_ts AS TIMESTAMPTZ) IS NULL
            OR created_at < CAST(:cursor_ts AS TIMESTAMPTZ)
            OR (
                created_at = CAST(:cursor_ts AS TIMESTAMPTZ)
                AND id < CAST(:cursor_id AS TEXT)
            )
        )
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_INSERT_MARKET_SQL = text(f"""
    INSERT INTO markets
        (id, title, description, category, status,
         yes_pool, no_pool, liquidity_k, total_volume, close_date,
         resolution_kind, resolution_threshold, resolution_entity)
    VALUES
        (:id, :title, :description, :category, 'ACTIVE',
         :yes_pool, :no_pool, :liquidity_k, 0, :close_date,
         :resolution_kind, :resolution_threshold, :resolution_entity)
    RETURNING {_MARKET_COLUMNS}
""")

_COMMIT_POOL_SQL = text(f"""
    UPDATE markets
    SET yes_pool = :new_yes_pool,
        no_pool = :new_no_pool,
        total_volume = total_volume + :volume_delta,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :market_id
      AND version = :expected_version
      AND status = 'ACTIVE'
    RETURNING {_MARKET_COLUMNS}
""")

_MARK_CLOSED_SQL = text(f"""
    UPDATE markets
    SET status = 'CLOSED', updated_at = NOW()
    WHERE id = :market_id AND status = 'ACTIVE'
    RETURNING {_MARKET_COLUMNS}
""")

_LIST_EXPIRED_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE status IN ('ACTIVE', 'CLOSED')
      AND close_date < :now
    ORDER BY close_date, id
""")

_LIST_UNRESOLVED_SQL = text(f"""
    SELECT {_MARKET_COLUMNS}
    FROM markets
    WHERE status IN ('ACTIVE', 'CLOSED')
    ORDER BY created_at, id
""")

_INSERT_SNAPSHOT_SQL = text("""
    INSERT INTO price_snapshots
        (market_id, yes_price, no_price, yes_pool, no_pool)
    VALUES
        (:market_id, :yes_price, :no_price, :yes_pool, :no_pool)
""")

_LIST_SNAPSHOTS_SQL = text("""
    SELECT id, market_id, yes_price, no_price, yes_pool, no_pool, created_at
    FROM price_snapshots
    WHERE market_id = :market_id
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------

def _row_to_market(row: object) -> Market:
    return Market(
        id=row.id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        category=row.category,  # type: ignore[attr-defined]
        status=row.status,  # type: ignore[attr-defined]
        yes_pool=row.yes_pool,  # type: ignore[attr-defined]
        no_pool=row.no_pool,  # type: ignore[attr-defined]
        liquidity_k=row.liquidity_k,  # type: ignore[attr-defined]
        total_volume=row.total_volume,  # type: ignore[attr-defined]
        close_date=row.close_date,  # type: ignore[attr-defined]
        resolution_kind=row.resolution_kind,  # type: ignore[attr-defined]
        resolution_threshold=row.resolution_threshold,  # type: ignore[attr-defined]
        resolution_entity=row.resolution_entity,  # type: ignore[attr-defined]
        resolved_outcome=row.resolved_outcome,  # type: ignore[attr-defined]
        resolution_source=row.resolution_source,  # type: ignore[attr-defined]
        resolved_at=row.resolved_at,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_snapshot(row: object) -> PriceSnapshot:
    return PriceSnapshot(
        id=row.id,  # type: ignore[attr-defined]
        market_id=row.market_id,  # type: ignore[attr-defined]
        yes_price=row.yes_price,  # type: ignore[attr-defined]
        no_price=row.no_price,  # type: ignore[attr-defined]
        yes_pool=row.yes_pool,  # type: ignore[attr-defined]
        no_pool=row.no_pool,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class MarketRepository:
    """Concrete repository. Transaction ownership stays with the caller."""

    async def get_market_by_id(
        self, db: AsyncSession, market_id: str
    ) -> Market | None:
        result = await db.execute(_GET_MARKET_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def list_markets(
        self,
        db: AsyncSession,
        status: str | None,
        category: str | None,
        cursor_ts: str | None,
        cursor_id: str | None,
        limit: int,
    ) -> list[Market]:
        # asyncpg requires a real datetime object for TIMESTAMPTZ parameters,
        # not an ISO string.  Parse the cursor timestamp here.
        cursor_ts_dt: datetime | None = None
        if cursor_ts is not None:
            cursor_ts_dt = datetime.fromisoformat(cursor_ts)

        result = await db.execute(
            _LIST_MARKETS_SQL,
            {
                "status": status,
                "category": category,
                "cursor_ts": cursor_ts_dt,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_market(row) for row in result.fetchall()]

    async def insert_market(self, db: AsyncSession, market: Market) -> Market:
        result = await db.execute(
            _INSERT_MARKET_SQL,
            {
                "id": market.id,
                "title": market.title,
                "description": market.description,
                "category": market.category,
                "yes_pool": market.yes_pool,
                "no_pool": market.no_pool,
                "liquidity_k": market.liquidity_k,
                "close_date": market.close_date,
                "resolution_kind": market.resolution_kind,
                "resolution_threshold": market.resolution_threshold,
                "resolution_entity": market.resolution_entity,
            },
        )
        return _row_to_market(result.fetchone())

    async def commit_pool(
        self,
        db: AsyncSession,
        market_id: str,
        expected_version: int,
        new_yes_pool: float,
        new_no_pool: float,
        volume_delta: float,
    ) -> Market | None:
        result = await db.execute(
            _COMMIT_POOL_SQL,
            {
                "market_id": market_id,
                "expected_version": expected_version,
                "new_yes_pool": new_yes_pool,
                "new_no_pool": new_no_pool,
                "volume_delta": volume_delta,
            },
        )
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def mark_closed(self, db: AsyncSession, market_id: str) -> Market | None:
        result = await db.execute(_MARK_CLOSED_SQL, {"market_id": market_id})
        row = result.fetchone()
        return _row_to_market(row) if row else None

    async def list_expired_markets(
        self, db: AsyncSession, now: datetime
    ) -> list[Market]:
        result = await db.execute(_LIST_EXPIRED_SQL, {"now": now})
        return [_row_to_market(row) for row in result.fetchall()]

    async def list_unresolved_markets(self, db: AsyncSession) -> list[Market]:
        result = await db.execute(_LIST_UNRESOLVED_SQL)
        return [_row_to_market(row) for row in result.fetchall()]

    async def insert_price_snapshot(
        self, db: AsyncSession, snapshot: PriceSnapshot
    ) -> None:
        await db.execute(
            _INSERT_SNAPSHOT_SQL,
            {
                "market_id": snapshot.market_id,
                "yes_price": snapshot.yes_price,
                "no_price": snapshot.no_price,
                "yes_pool": snapshot.yes_pool,
                "no_pool": snapshot.no_pool,
            },
        )

    async def list_price_snapshots(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[PriceSnapshot]:
        result = await db.execute(
            _LIST_SNAPSHOTS_SQL, {"market_id": market_id, "limit": limit}
        )
        return [_row_to_snapshot(row) for row in result.fetchall()]
