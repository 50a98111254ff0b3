"""Admin application service.

Market creation, explicit close, manual resolution, the batch resolution scan
(driven by an external scheduler) and consistency audits. Every write commits
on success and rolls back on any exception.
"""

import logging
import uuid
from datetime import datetime, timedelta

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_admin.application.schemas import (
    CreateMarketRequest,
    InvariantReport,
    MarketStats,
    ResolutionScanResponse,
    ScanItem,
    SettlementResult,
)
from src.pm_amm.domain.pool import initialize_pools, validate_pools
from src.pm_amm.domain.pricing import price
from src.pm_clearing.domain.global_invariants import verify_global_invariants
from src.pm_clearing.domain.settlement import SettlementSummary, settle_market
from src.pm_common.datetime_utils import ensure_utc, utc_now
from src.pm_common.enums import MarketStatus, ResolutionKind, ScanStatus
from src.pm_common.errors import (
    AppError,
    InvalidMarketParamsError,
    MarketAlreadyResolvedError,
    MarketNotFoundError,
)
from src.pm_common.money import round_money
from src.pm_market.application.schemas import MarketDetail
from src.pm_market.domain.models import Market, PriceSnapshot
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_oracle.application.resolver import OracleResolver
from src.pm_oracle.domain.inference import (
    default_threshold,
    infer_entity,
    infer_resolution_kind,
)

logger = logging.getLogger(__name__)

_STATS_SQL = text("""
    SELECT
        COUNT(*) AS total_trades,
        COUNT(*) FILTER (WHERE status = 'OPEN') AS open_positions,
        COUNT(DISTINCT user_email) AS unique_traders,
        COALESCE(SUM(sell_fee), 0) AS total_fees,
        COALESCE(SUM(shares) FILTER (WHERE status = 'OPEN' AND side = 'YES'), 0)
            AS open_yes_shares,
        COALESCE(SUM(shares) FILTER (WHERE status = 'OPEN' AND side = 'NO'), 0)
            AS open_no_shares
    FROM trades
    WHERE market_id = :market_id
""")

MANUAL_SOURCE = "Manual resolution by operator"


def _to_result(summary: SettlementSummary) -> SettlementResult:
    return SettlementResult(
        market_id=summary.market_id,
        outcome=summary.outcome,
        source=summary.source,
        winners=summary.winners,
        losers=summary.losers,
        total_payout=round_money(summary.total_payout),
    )


class AdminService:
    def __init__(
        self,
        market_repo: MarketRepositoryProtocol | None = None,
        resolver: OracleResolver | None = None,
    ) -> None:
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._resolver = resolver or OracleResolver()

    async def _require_market(self, db: AsyncSession, market_id: str) -> Market:
        market = await self._markets.get_market_by_id(db, market_id)
        if market is None:
            raise MarketNotFoundError(market_id)
        return market

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_market(
        self, db: AsyncSession, req: CreateMarketRequest
    ) -> MarketDetail:
        now = utc_now()
        k = req.liquidity_k if req.liquidity_k is not None else settings.INITIAL_LIQUIDITY_K
        try:
            yes_pool, no_pool = initialize_pools(k)
        except ValueError as exc:
            raise InvalidMarketParamsError(str(exc)) from exc

        close_date = (
            ensure_utc(req.close_date)
            if req.close_date is not None
            else now + timedelta(hours=req.duration_hours)
        )
        if close_date <= now:
            raise InvalidMarketParamsError("close_date must be in the future")

        kind = req.resolution_kind or infer_resolution_kind(req.title, req.category)
        threshold = req.resolution_threshold
        if threshold is None:
            threshold = default_threshold(kind, req.title)
        entity = req.resolution_entity or infer_entity(kind, req.title)

        market = Market(
            id=f"mkt_{uuid.uuid4().hex[:16]}",
            title=req.title.strip(),
            description=req.description,
            category=req.category,
            status=MarketStatus.ACTIVE.value,
            yes_pool=yes_pool,
            no_pool=no_pool,
            liquidity_k=yes_pool * no_pool,
            total_volume=0.0,
            close_date=close_date,
            resolution_kind=kind.value,
            resolution_threshold=threshold,
            resolution_entity=entity,
            resolved_outcome=None,
            resolution_source=None,
            resolved_at=None,
            version=0,
            created_at=now,
            updated_at=now,
        )
        try:
            created = await self._markets.insert_market(db, market)
            prices = price(created.yes_pool, created.no_pool)
            await self._markets.insert_price_snapshot(
                db,
                PriceSnapshot(
                    market_id=created.id,
                    yes_price=prices.yes_exact,
                    no_price=prices.no_exact,
                    yes_pool=created.yes_pool,
                    no_pool=created.no_pool,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Market %s created: kind=%s threshold=%s entity=%s closes=%s",
            created.id,
            kind.value,
            threshold,
            entity,
            close_date.isoformat(),
        )
        return MarketDetail.from_domain(created, now)

    async def close_market(self, db: AsyncSession, market_id: str) -> MarketDetail:
        """Stop trading before close_date. Closing a CLOSED market is a no-op."""
        try:
            closed = await self._markets.mark_closed(db, market_id)
            if closed is None:
                closed = await self._require_market(db, market_id)
                if closed.status == MarketStatus.RESOLVED:
                    raise MarketAlreadyResolvedError(market_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return MarketDetail.from_domain(closed, utc_now())

    async def resolve_market(
        self,
        db: AsyncSession,
        market_id: str,
        outcome: bool,
        source: str | None = None,
    ) -> SettlementResult:
        """Operator resolution, for MANUAL markets or to override a stuck oracle."""
        try:
            summary = await settle_market(market_id, outcome, source or MANUAL_SOURCE, db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return _to_result(summary)

    # ------------------------------------------------------------------
    # Batch resolution
    # ------------------------------------------------------------------

    async def _scan_one(self, db: AsyncSession, market: Market) -> ScanItem:
        item = ScanItem(market_id=market.id, title=market.title, status="")
        if market.resolution_kind is None:
            item.status = ScanStatus.NO_ORACLE.value
            return item
        if market.resolution_kind == ResolutionKind.MANUAL:
            item.status = ScanStatus.MANUAL_REQUIRED.value
            return item

        try:
            result = await self._resolver.resolve(market)
        except Exception as exc:
            logger.exception("Oracle lookup for market %s failed", market.id)
            item.status = ScanStatus.ERROR.value
            item.error = str(exc)
            return item
        if result is None:
            item.status = ScanStatus.ORACLE_UNAVAILABLE.value
            return item

        try:
            await settle_market(market.id, result.outcome, result.source, db)
            await db.commit()
        except (AppError, SQLAlchemyError) as exc:
            await db.rollback()
            logger.error("Resolution of market %s failed: %s", market.id, exc)
            item.status = ScanStatus.ERROR.value
            item.error = exc.message if isinstance(exc, AppError) else str(exc)
            return item

        item.status = ScanStatus.RESOLVED.value
        item.outcome = result.outcome
        item.source = result.source
        return item

    async def run_resolution_scan(
        self, db: AsyncSession, now: datetime | None = None
    ) -> ResolutionScanResponse:
        """Try to resolve every expired, unresolved market.

        Each market settles in its own transaction; one failure never blocks
        the rest. Anything not RESOLVED stays eligible for the next scan.
        """
        expired = await self._markets.list_expired_markets(db, now or utc_now())
        # End the read transaction; oracle calls can take a while.
        await db.rollback()

        details = [await self._scan_one(db, m) for m in expired]
        resolved = sum(1 for d in details if d.status == ScanStatus.RESOLVED)
        logger.info(
            "Resolution scan: %d expired, %d resolved, %d pending",
            len(expired),
            resolved,
            len(expired) - resolved,
        )
        return ResolutionScanResponse(
            total=len(expired),
            resolved=resolved,
            pending=len(expired) - resolved,
            details=details,
        )

    # ------------------------------------------------------------------
    # Audits
    # ------------------------------------------------------------------

    async def get_market_stats(self, db: AsyncSession, market_id: str) -> MarketStats:
        market = await self._require_market(db, market_id)
        stats = (await db.execute(_STATS_SQL, {"market_id": market_id})).fetchone()
        return MarketStats(
            market_id=market_id,
            status=market.effective_status(utc_now()),
            total_trades=stats.total_trades if stats else 0,
            open_positions=stats.open_positions if stats else 0,
            unique_traders=stats.unique_traders if stats else 0,
            total_volume=round_money(market.total_volume),
            total_fees=round_money(float(stats.total_fees)) if stats else 0.0,
            open_yes_shares=round_money(float(stats.open_yes_shares)) if stats else 0.0,
            open_no_shares=round_money(float(stats.open_no_shares)) if stats else 0.0,
        )

    async def verify_all_invariants(self, db: AsyncSession) -> InvariantReport:
        """Constant-product check on every unresolved pool plus global checks."""
        violations: list[str] = []
        markets = await self._markets.list_unresolved_markets(db)
        for m in markets:
            for err in validate_pools(m.yes_pool, m.no_pool, m.liquidity_k):
                msg = f"market {m.id}: {err}"
                logger.error("Pool invariant violated: %s", msg)
                violations.append(msg)
        violations.extend(await verify_global_invariants(db))
        return InvariantReport(
            ok=not violations, checked_markets=len(markets), violations=violations
        )
