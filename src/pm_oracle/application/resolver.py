"""OracleResolver — dispatch a market to the external check for its kind.

Dispatch is on the structured ``resolution_kind`` stored at creation; the
resolver never reads the title. ``None`` means "no conclusive answer" and
the market stays pending for the next scan.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from config.settings import settings
from src.pm_common.enums import ResolutionKind
from src.pm_market.domain.models import Market
from src.pm_oracle.domain.inference import DEFAULT_STOCK_SYMBOL, DEFAULT_THRESHOLDS
from src.pm_oracle.domain.models import OracleResult
from src.pm_oracle.infrastructure.electricity import check_electricity_price
from src.pm_oracle.infrastructure.news import check_news_trending
from src.pm_oracle.infrastructure.sports import check_sports_match
from src.pm_oracle.infrastructure.stock_index import check_stock_index
from src.pm_oracle.infrastructure.weather import check_temperature

logger = logging.getLogger(__name__)

Check = Callable[[httpx.AsyncClient], Awaitable[OracleResult | None]]


def _default_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.ORACLE_TIMEOUT_SECONDS, follow_redirects=True
    )


class OracleResolver:
    def __init__(
        self,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
        deadline_seconds: float | None = None,
    ) -> None:
        self._client_factory = client_factory or _default_client
        self._deadline = (
            deadline_seconds
            if deadline_seconds is not None
            else settings.ORACLE_DEADLINE_SECONDS
        )

    def _check_for(self, market: Market) -> Check | None:
        try:
            kind = ResolutionKind(market.resolution_kind)
        except ValueError:
            logger.warning(
                "Market %s has unknown resolution kind %r",
                market.id,
                market.resolution_kind,
            )
            return None

        threshold = market.resolution_threshold
        if threshold is None:
            threshold = DEFAULT_THRESHOLDS.get(kind)
        entity = market.resolution_entity

        if kind == ResolutionKind.STOCK_INDEX:
            symbol = entity or DEFAULT_STOCK_SYMBOL
            return lambda client: check_stock_index(client, symbol)
        if kind == ResolutionKind.ELECTRICITY_PRICE:
            return lambda client: check_electricity_price(client, threshold)
        if kind == ResolutionKind.TEMPERATURE:
            return lambda client: check_temperature(client, threshold)
        if kind == ResolutionKind.NEWS_TRENDING:
            topic = entity or market.title
            return lambda client: check_news_trending(client, topic, threshold)
        if kind == ResolutionKind.SPORTS_MATCH and entity:
            return lambda client: check_sports_match(client, entity)
        return None  # MANUAL, or a sports market without a team

    async def resolve(self, market: Market) -> OracleResult | None:
        if market.resolution_kind is None:
            return None
        check = self._check_for(market)
        if check is None:
            return None

        try:
            async with self._client_factory() as client:
                result = await asyncio.wait_for(check(client), timeout=self._deadline)
        except asyncio.TimeoutError:
            logger.warning(
                "Oracle %s for market %s timed out after %.1fs",
                market.resolution_kind,
                market.id,
                self._deadline,
            )
            return None
        except Exception:
            logger.exception(
                "Oracle %s for market %s failed", market.resolution_kind, market.id
            )
            return None

        if result is None:
            logger.warning(
                "Oracle %s for market %s returned no answer",
                market.resolution_kind,
                market.id,
            )
        return result
