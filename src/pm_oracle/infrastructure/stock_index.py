"""Stock index direction: did the index close above the previous close?"""

import logging
from urllib.parse import quote

import httpx

from src.pm_oracle.domain.models import OracleResult
from src.pm_oracle.infrastructure.http import ORACLE_ERRORS, get_json

logger = logging.getLogger(__name__)

YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"


async def check_stock_index(
    client: httpx.AsyncClient, symbol: str = "^IBEX"
) -> OracleResult | None:
    url = YAHOO_CHART_URL.format(symbol=quote(symbol, safe=""))
    try:
        data = await get_json(client, url, params={"interval": "1d", "range": "1d"})
        meta = data["chart"]["result"][0]["meta"]
        previous = meta.get("previousClose") or meta.get("chartPreviousClose")
        current = meta.get("regularMarketPrice")
        if not previous or not current:
            logger.warning("Yahoo Finance %s: missing close prices", symbol)
            return None
        previous, current = float(previous), float(current)
    except ORACLE_ERRORS as exc:
        logger.warning("Yahoo Finance %s check failed: %s", symbol, exc)
        return None

    return OracleResult(
        outcome=current > previous,
        value=current,
        source=(
            f"Yahoo Finance {symbol}: previous close {previous:.2f}, "
            f"close {current:.2f} ({url})"
        ),
    )
