"""Average Spanish day-ahead electricity price against a EUR/MWh threshold.

preciodelaluz.org first; Red Eléctrica's public API when it has no answer.
"""

import logging
from datetime import date

import httpx

from src.pm_common.datetime_utils import utc_now
from src.pm_oracle.domain.models import OracleResult
from src.pm_oracle.infrastructure.http import ORACLE_ERRORS, get_json

logger = logging.getLogger(__name__)

PRECIODELALUZ_URL = "https://api.preciodelaluz.org/v1/prices/avg"
REE_URL = "https://apidatos.ree.es/es/datos/mercados/precios-mercados-tiempo-real"


async def _from_preciodelaluz(client: httpx.AsyncClient) -> float | None:
    try:
        data = await get_json(client, PRECIODELALUZ_URL, params={"zone": "PCB"})
        avg = data["price"]
        return float(avg) if avg is not None else None
    except ORACLE_ERRORS as exc:
        logger.warning("preciodelaluz.org check failed: %s", exc)
        return None


async def _from_ree(client: httpx.AsyncClient, day: date) -> float | None:
    params = {
        "start_date": f"{day.isoformat()}T00:00",
        "end_date": f"{day.isoformat()}T23:59",
        "time_trunc": "day",
    }
    try:
        data = await get_json(client, REE_URL, params=params)
        values = data["included"][0]["attributes"]["values"]
        if not values:
            return None
        return sum(float(v["value"]) for v in values) / len(values)
    except ORACLE_ERRORS as exc:
        logger.warning("REE price check failed: %s", exc)
        return None


async def check_electricity_price(
    client: httpx.AsyncClient, threshold: float = 100.0, day: date | None = None
) -> OracleResult | None:
    avg = await _from_preciodelaluz(client)
    if avg is not None:
        return OracleResult(
            outcome=avg > threshold,
            value=avg,
            source=(
                f"preciodelaluz.org average price: {avg:.2f} EUR/MWh "
                f"(threshold {threshold:g}) ({PRECIODELALUZ_URL})"
            ),
        )

    avg = await _from_ree(client, day or utc_now().date())
    if avg is None:
        return None
    return OracleResult(
        outcome=avg > threshold,
        value=avg,
        source=(
            f"REE average price: {avg:.2f} EUR/MWh "
            f"(threshold {threshold:g}) ({REE_URL})"
        ),
    )
