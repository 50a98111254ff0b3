"""Peak temperature across the usual Spanish hot spots against a threshold."""

import logging

import httpx

from src.pm_oracle.domain.models import OracleResult
from src.pm_oracle.infrastructure.http import ORACLE_ERRORS, get_json

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

# (name, latitude, longitude)
CITIES = (
    ("Sevilla", 37.39, -5.98),
    ("Cordoba", 37.88, -4.77),
    ("Madrid", 40.42, -3.70),
    ("Murcia", 37.98, -1.13),
    ("Zaragoza", 41.65, -0.88),
)


async def check_temperature(
    client: httpx.AsyncClient, threshold: float = 30.0
) -> OracleResult | None:
    # A missing city could hide the hottest reading; no partial answers.
    hottest: tuple[str, float] | None = None
    try:
        for name, lat, lon in CITIES:
            data = await get_json(
                client,
                OPEN_METEO_URL,
                params={
                    "latitude": lat,
                    "longitude": lon,
                    "daily": "temperature_2m_max",
                    "timezone": "Europe/Madrid",
                    "forecast_days": 1,
                },
            )
            readings = data.get("daily", {}).get("temperature_2m_max") or []
            if not readings or readings[0] is None:
                logger.warning("Open-Meteo returned no reading for %s", name)
                return None
            temp = float(readings[0])
            if hottest is None or temp > hottest[1]:
                hottest = (name, temp)
    except ORACLE_ERRORS as exc:
        logger.warning("Open-Meteo check failed: %s", exc)
        return None

    if hottest is None:
        return None
    city, temp = hottest
    return OracleResult(
        outcome=temp > threshold,
        value=temp,
        source=(
            f"Open-Meteo daily max: {temp:.1f}C in {city} "
            f"(threshold {threshold:g}C) ({OPEN_METEO_URL})"
        ),
    )
