"""Trending proxy: how many Google News ES items mention a topic this week."""

import logging
import xml.etree.ElementTree as ET

import httpx

from src.pm_oracle.domain.models import OracleResult
from src.pm_oracle.infrastructure.http import ORACLE_ERRORS, get_response

logger = logging.getLogger(__name__)

GOOGLE_NEWS_SEARCH_URL = "https://news.google.com/rss/search"


async def check_news_trending(
    client: httpx.AsyncClient, topic: str, threshold: float = 5.0
) -> OracleResult | None:
    if not topic:
        return None
    params = {"q": f'"{topic}" when:7d', "hl": "es", "gl": "ES", "ceid": "ES:es"}
    try:
        resp = await get_response(client, GOOGLE_NEWS_SEARCH_URL, params=params)
        root = ET.fromstring(resp.text)
        channel = root.find("channel")
        if channel is None:
            logger.warning("Google News feed for %r has no channel", topic)
            return None
        count = len(channel.findall("item"))
    except ORACLE_ERRORS as exc:
        logger.warning("Google News check for %r failed: %s", topic, exc)
        return None

    return OracleResult(
        outcome=count >= threshold,
        value=float(count),
        source=(
            f"Google News ES: {count} articles on \"{topic}\" in the last 7 days "
            f"(threshold {threshold:g}) ({GOOGLE_NEWS_SEARCH_URL})"
        ),
    )
