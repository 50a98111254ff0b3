"""Shared HTTP plumbing for oracle checks."""

import xml.etree.ElementTree as ET
from typing import Any

import httpx

# Yahoo and Google News reject requests without a browser-like agent.
USER_AGENT = "Mozilla/5.0 (compatible; Predimarket-Oracle/1.0)"

# Anything a flaky upstream can throw at a check. Checks catch these and
# report "no answer" instead of guessing.
ORACLE_ERRORS = (
    httpx.HTTPError,
    ET.ParseError,
    ValueError,
    OverflowError,
    KeyError,
    TypeError,
    IndexError,
    AttributeError,
)


async def get_response(
    client: httpx.AsyncClient, url: str, params: dict[str, Any] | None = None
) -> httpx.Response:
    resp = await client.get(url, params=params, headers={"User-Agent": USER_AGENT})
    resp.raise_for_status()
    return resp


async def get_json(
    client: httpx.AsyncClient, url: str, params: dict[str, Any] | None = None
) -> Any:
    return (await get_response(client, url, params)).json()
