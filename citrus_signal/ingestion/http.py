"""
Shared HTTP helpers for the ingestion clients.

Every client receives an ``httpx.AsyncClient`` from its caller (the sync
service opens one per sync round; tests pass one built on
``httpx.MockTransport``). Transport errors, non-2xx responses and
undecodable payloads are all converted to ``FetchError`` here, so callers
deal with exactly one failure type. No retries: one failed attempt is
terminal for that round.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "citrus-signal/0.1"


class FetchError(Exception):
    """An external data source could not be reached or returned bad data.

    Attributes:
        source: Short source identifier (e.g. ``"open_meteo"``).
    """

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        super().__init__(f"{source}: {message}")


async def get_response(
    client: httpx.AsyncClient,
    source: str,
    url: str,
    params: Optional[dict[str, Any]] = None,
    timeout: float = 15.0,
) -> httpx.Response:
    """GET ``url`` and return the response, raising ``FetchError`` on failure."""
    try:
        resp = await client.get(
            url,
            params=params,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
        )
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise FetchError(source, f"HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise FetchError(source, f"request failed ({type(exc).__name__}: {exc})") from exc
    logger.debug("%s: GET %s -> %d", source, resp.request.url, resp.status_code)
    return resp


async def get_json(
    client: httpx.AsyncClient,
    source: str,
    url: str,
    params: Optional[dict[str, Any]] = None,
    timeout: float = 15.0,
) -> Any:
    """GET ``url`` and decode the JSON body, raising ``FetchError`` on failure."""
    resp = await get_response(client, source, url, params=params, timeout=timeout)
    try:
        return resp.json()
    except ValueError as exc:
        raise FetchError(source, "response body is not valid JSON") from exc
