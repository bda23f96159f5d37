"""
Advisory market-context feeds: hurricane activity and La Niña conditions.

Sources:
  - NHC Atlantic RSS  https://www.nhc.noaa.gov/index-at.xml
      Active when any item title contains "hurricane" (case-insensitive).
  - Open-Meteo Marine https://marine-api.open-meteo.com/v1/marine
      Sea-surface temperature at the Niño-3.4 reference point (0°, -145°).
      La Niña conditions when the most recent daily SST < 26.5°C.

Both are fetched concurrently. Each failure is reported on its own status
(``is_active=False`` plus ``error``) and never raised.

These readings are advisory: they are displayed next to the operator's
manual La Niña / hurricane toggles and never overwrite them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional

import feedparser
import httpx

from citrus_signal.ingestion.http import FetchError, get_json, get_response

logger = logging.getLogger(__name__)

LA_NINA_SST_THRESHOLD_C = 26.5


# ── Response types ────────────────────────────────────────────────────────────


@dataclass
class HurricaneStatus:
    is_active: bool
    latest_title: Optional[str] = None
    error: Optional[str] = None


@dataclass
class LaNinaStatus:
    is_active: bool
    sst_c: Optional[float] = None
    error: Optional[str] = None


@dataclass
class MarketContextData:
    """Combined advisory context from both feeds."""

    hurricane: HurricaneStatus
    la_nina: LaNinaStatus
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ── Parsing ───────────────────────────────────────────────────────────────────


def parse_hurricane_feed(xml_text: str) -> HurricaneStatus:
    """Scan NHC RSS entries for a title mentioning a hurricane."""
    feed = feedparser.parse(xml_text)
    for entry in feed.entries:
        title = getattr(entry, "title", "") or ""
        if "hurricane" in title.lower():
            return HurricaneStatus(is_active=True, latest_title=title)
    return HurricaneStatus(is_active=False)


def parse_sst(payload: Any) -> LaNinaStatus:
    """Read the most recent daily SST and classify La Niña.

    Raises:
        FetchError: If the SST series is missing, empty or non-numeric.
    """
    daily = payload.get("daily") if isinstance(payload, dict) else None
    series = daily.get("ocean_surface_temperature") if isinstance(daily, dict) else None
    if not isinstance(series, list) or not series:
        raise FetchError("open_meteo_marine", "SST data not available in response")

    sst = series[-1]
    if isinstance(sst, bool) or not isinstance(sst, (int, float)):
        raise FetchError("open_meteo_marine", "invalid SST data format")

    return LaNinaStatus(is_active=sst < LA_NINA_SST_THRESHOLD_C, sst_c=float(sst))


# ── Client ────────────────────────────────────────────────────────────────────


class MarketContextClient:
    """Fetch hurricane and La Niña advisory signals.

    Usage::

        async with httpx.AsyncClient() as http:
            ctx = await MarketContextClient().fetch_all(http)
    """

    NHC_RSS_URL: ClassVar[str] = "https://www.nhc.noaa.gov/index-at.xml"
    MARINE_URL: ClassVar[str] = "https://marine-api.open-meteo.com/v1/marine"
    NINO34_LAT: ClassVar[float] = 0.0
    NINO34_LON: ClassVar[float] = -145.0

    def __init__(self, timeout: float = 15.0) -> None:
        self.timeout = timeout

    async def fetch_hurricane_status(self, client: httpx.AsyncClient) -> HurricaneStatus:
        try:
            resp = await get_response(client, "nhc_rss", self.NHC_RSS_URL, timeout=self.timeout)
        except FetchError as exc:
            logger.warning("Hurricane status unavailable: %s", exc)
            return HurricaneStatus(is_active=False, error=str(exc))
        status = parse_hurricane_feed(resp.text)
        if status.is_active:
            logger.info("NHC feed reports hurricane activity: %s", status.latest_title)
        return status

    async def fetch_la_nina_status(self, client: httpx.AsyncClient) -> LaNinaStatus:
        try:
            payload = await get_json(
                client,
                "open_meteo_marine",
                self.MARINE_URL,
                params={
                    "latitude": self.NINO34_LAT,
                    "longitude": self.NINO34_LON,
                    "daily": "wave_height_max,ocean_surface_temperature",
                    "timezone": "auto",
                },
                timeout=self.timeout,
            )
            return parse_sst(payload)
        except FetchError as exc:
            logger.warning("La Niña status unavailable: %s", exc)
            return LaNinaStatus(is_active=False, error=str(exc))

    async def fetch_all(self, client: httpx.AsyncClient) -> MarketContextData:
        """Fetch both signals concurrently."""
        hurricane, la_nina = await asyncio.gather(
            self.fetch_hurricane_status(client),
            self.fetch_la_nina_status(client),
        )
        return MarketContextData(hurricane=hurricane, la_nina=la_nina)
