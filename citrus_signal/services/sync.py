"""
Live-data sync: one round of weather + price-history fetches.

Flow
----
    1. Open one ``httpx.AsyncClient`` for the round.
    2. Fetch current weather and daily closes concurrently
       (``asyncio.gather(..., return_exceptions=True)``); each may fail
       independently. No retries.
    3. Compute RSI from the cleaned closes. Too few closes is reported as an
       RSI error, exactly like a failed fetch.
    4. Hand the ``LiveSnapshot`` to ``DashboardState.apply_snapshot`` (the
       single update path), which reconciles and re-evaluates.
    5. Persist ``last_sync`` (and ``last_rsi`` when a new RSI was computed).

A failed source keeps its last known value; the failure becomes an
annotation in ``SyncReport.errors`` and in the stored ``last_sync``.
Only ``FetchError`` / ``InsufficientDataError`` are treated as data
failures; anything else is a bug and propagates.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

import httpx

from citrus_signal.db.repositories.kv_repo import KEY_LAST_RSI, KEY_LAST_SYNC
from citrus_signal.engine.reconciler import LiveSnapshot, SyncOutcome
from citrus_signal.indicators.rsi import DEFAULT_PERIOD, InsufficientDataError, compute_rsi
from citrus_signal.ingestion.http import FetchError
from citrus_signal.ingestion.price_client import PriceHistory, YahooFinanceClient
from citrus_signal.ingestion.weather_client import OpenMeteoClient, WeatherReading
from citrus_signal.services.state import DashboardState
from citrus_signal.utils.time_utils import format_iso_utc, parse_iso_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Everything one sync round produced."""

    outcome: SyncOutcome
    weather: Optional[WeatherReading] = None
    rsi_points: Optional[int] = None

    @property
    def errors(self) -> tuple[str, ...]:
        return self.outcome.errors


def load_last_sync(store: Any) -> Optional[dict]:
    """Return the stored ``last_sync`` document, or ``None`` if never synced."""
    return store.get(KEY_LAST_SYNC)


def last_synced_at(store: Any) -> Optional[datetime]:
    """Timestamp of the last *successful* sync, or ``None``."""
    doc = load_last_sync(store)
    if not doc:
        return None
    return parse_iso_utc(doc.get("synced_at"))


class LiveDataSync:
    """Runs sync rounds against the configured sources.

    Args:
        store:      Key-value store (owns ``last_sync`` / ``last_rsi``).
        state:      The ``DashboardState`` that receives the snapshot.
        weather:    Weather client.
        prices:     Price-history client.
        rsi_period: RSI period (default 14).
        transport:  Optional ``httpx`` transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        store: Any,
        state: DashboardState,
        weather: Optional[OpenMeteoClient] = None,
        prices: Optional[YahooFinanceClient] = None,
        rsi_period: int = DEFAULT_PERIOD,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._store = store
        self._state = state
        self._weather = weather or OpenMeteoClient()
        self._prices = prices or YahooFinanceClient()
        self._rsi_period = rsi_period
        self._transport = transport

    async def run_once(self, now: Optional[datetime] = None) -> SyncReport:
        """Fetch, reconcile, persist. Never raises for source failures."""
        now = now or utcnow()

        async with httpx.AsyncClient(transport=self._transport) as client:
            weather_res, history_res = await asyncio.gather(
                self._weather.fetch_current(client),
                self._prices.fetch_daily_closes(client, now=now),
                return_exceptions=True,
            )

        weather: Optional[WeatherReading] = None
        weather_error: Optional[str] = None
        if isinstance(weather_res, FetchError):
            weather_error = str(weather_res)
        elif isinstance(weather_res, BaseException):
            raise weather_res
        else:
            weather = weather_res

        rsi: Optional[float] = None
        rsi_error: Optional[str] = None
        rsi_points: Optional[int] = None
        if isinstance(history_res, FetchError):
            rsi_error = str(history_res)
        elif isinstance(history_res, BaseException):
            raise history_res
        else:
            rsi, rsi_error, rsi_points = self._rsi_from(history_res)

        snapshot = LiveSnapshot(
            temperature_f=float(weather.temperature_f) if weather else None,
            rsi=rsi,
            weather_error=weather_error,
            rsi_error=rsi_error,
        )
        outcome = self._state.apply_snapshot(
            snapshot, now=now, previous_synced_at=last_synced_at(self._store)
        )

        self._persist(now, outcome, weather, rsi, rsi_points)
        for err in outcome.errors:
            logger.warning("Sync: %s", err)
        logger.info(
            "Sync %s: temp=%.0fF rsi=%.0f (%d error(s))",
            "ok" if outcome.succeeded else "failed",
            outcome.parameters.current_temp,
            outcome.parameters.rsi_value,
            len(outcome.errors),
        )
        return SyncReport(outcome=outcome, weather=weather, rsi_points=rsi_points)

    def run(self, now: Optional[datetime] = None) -> SyncReport:
        """Blocking wrapper around ``run_once`` for the CLI and the frost clock."""
        return asyncio.run(self.run_once(now))

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _rsi_from(self, history: PriceHistory) -> tuple[Optional[float], Optional[str], int]:
        points = len(history.closes)
        try:
            return compute_rsi(history.closes, self._rsi_period), None, points
        except InsufficientDataError as exc:
            return None, f"{history.symbol}: {exc}", points

    def _persist(
        self,
        now: datetime,
        outcome: SyncOutcome,
        weather: Optional[WeatherReading],
        rsi: Optional[float],
        rsi_points: Optional[int],
    ) -> None:
        previous = load_last_sync(self._store) or {}
        doc = {
            "attempted_at": format_iso_utc(now),
            "synced_at": format_iso_utc(outcome.synced_at) if outcome.synced_at else None,
            "temperature_f": outcome.parameters.current_temp,
            "rsi": outcome.parameters.rsi_value,
            "errors": list(outcome.errors),
        }
        if weather is not None:
            doc["weather"] = {
                "humidity_pct": weather.humidity_pct,
                "wind_speed_mph": weather.wind_speed_mph,
                "weather_code": weather.weather_code,
                "condition": weather.condition,
                "is_freezing_conditions": weather.is_freezing_conditions,
                "is_frost_warning": weather.is_frost_warning,
            }
        elif "weather" in previous:
            doc["weather"] = previous["weather"]
        self._store.set(KEY_LAST_SYNC, doc)

        if rsi is not None:
            self._store.set(
                KEY_LAST_RSI,
                {"value": rsi, "computed_at": format_iso_utc(now), "points": rsi_points},
            )
