"""
Yahoo Finance chart client for orange-juice futures (``OJ=F``).

API:  https://query1.finance.yahoo.com/v8/finance/chart/{symbol}

No API key required. Two uses:

  1. **Daily closes** for the RSI feed — a trailing window of at least
     30 calendar days so that, after dropping ``null`` closes for
     non-trading days, at least 15 valid points remain for a 14-period RSI.
  2. **Latest quote** from the chart ``meta`` block.

OJ futures are quoted in **cents per pound**. A raw value below 10 can
only be a dollar quote, so it is multiplied by 100 before use.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, Optional

import httpx

from citrus_signal.indicators.rsi import clean_closes
from citrus_signal.ingestion.http import FetchError, get_json

logger = logging.getLogger(__name__)

SOURCE = "yahoo_finance"


# ── Response types ────────────────────────────────────────────────────────────


@dataclass
class PriceHistory:
    """Daily closes (cleaned, oldest first) for one symbol."""

    symbol: str
    closes: list[float]
    raw_points: int
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def dropped_points(self) -> int:
        return self.raw_points - len(self.closes)


@dataclass(frozen=True)
class PriceQuote:
    """Latest futures quote, normalised to cents per pound."""

    price_cents:          float
    previous_close_cents: float
    change_cents:         float
    change_percent:       float
    fetched_at:           datetime

    @property
    def price_dollars(self) -> float:
        return self.price_cents / 100.0


def to_cents(raw: float) -> float:
    """Normalise a raw OJ quote to cents per pound."""
    return raw * 100.0 if raw < 10 else float(raw)


def format_price(quote: PriceQuote) -> str:
    """``"$3.50/lb"``"""
    return f"${quote.price_dollars:.2f}/lb"


def format_price_change(quote: PriceQuote) -> str:
    """``"+$0.05 (+1.45%)"`` / ``"-$0.12 (-3.10%)"``"""
    sign = "+" if quote.change_cents >= 0 else "-"
    return (
        f"{sign}${abs(quote.change_cents) / 100:.2f} "
        f"({sign}{abs(quote.change_percent):.2f}%)"
    )


# ── Parsing ───────────────────────────────────────────────────────────────────


def _chart_result(payload: Any) -> dict[str, Any]:
    try:
        result = payload["chart"]["result"][0]
    except (KeyError, IndexError, TypeError) as exc:
        error = None
        if isinstance(payload, dict) and isinstance(payload.get("chart"), dict):
            error = payload["chart"].get("error")
        raise FetchError(SOURCE, f"no chart result ({error or exc!r})") from exc
    if not isinstance(result, dict):
        raise FetchError(SOURCE, "chart result is not an object")
    return result


def parse_daily_closes(payload: Any, symbol: str) -> PriceHistory:
    """Extract the close series, dropping ``null`` / non-numeric entries.

    Raises:
        FetchError: If the chart payload has no close series.
    """
    result = _chart_result(payload)
    try:
        raw = result["indicators"]["quote"][0]["close"]
    except (KeyError, IndexError, TypeError) as exc:
        raise FetchError(SOURCE, "chart result has no close series") from exc
    if not isinstance(raw, list):
        raise FetchError(SOURCE, "close series is not a list")

    closes = clean_closes(raw)
    return PriceHistory(symbol=symbol, closes=closes, raw_points=len(raw))


def parse_quote(payload: Any) -> PriceQuote:
    """Build a ``PriceQuote`` from the chart ``meta`` block.

    Raises:
        FetchError: If neither a current price nor a previous close is present,
            or a price is non-numeric, non-finite or not positive.
    """
    meta = _chart_result(payload).get("meta") or {}
    previous_raw = meta.get("previousClose") or meta.get("chartPreviousClose")
    current_raw = meta.get("regularMarketPrice") or previous_raw
    if not current_raw or not previous_raw:
        raise FetchError(SOURCE, "quote meta has no price")

    try:
        current_value, previous_value = float(current_raw), float(previous_raw)
    except (TypeError, ValueError) as exc:
        raise FetchError(SOURCE, f"non-numeric quote price ({exc!r})") from exc
    if not (math.isfinite(current_value) and math.isfinite(previous_value)) or previous_value <= 0:
        raise FetchError(SOURCE, "quote price is not a positive finite number")

    price = to_cents(current_value)
    previous = to_cents(previous_value)
    change = price - previous
    return PriceQuote(
        price_cents=price,
        previous_close_cents=previous,
        change_cents=change,
        change_percent=change / previous * 100.0,
        fetched_at=datetime.now(timezone.utc),
    )


# ── Client ────────────────────────────────────────────────────────────────────


class YahooFinanceClient:
    """Async client for the Yahoo Finance chart endpoint.

    Usage::

        async with httpx.AsyncClient() as http:
            history = await YahooFinanceClient().fetch_daily_closes(http)
            rsi = compute_rsi(history.closes)
    """

    CHART_URL: ClassVar[str] = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"

    def __init__(
        self,
        symbol: str = "OJ=F",
        lookback_days: int = 30,
        timeout: float = 15.0,
    ) -> None:
        self.symbol = symbol
        self.lookback_days = lookback_days
        self.timeout = timeout

    def _url(self) -> str:
        return self.CHART_URL.format(symbol=self.symbol)

    async def fetch_daily_closes(
        self,
        client: httpx.AsyncClient,
        now: Optional[datetime] = None,
    ) -> PriceHistory:
        """Fetch daily closes over the trailing ``lookback_days`` window.

        Raises:
            FetchError: On transport, HTTP-status or payload failure.
        """
        end = now or datetime.now(timezone.utc)
        start = end - timedelta(days=self.lookback_days)
        payload = await get_json(
            client,
            SOURCE,
            self._url(),
            params={
                "interval": "1d",
                "period1": int(start.timestamp()),
                "period2": int(end.timestamp()),
            },
            timeout=self.timeout,
        )
        history = parse_daily_closes(payload, self.symbol)
        logger.info(
            "Price history %s: %d closes (%d null/non-trading dropped)",
            self.symbol, len(history.closes), history.dropped_points,
        )
        return history

    async def fetch_quote(self, client: httpx.AsyncClient) -> PriceQuote:
        """Fetch the latest quote.

        Raises:
            FetchError: On transport, HTTP-status or payload failure.
        """
        payload = await get_json(
            client,
            SOURCE,
            self._url(),
            params={"interval": "1d", "range": "1d"},
            timeout=self.timeout,
        )
        return parse_quote(payload)
