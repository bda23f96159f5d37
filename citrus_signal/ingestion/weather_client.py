"""
Open-Meteo current-conditions client for Winter Haven, Florida.

API:   https://api.open-meteo.com/v1/forecast
Docs:  https://open-meteo.com/en/docs

No API key required.

Request::

    GET /v1/forecast?latitude=28.02&longitude=-81.73
        &current=temperature_2m,relative_humidity_2m,weather_code,wind_speed_10m
        &temperature_unit=celsius&wind_speed_unit=kmh&timezone=America/New_York

Unit conversion happens here, at the boundary: the rest of the system only
ever sees °F and mph (both rounded to whole numbers, matching the
resolution of the frost thresholds).

Condition labels come from the WMO weather-interpretation code table, with
a suffix when the temperature is at or below a frost threshold::

    <= 32°F  -> "<label> - FREEZE WARNING"
    <= 36°F  -> "<label> - Frost Advisory"
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar

import httpx

from citrus_signal.ingestion.http import FetchError, get_json

logger = logging.getLogger(__name__)

SOURCE = "open_meteo"

FREEZE_THRESHOLD_F = 32
FROST_WARNING_THRESHOLD_F = 36

# WMO weather interpretation codes
WEATHER_CODE_MAP: dict[int, str] = {
    0:  "Clear",
    1:  "Mainly Clear",
    2:  "Partly Cloudy",
    3:  "Overcast",
    45: "Foggy",
    48: "Depositing Rime Fog",
    51: "Light Drizzle",
    53: "Moderate Drizzle",
    55: "Dense Drizzle",
    56: "Light Freezing Drizzle",
    57: "Dense Freezing Drizzle",
    61: "Slight Rain",
    63: "Moderate Rain",
    65: "Heavy Rain",
    66: "Light Freezing Rain",
    67: "Heavy Freezing Rain",
    71: "Slight Snow",
    73: "Moderate Snow",
    75: "Heavy Snow",
    77: "Snow Grains",
    80: "Slight Rain Showers",
    81: "Moderate Rain Showers",
    82: "Violent Rain Showers",
    85: "Slight Snow Showers",
    86: "Heavy Snow Showers",
    95: "Thunderstorm",
    96: "Thunderstorm with Slight Hail",
    99: "Thunderstorm with Heavy Hail",
}


# ── Conversions ───────────────────────────────────────────────────────────────


def _round_half_up(x: float) -> int:
    # int(round()) would use banker's rounding; 0.5 must round up here.
    return int(math.floor(x + 0.5))


def celsius_to_fahrenheit(celsius: float) -> int:
    """°C to whole °F."""
    return _round_half_up(celsius * 9 / 5 + 32)


def kph_to_mph(kph: float) -> int:
    """km/h to whole mph."""
    return _round_half_up(kph * 0.621371)


def condition_label(weather_code: int, temp_f: float) -> str:
    """WMO label with a freeze / frost suffix when cold enough."""
    if weather_code in (0, 1):
        base = "Clear"
    else:
        base = WEATHER_CODE_MAP.get(weather_code, "Unknown")

    if temp_f <= FREEZE_THRESHOLD_F:
        return f"{base} - FREEZE WARNING"
    if temp_f <= FROST_WARNING_THRESHOLD_F:
        return f"{base} - Frost Advisory"
    return WEATHER_CODE_MAP.get(weather_code, "Unknown")


# ── Response types ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FrostRisk:
    """Qualitative frost risk for the growing region."""

    level:       str   # "none" | "low" | "moderate" | "high" | "critical"
    description: str


@dataclass
class WeatherReading:
    """Current conditions, already converted to °F / mph."""

    temperature_f:   int
    humidity_pct:    int
    wind_speed_mph:  int
    weather_code:    int
    condition:       str
    is_freezing_conditions: bool
    is_frost_warning:       bool
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def frost_risk(self) -> FrostRisk:
        return frost_risk_level(self.temperature_f, self.humidity_pct, self.wind_speed_mph)


def frost_risk_level(temp_f: float, humidity_pct: float, wind_mph: float) -> FrostRisk:
    """Classify frost risk from temperature, humidity and wind.

    Calm, humid nights raise the risk (radiative cooling); wind lowers it
    by mixing warmer air down to the canopy.
    """
    if temp_f > 40:
        return FrostRisk("none", "No frost risk")
    if temp_f > 36:
        if wind_mph < 5 and humidity_pct > 70:
            return FrostRisk("low", "Slight frost possible overnight")
        return FrostRisk("none", "No significant frost risk")
    if temp_f > 32:
        if wind_mph < 5 and humidity_pct > 60:
            return FrostRisk("moderate", "Frost likely overnight")
        return FrostRisk("low", "Light frost possible")
    if temp_f > 28:
        if wind_mph < 10:
            return FrostRisk("high", "Hard freeze expected")
        return FrostRisk("moderate", "Freeze conditions")
    return FrostRisk("critical", "CRITICAL: Citrus damage likely")


def parse_current_weather(payload: dict[str, Any]) -> WeatherReading:
    """Convert an Open-Meteo ``current`` block into a ``WeatherReading``.

    Raises:
        FetchError: If required fields are missing or non-numeric.
    """
    current = payload.get("current") if isinstance(payload, dict) else None
    if not isinstance(current, dict):
        raise FetchError(SOURCE, "response has no 'current' block")

    try:
        temp_c = float(current["temperature_2m"])
        humidity = float(current["relative_humidity_2m"])
        wind_kph = float(current["wind_speed_10m"])
        code = int(current["weather_code"])
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise FetchError(SOURCE, f"malformed 'current' block ({exc!r})") from exc
    if not all(math.isfinite(v) for v in (temp_c, humidity, wind_kph)):
        raise FetchError(SOURCE, "non-finite value in 'current' block")

    temp_f = celsius_to_fahrenheit(temp_c)
    return WeatherReading(
        temperature_f=temp_f,
        humidity_pct=_round_half_up(humidity),
        wind_speed_mph=kph_to_mph(wind_kph),
        weather_code=code,
        condition=condition_label(code, temp_f),
        is_freezing_conditions=temp_f <= FREEZE_THRESHOLD_F,
        is_frost_warning=temp_f <= FROST_WARNING_THRESHOLD_F,
    )


# ── Client ────────────────────────────────────────────────────────────────────


class OpenMeteoClient:
    """Async client for Open-Meteo current conditions.

    Usage::

        async with httpx.AsyncClient() as http:
            reading = await OpenMeteoClient().fetch_current(http)

    Attributes:
        latitude, longitude: Forecast point (defaults to Winter Haven, FL).
        timezone:            IANA zone used for the response timestamps.
        timeout:             Per-request timeout in seconds.
    """

    FORECAST_URL: ClassVar[str] = "https://api.open-meteo.com/v1/forecast"

    def __init__(
        self,
        latitude: float = 28.02,
        longitude: float = -81.73,
        timezone: str = "America/New_York",
        timeout: float = 15.0,
    ) -> None:
        self.latitude = latitude
        self.longitude = longitude
        self.timezone = timezone
        self.timeout = timeout

    async def fetch_current(self, client: httpx.AsyncClient) -> WeatherReading:
        """Fetch and convert current conditions.

        Raises:
            FetchError: On transport, HTTP-status or payload failure.
        """
        payload = await get_json(
            client,
            SOURCE,
            self.FORECAST_URL,
            params={
                "latitude": self.latitude,
                "longitude": self.longitude,
                "current": "temperature_2m,relative_humidity_2m,weather_code,wind_speed_10m",
                "temperature_unit": "celsius",
                "wind_speed_unit": "kmh",
                "timezone": self.timezone,
            },
            timeout=self.timeout,
        )
        reading = parse_current_weather(payload)
        logger.info(
            "Weather: %dF, %d%% RH, %d mph, %s",
            reading.temperature_f,
            reading.humidity_pct,
            reading.wind_speed_mph,
            reading.condition,
        )
        return reading
