"""
Tests for services/sync.py — LiveDataSync rounds against httpx.MockTransport.

Covers:
  - Successful round: temperature and RSI reconciled, last_sync / last_rsi stored
  - Weather failure: temperature kept, synced_at not advanced, weather block kept
  - Price failure and too-short history: RSI kept, error annotated
  - Manual controls are never touched by a sync
"""

from __future__ import annotations

from datetime import datetime, timezone

import httpx

from citrus_signal.db.repositories.kv_repo import KEY_LAST_RSI, KeyValueRepository
from citrus_signal.services.state import DashboardState
from citrus_signal.services.sync import LiveDataSync, last_synced_at, load_last_sync

NOW = datetime(2026, 1, 12, 6, 0, 0, tzinfo=timezone.utc)
LATER = datetime(2026, 1, 12, 6, 15, 0, tzinfo=timezone.utc)


def _weather(temp_c: float = -3.0) -> dict:
    return {
        "current": {
            "temperature_2m": temp_c,
            "relative_humidity_2m": 85.0,
            "wind_speed_10m": 4.0,
            "weather_code": 0,
        }
    }


def _chart(closes: list) -> dict:
    return {"chart": {"result": [{"meta": {}, "indicators": {"quote": [{"close": closes}]}}]}}


RISING = [340.0 + i for i in range(21)]


def _transport(weather=None, weather_status: int = 200, closes=RISING, price_status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.open-meteo.com":
            if weather_status != 200:
                return httpx.Response(weather_status)
            return httpx.Response(200, json=weather or _weather())
        if request.url.host == "query1.finance.yahoo.com":
            if price_status != 200:
                return httpx.Response(price_status)
            return httpx.Response(200, json=_chart(closes))
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def _sync(store: KeyValueRepository, state: DashboardState, **kwargs) -> LiveDataSync:
    return LiveDataSync(store, state, transport=_transport(**kwargs))


class TestSuccessfulRound:
    def test_live_values_reconciled(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        state.set_manual(current_inventory=30.0, is_hurricane_active=True)

        report = _sync(kv_store, state).run(now=NOW)

        assert report.outcome.succeeded is True
        assert report.errors == ()
        assert report.rsi_points == 21
        assert report.weather.temperature_f == 27
        assert state.parameters.current_temp == 27.0
        assert state.parameters.rsi_value == 100.0
        assert state.parameters.current_inventory == 30.0
        assert state.parameters.is_hurricane_active is True

    def test_last_sync_and_rsi_persisted(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        _sync(kv_store, state).run(now=NOW)

        doc = load_last_sync(kv_store)
        assert doc["attempted_at"] == "2026-01-12T06:00:00Z"
        assert doc["synced_at"] == "2026-01-12T06:00:00Z"
        assert doc["temperature_f"] == 27.0
        assert doc["errors"] == []
        assert doc["weather"]["condition"] == "Clear - FREEZE WARNING"
        assert doc["weather"]["is_freezing_conditions"] is True
        assert last_synced_at(kv_store) == NOW

        rsi_doc = kv_store.get(KEY_LAST_RSI)
        assert rsi_doc == {"value": 100.0, "computed_at": "2026-01-12T06:00:00Z", "points": 21}


class TestFailures:
    def test_weather_failure_keeps_temperature(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        _sync(kv_store, state).run(now=NOW)

        report = _sync(kv_store, state, weather_status=503).run(now=LATER)

        assert report.outcome.succeeded is False
        assert state.parameters.current_temp == 27.0
        assert any("open_meteo: HTTP 503" in e for e in report.errors)
        doc = load_last_sync(kv_store)
        assert doc["attempted_at"] == "2026-01-12T06:15:00Z"
        assert doc["synced_at"] == "2026-01-12T06:00:00Z"
        assert doc["weather"]["condition"] == "Clear - FREEZE WARNING"

    def test_never_synced_weather_failure(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        _sync(kv_store, state, weather_status=500).run(now=NOW)

        assert last_synced_at(kv_store) is None
        assert "weather" not in load_last_sync(kv_store)
        assert state.parameters.current_temp == 45.0

    def test_price_failure_keeps_rsi(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        report = _sync(kv_store, state, price_status=429).run(now=NOW)

        assert report.outcome.succeeded is True
        assert report.outcome.rsi_updated is False
        assert state.parameters.rsi_value == 50.0
        assert any("yahoo_finance: HTTP 429" in e for e in report.errors)
        assert kv_store.get(KEY_LAST_RSI) is None

    def test_short_history_reported_as_rsi_error(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        closes = [350.0, None] + [351.0 + i for i in range(9)]
        report = _sync(kv_store, state, closes=closes).run(now=NOW)

        assert report.rsi_points == 10
        assert state.parameters.rsi_value == 50.0
        assert report.errors == (
            "RSI: OJ=F: RSI needs at least 15 prices, got 10. (keeping 50)",
        )
        assert kv_store.get(KEY_LAST_RSI) is None

    def test_both_sources_failed(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        report = _sync(kv_store, state, weather_status=503, price_status=503).run(now=NOW)
        assert len(report.errors) == 2
        assert load_last_sync(kv_store)["errors"] == list(report.errors)

    def test_nan_temperature_keeps_previous_value(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        _sync(kv_store, state).run(now=NOW)

        body = (
            b'{"current": {"temperature_2m": NaN, "relative_humidity_2m": 85.0,'
            b' "wind_speed_10m": 4.0, "weather_code": 0}}'
        )

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.open-meteo.com":
                return httpx.Response(
                    200, content=body, headers={"content-type": "application/json"}
                )
            return httpx.Response(200, json=_chart(RISING))

        sync = LiveDataSync(kv_store, state, transport=httpx.MockTransport(handler))
        report = sync.run(now=LATER)

        assert report.outcome.succeeded is False
        assert state.parameters.current_temp == 27.0
        assert any("non-finite" in e for e in report.errors)
        assert last_synced_at(kv_store) == NOW
