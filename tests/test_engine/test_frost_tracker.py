"""
Tests for engine/frost_tracker.py — FrostExposureTracker.

Covers:
  - Idle -> Tracking at or below 28F; stays Idle above it
  - One-shot alert at the 4-hour mark, not again until reset
  - Restart reconstruction: offline time credited on load
  - Hysteresis band (28-32F) keeps the episode alive; > 32F resets
  - Manual reset regardless of temperature
  - Whole-second crediting with fractional carry; backwards clock
  - Persistence through the key-value store
"""

from __future__ import annotations

from typing import Any

import pytest

from citrus_signal.db.repositories.kv_repo import KEY_FROST_TRACKER
from citrus_signal.engine.frost_tracker import (
    STATE_IDLE,
    STATE_TRACKING,
    TRANSITION_RESET,
    TRANSITION_STARTED,
    FrostExposureTracker,
)
from citrus_signal.rules import DEFAULT_RULES, FrostRule, MarketRules


class _DictStore:
    """Minimal get/set store; keeps long tick loops fast."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.writes = 0

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value
        self.writes += 1


class TestTransitions:
    def test_starts_idle(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        assert tracker.is_tracking is False
        assert tracker.accumulated_seconds == 0

    def test_cold_reading_starts_tracking(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        result = tracker.update(28.0)
        assert result.state == STATE_TRACKING
        assert result.transition == TRANSITION_STARTED
        assert kv_store.get(KEY_FROST_TRACKER)["is_tracking"] is True
        assert kv_store.get(KEY_FROST_TRACKER)["last_update_time"] == clock.now

    def test_mild_reading_stays_idle(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        result = tracker.update(30.0)
        assert result.state == STATE_IDLE
        assert result.transition is None

    def test_tick_accumulates_elapsed_seconds(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(20.0)
        clock.advance(5)
        result = tracker.update(20.0)
        assert result.accumulated_seconds == 5
        assert kv_store.get(KEY_FROST_TRACKER)["accumulated_seconds"] == 5

    def test_hysteresis_band_keeps_tracking(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(25.0)
        clock.advance(60)
        result = tracker.update(31.0)
        assert result.state == STATE_TRACKING
        assert result.accumulated_seconds == 60
        clock.advance(60)
        result = tracker.update(32.0)
        assert result.state == STATE_TRACKING
        assert result.accumulated_seconds == 120

    def test_warming_above_reset_returns_to_idle(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(25.0)
        clock.advance(600)
        tracker.update(25.0)
        clock.advance(1)
        result = tracker.update(32.5)
        assert result.state == STATE_IDLE
        assert result.transition == TRANSITION_RESET
        assert result.accumulated_seconds == 0
        assert kv_store.get(KEY_FROST_TRACKER)["accumulated_seconds"] == 0

    def test_idle_then_cold_restarts_from_zero(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(20.0)
        clock.advance(100)
        tracker.update(40.0)
        clock.advance(1000)
        tracker.update(20.0)
        clock.advance(10)
        assert tracker.update(20.0).accumulated_seconds == 10

    def test_reset_temp_below_critical_rejected(self, kv_store) -> None:
        with pytest.raises(ValueError, match="reset_temp_f"):
            FrostExposureTracker(kv_store, reset_temp_f=27.0)


class TestAlert:
    def test_fires_exactly_once_at_four_hours(self, clock) -> None:
        store = _DictStore()
        tracker = FrostExposureTracker(store, clock=clock)
        tracker.update(20.0)

        alerts = []
        for tick in range(1, 14_400 + 600):
            clock.advance(1)
            if tracker.update(20.0).alert_triggered:
                alerts.append(tick)

        assert alerts == [14_400]
        assert tracker.alert_shown is True
        assert tracker.hours_below >= 4.0

    def test_not_before_threshold(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(20.0)
        clock.advance(14_399)
        assert tracker.update(20.0).alert_triggered is False
        clock.advance(1)
        assert tracker.update(20.0).alert_triggered is True

    def test_fires_again_after_reset(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(20.0)
        clock.advance(4 * 3600)
        assert tracker.update(20.0).alert_triggered is True

        tracker.reset()
        assert tracker.alert_shown is False

        tracker.update(20.0)
        clock.advance(4 * 3600)
        assert tracker.update(20.0).alert_triggered is True

    def test_alert_flag_survives_restart(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(20.0)
        clock.advance(5 * 3600)
        assert tracker.update(20.0).alert_triggered is True

        clock.advance(30)
        reloaded = FrostExposureTracker(kv_store, clock=clock)
        assert reloaded.alert_shown is True
        clock.advance(1)
        assert reloaded.update(20.0).alert_triggered is False

    def test_custom_duration(self, kv_store, clock) -> None:
        rules = MarketRules(frost_rule=FrostRule(min_duration_hours=1.0))
        tracker = FrostExposureTracker(kv_store, rules, clock=clock)
        tracker.update(20.0)
        clock.advance(3600)
        assert tracker.update(20.0).alert_triggered is True


class TestRestart:
    def test_offline_time_credited_on_load(self, kv_store, clock) -> None:
        kv_store.set(KEY_FROST_TRACKER, {
            "accumulated_seconds": 1000,
            "last_update_time": clock.now - 600,
            "is_tracking": True,
            "alert_shown": False,
        })
        tracker = FrostExposureTracker(kv_store, clock=clock)
        assert tracker.accumulated_seconds == 1600
        assert kv_store.get(KEY_FROST_TRACKER)["accumulated_seconds"] == 1600
        assert kv_store.get(KEY_FROST_TRACKER)["last_update_time"] == clock.now

    def test_idle_state_not_credited(self, kv_store, clock) -> None:
        kv_store.set(KEY_FROST_TRACKER, {
            "accumulated_seconds": 0,
            "last_update_time": clock.now - 600,
            "is_tracking": False,
            "alert_shown": False,
        })
        tracker = FrostExposureTracker(kv_store, clock=clock)
        assert tracker.accumulated_seconds == 0

    def test_round_trip_through_sqlite(self, kv_store, clock) -> None:
        first = FrostExposureTracker(kv_store, clock=clock)
        first.update(22.0)
        clock.advance(120)
        first.update(22.0)

        clock.advance(600)
        second = FrostExposureTracker(kv_store, clock=clock)
        assert second.is_tracking is True
        assert second.accumulated_seconds == 720


class TestCrediting:
    def test_fractional_seconds_carried(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(20.0)
        clock.advance(0.5)
        assert tracker.update(20.0).accumulated_seconds == 0
        clock.advance(0.75)
        assert tracker.update(20.0).accumulated_seconds == 1
        clock.advance(0.75)
        assert tracker.update(20.0).accumulated_seconds == 2

    def test_backwards_clock_not_credited(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(20.0)
        clock.advance(10)
        tracker.update(20.0)
        clock.advance(-100)
        assert tracker.update(20.0).accumulated_seconds == 10
        clock.advance(5)
        assert tracker.update(20.0).accumulated_seconds == 15

    def test_state_persisted_every_tick(self, clock) -> None:
        store = _DictStore()
        tracker = FrostExposureTracker(store, clock=clock)
        tracker.update(20.0)
        before = store.writes
        for _ in range(3):
            clock.advance(1)
            tracker.update(20.0)
        assert store.writes == before + 3


class TestManualReset:
    def test_reset_while_cold(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(20.0)
        clock.advance(3600)
        tracker.update(20.0)

        result = tracker.reset()
        assert result.state == STATE_IDLE
        assert result.transition == TRANSITION_RESET
        assert tracker.accumulated_seconds == 0
        assert kv_store.get(KEY_FROST_TRACKER)["is_tracking"] is False

    def test_next_cold_tick_restarts_episode(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, clock=clock)
        tracker.update(20.0)
        tracker.reset()
        result = tracker.update(20.0)
        assert result.transition == TRANSITION_STARTED

    def test_state_property_is_a_copy(self, kv_store, clock) -> None:
        tracker = FrostExposureTracker(kv_store, DEFAULT_RULES, clock=clock)
        snapshot = tracker.state
        snapshot.accumulated_seconds = 999
        assert tracker.accumulated_seconds == 0
