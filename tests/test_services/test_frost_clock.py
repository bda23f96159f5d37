"""
Tests for scheduler.py — FrostClockDaemon.

The sleep function is replaced by one that advances the fake clock, so a
"four hour" freeze runs in a handful of loop iterations.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from citrus_signal.db.repositories.kv_repo import KeyValueRepository
from citrus_signal.engine.frost_tracker import FrostExposureTracker
from citrus_signal.ingestion.http import FetchError
from citrus_signal.scheduler import FrostClockDaemon
from citrus_signal.services.state import DashboardState


class _StubSync:
    """Counts rounds; optionally raises."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls = 0
        self.error = error

    def run(self, now=None):  # noqa: ANN001
        self.calls += 1
        if self.error is not None:
            raise self.error
        return SimpleNamespace(outcome=SimpleNamespace(succeeded=True))


def _daemon(kv_store, clock, tick_seconds: float = 1.0, sync=None, **kwargs) -> FrostClockDaemon:
    state = DashboardState(kv_store)
    tracker = FrostExposureTracker(kv_store, clock=clock)
    return FrostClockDaemon(
        tracker,
        state,
        sync=sync,
        tick_seconds=tick_seconds,
        sleep=clock.advance,
        **kwargs,
    )


class TestTicks:
    def test_freezing_ticks_accumulate(self, kv_store: KeyValueRepository, clock) -> None:
        daemon = _daemon(kv_store, clock)
        daemon.state.set_temperature(25.0)

        daemon.start(max_ticks=3)

        assert daemon.ticks == 3
        assert daemon.tracker.is_tracking is True
        assert daemon.tracker.accumulated_seconds == 2
        assert daemon.state.parameters.hours_below_28 == round(2 / 3600, 4)

    def test_mild_weather_stays_idle(self, kv_store: KeyValueRepository, clock) -> None:
        daemon = _daemon(kv_store, clock)
        daemon.start(max_ticks=5)
        assert daemon.tracker.is_tracking is False
        assert daemon.state.parameters.hours_below_28 == 0.0

    def test_alert_after_four_hours_updates_signal(
        self, kv_store: KeyValueRepository, clock
    ) -> None:
        daemon = _daemon(kv_store, clock, tick_seconds=3600.0)
        daemon.state.set_temperature(25.0)

        daemon.start(max_ticks=5)

        assert daemon.tracker.alert_shown is True
        assert daemon.state.parameters.hours_below_28 == 4.0
        result = daemon.state.evaluate()
        assert result.recommended_action == "Hold Position"
        assert result.win_probability == 0.76

    def test_tick_reads_external_temperature_edit(
        self, kv_store: KeyValueRepository, clock
    ) -> None:
        daemon = _daemon(kv_store, clock)
        DashboardState(kv_store).set_temperature(20.0)
        result = daemon.tick()
        assert result.transition == "started"

    def test_stop_ends_loop(self, kv_store: KeyValueRepository, clock) -> None:
        daemon = _daemon(kv_store, clock)
        daemon._sleep = lambda seconds: daemon.stop()
        daemon.start()
        assert daemon.ticks == 1

    def test_tick_seconds_must_be_positive(self, kv_store: KeyValueRepository, clock) -> None:
        with pytest.raises(ValueError, match="tick_seconds"):
            _daemon(kv_store, clock, tick_seconds=0)


class TestSyncScheduling:
    def test_initial_sync_runs_once(self, kv_store: KeyValueRepository, clock) -> None:
        sync = _StubSync()
        daemon = _daemon(kv_store, clock, sync=sync)
        daemon.start(max_ticks=3)
        assert sync.calls == 1
        assert daemon.syncs == 1

    def test_skip_initial_sync(self, kv_store: KeyValueRepository, clock) -> None:
        sync = _StubSync()
        daemon = _daemon(kv_store, clock, sync=sync, skip_initial_sync=True)
        daemon.start(max_ticks=3)
        assert sync.calls == 0

    def test_failed_sync_does_not_stop_daemon(self, kv_store: KeyValueRepository, clock) -> None:
        sync = _StubSync(error=FetchError("open_meteo", "HTTP 503"))
        daemon = _daemon(kv_store, clock, sync=sync)
        daemon.start(max_ticks=2)
        assert sync.calls == 1
        assert daemon.syncs == 0
        assert daemon.ticks == 2

    def test_run_sync_without_service(self, kv_store: KeyValueRepository, clock) -> None:
        assert _daemon(kv_store, clock).run_sync() is False
