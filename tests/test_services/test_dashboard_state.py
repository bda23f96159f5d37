"""
Tests for services/state.py — DashboardState, the single update path.

Covers:
  - Defaults when nothing is stored; loading a persisted parameter set
  - set_manual(): writes manual controls, rejects live / tracker fields
  - Every commit persists parameters and a last_signal snapshot
  - apply_snapshot(): live values replace, manual controls survive, including
    edits committed by another process while the fetch was in flight
  - set_hours_below(): no write when unchanged
  - reload(): picks up edits written by another process
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
from pydantic import ValidationError

from citrus_signal.db.connection import open_store
from citrus_signal.db.repositories.kv_repo import (
    KEY_LAST_SIGNAL,
    KEY_PARAMETERS,
    KeyValueRepository,
)
from citrus_signal.engine.reconciler import LiveSnapshot
from citrus_signal.models.parameters import ParameterSet
from citrus_signal.services.state import DashboardState, signal_snapshot

NOW = datetime(2026, 1, 12, 6, 0, 0, tzinfo=timezone.utc)


class TestConstruction:
    def test_defaults_when_store_empty(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        assert state.parameters.current_temp == 45.0
        assert state.parameters.current_inventory == 50.0
        assert state.evaluate().recommended_action == "Monitor"
        assert kv_store.get(KEY_PARAMETERS) is None  # construction never writes

    def test_loads_persisted_parameters(
        self, kv_store: KeyValueRepository, sample_parameters: ParameterSet
    ) -> None:
        kv_store.set(KEY_PARAMETERS, sample_parameters.model_dump())
        state = DashboardState(kv_store)
        assert state.parameters == sample_parameters


class TestSetManual:
    def test_updates_and_persists(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        result = state.set_manual(current_inventory=30.0, is_la_nina=True)

        assert state.parameters.current_inventory == 30.0
        assert result.recommended_action == "Double Position"
        assert result.win_probability == 0.95
        assert kv_store.get(KEY_PARAMETERS)["current_inventory"] == 30.0
        snapshot = kv_store.get(KEY_LAST_SIGNAL)
        assert snapshot["recommended_action"] == "Double Position"
        assert "computed_at" in snapshot

    @pytest.mark.parametrize("field", ["current_temp", "rsi_value", "hours_below_28"])
    def test_rejects_non_manual_fields(self, kv_store: KeyValueRepository, field: str) -> None:
        state = DashboardState(kv_store)
        with pytest.raises(KeyError, match="Not a manual control"):
            state.set_manual(**{field: 10.0})
        assert kv_store.get(KEY_PARAMETERS) is None

    def test_out_of_range_rejected(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        with pytest.raises(ValidationError):
            state.set_manual(current_month=13)
        assert state.parameters.current_month != 13


class TestApplySnapshot:
    def test_live_values_replace_manual_survive(
        self, kv_store: KeyValueRepository, sample_parameters: ParameterSet
    ) -> None:
        kv_store.set(KEY_PARAMETERS, sample_parameters.model_dump())
        state = DashboardState(kv_store)

        outcome = state.apply_snapshot(LiveSnapshot(temperature_f=26.0, rsi=64.0), now=NOW)

        assert outcome.succeeded is True
        assert outcome.synced_at == NOW
        params = state.parameters
        assert params.current_temp == 26.0
        assert params.rsi_value == 64.0
        assert params.current_inventory == 30.0
        assert params.is_hurricane_active is True
        assert kv_store.get(KEY_PARAMETERS)["current_temp"] == 26.0

    def test_failed_fetch_keeps_previous_values(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        state.set_temperature(30.0)
        earlier = datetime(2026, 1, 12, 5, 0, 0, tzinfo=timezone.utc)

        outcome = state.apply_snapshot(
            LiveSnapshot(weather_error="open_meteo: HTTP 503", rsi_error="offline"),
            now=NOW,
            previous_synced_at=earlier,
        )

        assert outcome.succeeded is False
        assert outcome.synced_at == earlier
        assert state.parameters.current_temp == 30.0
        assert len(outcome.errors) == 2
        assert "keeping 30F" in outcome.errors[0]

    def test_next_evaluation_sees_synced_temperature(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        state.apply_snapshot(LiveSnapshot(temperature_f=25.0, rsi=50.0), now=NOW)
        assert state.evaluate().insight.frost_condition.startswith("Pre-frost volatility")

    def test_manual_edit_from_other_process_survives_sync(self, tmp_path: Path) -> None:
        db_path = str(tmp_path / "shared.db")
        with open_store(db_path, wal_mode=False) as daemon_store, \
                open_store(db_path, wal_mode=False) as cli_store:
            daemon = DashboardState(daemon_store)
            DashboardState(cli_store).set_manual(current_inventory=30.0, is_hurricane_active=True)

            daemon.apply_snapshot(LiveSnapshot(temperature_f=40.0, rsi=60.0), now=NOW)

            stored = cli_store.get(KEY_PARAMETERS)
            assert stored["current_inventory"] == 30.0
            assert stored["is_hurricane_active"] is True
            assert stored["current_temp"] == 40.0
            assert stored["rsi_value"] == 60.0
            assert daemon.parameters.current_inventory == 30.0


class TestSetHoursBelow:
    def test_unchanged_is_not_written(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        assert state.set_hours_below(0.0) is None
        assert kv_store.get(KEY_PARAMETERS) is None

    def test_change_commits_rounded_value(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        result = state.set_hours_below(4.123456)
        assert result is not None
        assert state.parameters.hours_below_28 == 4.1235
        assert state.set_hours_below(4.12349) is None


class TestReload:
    def test_reload_picks_up_external_edit(self, kv_store: KeyValueRepository) -> None:
        daemon_view = DashboardState(kv_store)
        DashboardState(kv_store).set_manual(current_inventory=60.0)

        assert daemon_view.parameters.current_inventory == 50.0
        daemon_view.reload()
        assert daemon_view.parameters.current_inventory == 60.0
        assert daemon_view.evaluate().recommended_action == "Reduce Position"

    def test_reload_with_empty_store_keeps_current(self, kv_store: KeyValueRepository) -> None:
        state = DashboardState(kv_store)
        before = state.parameters
        assert state.reload() is before


def test_signal_snapshot_is_json_ready(kv_store: KeyValueRepository) -> None:
    result = DashboardState(kv_store).evaluate()
    snapshot = signal_snapshot(result, computed_at=NOW)
    assert snapshot["computed_at"] == "2026-01-12T06:00:00Z"
    assert snapshot["win_probability"] == 0.5
    assert isinstance(snapshot["insight"]["evidence"], list)
