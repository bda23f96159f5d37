"""
Live-data reconciler — merges a fetched snapshot into the parameter set.

Only the live fields are ever written by a sync:

  - ``current_temp``  when the weather fetch produced a temperature
  - ``rsi_value``     when the price history produced an RSI

Inventory, the La Niña / hurricane toggles, the Brazil rainfall index and
the month stay under manual control and are copied through untouched.

Failures never block the rest of the sync: a failed source keeps its
previous value and contributes one error annotation to the outcome.

Sync status classification
--------------------------
  "unavailable" — never synced (no live data has ever been obtained)
  "fresh"       — age <  stale_after (30 minutes by default)
  "stale"       — age >= stale_after; a display warning only, the values
                  are still used by the evaluator
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from citrus_signal.models.parameters import ParameterSet
from citrus_signal.utils.time_utils import utcnow

DEFAULT_STALE_AFTER = timedelta(minutes=30)


# ── Status enum ───────────────────────────────────────────────────────────────


class SyncStatus(str, Enum):
    """How current the live fields of the parameter set are."""

    UNAVAILABLE = "unavailable"  # No successful sync yet
    FRESH       = "fresh"        # Synced within the stale window
    STALE       = "stale"        # Older than the stale window


# ── Types ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LiveSnapshot:
    """One round of fetched live values.

    A value of ``None`` means the corresponding fetch failed; the matching
    ``*_error`` field carries the reason.
    """

    temperature_f: Optional[float] = None
    rsi:           Optional[float] = None
    weather_error: Optional[str] = None
    rsi_error:     Optional[str] = None


@dataclass(frozen=True)
class SyncOutcome:
    """Result of reconciling a snapshot with the current parameters.

    Attributes:
        parameters:          Merged parameter set (manual fields unchanged).
        synced_at:           Timestamp of the last successful sync; stamped
                             with ``now`` when a temperature was obtained,
                             otherwise the previous value is kept.
        temperature_updated: ``current_temp`` was overwritten.
        rsi_updated:         ``rsi_value`` was overwritten.
        errors:              Annotations for each failed source.
    """

    parameters:          ParameterSet
    synced_at:           Optional[datetime]
    temperature_updated: bool = False
    rsi_updated:         bool = False
    errors:              tuple[str, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return self.temperature_updated


# ── Reconcile ─────────────────────────────────────────────────────────────────


def reconcile(
    current: ParameterSet,
    snapshot: LiveSnapshot,
    now: Optional[datetime] = None,
    previous_synced_at: Optional[datetime] = None,
) -> SyncOutcome:
    """Merge ``snapshot`` into ``current`` without touching manual controls.

    Args:
        current:            The parameter set before the sync.
        snapshot:           Freshly fetched values (``None`` = fetch failed).
        now:                Sync time. Defaults to ``utcnow()``.
        previous_synced_at: Last successful sync time, kept when this sync
                            obtains no temperature.

    Returns:
        ``SyncOutcome`` with the merged parameters and error annotations.
    """
    now = now or utcnow()
    updates: dict[str, float] = {}
    errors: list[str] = []

    if snapshot.temperature_f is not None:
        updates["current_temp"] = float(snapshot.temperature_f)
    else:
        errors.append(
            f"Weather: {snapshot.weather_error or 'no temperature returned'} "
            f"(keeping {current.current_temp:g}F)"
        )

    if snapshot.rsi is not None:
        updates["rsi_value"] = float(snapshot.rsi)
    else:
        errors.append(
            f"RSI: {snapshot.rsi_error or 'no RSI returned'} "
            f"(keeping {current.rsi_value:g})"
        )

    merged = current.with_updates(**updates) if updates else current
    temperature_updated = "current_temp" in updates

    return SyncOutcome(
        parameters=merged,
        synced_at=now if temperature_updated else previous_synced_at,
        temperature_updated=temperature_updated,
        rsi_updated="rsi_value" in updates,
        errors=tuple(errors),
    )


# ── Staleness ─────────────────────────────────────────────────────────────────


def sync_status(
    synced_at: Optional[datetime],
    now: Optional[datetime] = None,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
) -> SyncStatus:
    """Classify the age of the last successful sync."""
    if synced_at is None:
        return SyncStatus.UNAVAILABLE
    now = now or utcnow()
    if now - synced_at >= stale_after:
        return SyncStatus.STALE
    return SyncStatus.FRESH


def sync_age_minutes(synced_at: Optional[datetime], now: Optional[datetime] = None) -> Optional[float]:
    """Minutes since ``synced_at``, or ``None`` when never synced."""
    if synced_at is None:
        return None
    now = now or utcnow()
    return max((now - synced_at).total_seconds() / 60.0, 0.0)
