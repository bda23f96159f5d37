"""
Persisted frost exposure tracker state.

Stored as JSON under the ``frost_tracker_state`` key. When ``is_tracking``
is true, ``last_update_time`` is the epoch second up to which
``accumulated_seconds`` has been credited; reloading adds
``now - last_update_time`` before any new tick.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class FrostTrackerState(BaseModel):
    """Accumulated below-threshold exposure for the current episode.

    Attributes:
        accumulated_seconds: Whole seconds spent at or below the critical
                             temperature in this episode.
        last_update_time:    Epoch seconds of the last credited instant.
        is_tracking:         ``True`` while an episode is in progress.
        alert_shown:         One-shot critical-exposure alert already fired.
    """

    accumulated_seconds: int = Field(default=0, ge=0)
    last_update_time: float = 0.0
    is_tracking: bool = False
    alert_shown: bool = False

    @property
    def hours(self) -> float:
        return self.accumulated_seconds / 3600.0
