"""
The current parameter set — the single source the evaluator reads from.

Two kinds of fields live here:

  - **Manual controls** (inventory, La Niña, hurricane + proximity, Brazil
    rainfall, month): set only by the operator via ``set-params``. A live
    sync never overwrites them.
  - **Live fields** (temperature, RSI): refreshed by the live-data sync;
    ``hours_below_28`` is pushed in by the frost tracker.

The model is frozen. ``DashboardState`` replaces it wholesale on every
update so no reader ever sees a half-applied change.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from citrus_signal.models.market import MarketContext, SignalInput
from citrus_signal.utils.time_utils import utcnow

MANUAL_FIELDS = frozenset({
    "current_inventory",
    "is_la_nina",
    "is_hurricane_active",
    "hurricane_center_far_from_polk",
    "brazil_rainfall_index",
    "current_month",
})
LIVE_FIELDS = frozenset({"current_temp", "rsi_value"})
TRACKER_FIELDS = frozenset({"hours_below_28"})


def _current_month() -> int:
    return utcnow().month


class ParameterSet(BaseModel):
    """Operator-held and live-synced inputs for the signal evaluator.

    Defaults mirror a quiet market: 45°F, no frost exposure, 50M gallons of
    inventory (neutral band), no context flags, neutral RSI.
    """

    model_config = ConfigDict(frozen=True)

    current_temp: float = 45.0
    hours_below_28: float = Field(default=0.0, ge=0.0)
    current_inventory: float = Field(default=50.0, ge=0.0)
    rsi_value: float = Field(default=50.0, ge=0.0, le=100.0)
    is_la_nina: bool = False
    is_hurricane_active: bool = False
    hurricane_center_far_from_polk: bool = False
    brazil_rainfall_index: float = 0.0
    current_month: int = Field(default_factory=_current_month, ge=1, le=12)

    def market_context(self) -> MarketContext:
        return MarketContext(
            is_la_nina=self.is_la_nina,
            is_hurricane_active=self.is_hurricane_active,
            hurricane_center_far_from_polk=self.hurricane_center_far_from_polk,
            brazil_rainfall_index=self.brazil_rainfall_index,
            current_month=self.current_month,
        )

    def to_signal_input(self) -> SignalInput:
        """Build the immutable evaluator input for the current values."""
        return SignalInput(
            current_temp=self.current_temp,
            hours_below_28=self.hours_below_28,
            current_inventory=self.current_inventory,
            market_context=self.market_context(),
            rsi_value=self.rsi_value,
        )

    def with_updates(self, **changes: Any) -> "ParameterSet":
        """Return a validated copy with ``changes`` applied.

        Unlike ``model_copy(update=...)`` this re-runs field validation, so
        an out-of-range value raises ``pydantic.ValidationError``.

        Raises:
            KeyError: If a change names an unknown field.
        """
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise KeyError(f"Unknown parameter(s): {', '.join(sorted(unknown))}")
        return type(self).model_validate({**self.model_dump(), **changes})
