"""
Evaluator input models — market context bundle and the full signal input.

Both models are frozen (immutable) after construction. A new
``SignalInput`` is built every time any parameter changes; the evaluator
never sees a partially-updated input.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MarketContext(BaseModel):
    """Market-context flags supplied by the operator (or advisory feeds).

    Attributes:
        is_la_nina:                     La Niña conditions active (ONI < -0.5 upstream).
        is_hurricane_active:            A named storm threatens Florida.
        hurricane_center_far_from_polk: Storm centre > 100 mi from Polk County.
        brazil_rainfall_index:          SPI-3 proxy for São Paulo rainfall.
        current_month:                  Calendar month, 1..12.
    """

    model_config = ConfigDict(frozen=True)

    is_la_nina: bool = False
    is_hurricane_active: bool = False
    hurricane_center_far_from_polk: bool = False
    brazil_rainfall_index: float = 0.0
    current_month: int = Field(default=1, ge=1, le=12)


class SignalInput(BaseModel):
    """Everything the evaluator needs for one decision.

    Attributes:
        current_temp:      Current temperature in °F.
        hours_below_28:    Continuous hours at or below the critical temperature.
        current_inventory: FCOJ inventory in millions of gallons.
        market_context:    La Niña / hurricane / drought bundle.
        rsi_value:         14-day RSI, 0..100. Neutral 50 when unknown.
    """

    model_config = ConfigDict(frozen=True)

    current_temp: float
    hours_below_28: float = Field(default=0.0, ge=0.0)
    current_inventory: float
    market_context: MarketContext = MarketContext()
    rsi_value: float = Field(default=50.0, ge=0.0, le=100.0)

    @field_validator("current_inventory")
    @classmethod
    def validate_inventory(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"current_inventory must be non-negative, got {v}.")
        return v
