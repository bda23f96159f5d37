"""
Evaluator output models.

``SignalResult`` is derived data: it is recomputed from a ``SignalInput``
on every change and never treated as authoritative state. The only copy
that is ever stored is a display snapshot under the ``last_signal`` key.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Recommended-action labels. Overrides first, then baseline actions.
ACTION_BRAZIL_DROUGHT = "STRONG LONG (Brazil Drought)"
ACTION_TAKE_PROFIT = "TAKE PROFIT / SELL"
ACTION_FALSE_ALARM = "SELL/SHORT (False Alarm)"
ACTION_DOUBLE = "Double Position"
ACTION_INCREASE = "Increase Position"
ACTION_REDUCE = "Reduce Position"
ACTION_HOLD = "Hold Position"
ACTION_MONITOR = "Monitor"


class SignalInsight(BaseModel):
    """Structured explanation of how a win probability was reached.

    Every numeric output of the evaluator can be traced back to one of
    these fields; the blueprint memo renders them verbatim.

    Attributes:
        frost_condition:      Which frost regime (or override) fired.
        inventory_condition:  Which inventory band matched.
        base_win_rate:        Base rate taken from the rule table.
        inventory_multiplier: Multiplier applied for the inventory band.
        la_nina_effect:       La Niña amplifier note, if it applied.
        hurricane_effect:     Hurricane false-alarm note, if it fired.
        drought_effect:       Brazil drought note, if it fired.
        rsi_effect:           RSI take-profit note, if it fired.
        override:             Name of the override that short-circuited, if any.
        evidence:             Ordered, human-readable audit trail.
    """

    model_config = ConfigDict(frozen=True)

    frost_condition: str
    inventory_condition: str
    base_win_rate: float
    inventory_multiplier: float
    la_nina_effect: Optional[str] = None
    hurricane_effect: Optional[str] = None
    drought_effect: Optional[str] = None
    rsi_effect: Optional[str] = None
    override: Optional[str] = None
    evidence: tuple[str, ...] = ()


class SignalFlags(BaseModel):
    """Boolean flags describing which market-context signals are in play."""

    model_config = ConfigDict(frozen=True)

    is_hurricane_false_alarm: bool = False
    is_la_nina_active: bool = False
    is_brazil_drought: bool = False
    is_rsi_overbought: bool = False


class SignalResult(BaseModel):
    """Win probability, recommended action, insight and flags for one input."""

    model_config = ConfigDict(frozen=True)

    win_probability: float = Field(ge=0.0, le=1.0)
    recommended_action: str
    insight: SignalInsight
    flags: SignalFlags = SignalFlags()

    @property
    def is_override(self) -> bool:
        """True when one of the short-circuiting overrides produced this result."""
        return self.insight.override is not None
