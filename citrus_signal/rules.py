"""
Market rule table — frost thresholds, inventory bands and regime win rates.

The rule table is a static JSON document (``config/market_rules.json``)
loaded once at process start and never mutated. Every number the signal
evaluator uses comes from here; nothing is learned or fitted.

Schema::

    {
      "theme": "Orange Juice Trading",
      "frost_rule":            {"critical_temp_f": 28, "min_duration_hours": 4,
                                "target_counties": ["Polk", ...]},
      "inventory_multipliers": {"under_35m": 2.0, "35_45m": 1.5, "over_55m": 0.7},
      "win_rates":             {"real_frost": 0.76, "volatility_pre_frost": 0.79, ...},
      "la_nina_amplifier": 1.4,
      "neutral_win_rate": 0.5,
      "max_win_probability": 0.95
    }

The 45–55M inventory band has no entry: it is the implicit neutral band
with multiplier 1.0.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class FrostRule(BaseModel):
    """Temperature threshold and minimum exposure for a damaging frost."""

    model_config = ConfigDict(frozen=True)

    critical_temp_f: float = 28.0
    min_duration_hours: float = 4.0
    target_counties: tuple[str, ...] = ("Polk", "Highlands", "Lake")

    @field_validator("min_duration_hours")
    @classmethod
    def validate_duration(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"min_duration_hours must be positive, got {v}.")
        return v


class InventoryMultipliers(BaseModel):
    """Win-probability multipliers per inventory band (millions of gallons)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    under_35m: float = 2.0
    between_35_45m: float = Field(default=1.5, alias="35_45m")
    over_55m: float = 0.7
    neutral: float = 1.0


class WinRates(BaseModel):
    """Fixed illustrative base win rates, one per regime / strategy."""

    model_config = ConfigDict(frozen=True)

    la_nina_double_hit: float = 0.79
    volatility_pre_frost: float = 0.79
    real_frost: float = 0.76
    hurricane_false_alarm: float = 0.82
    brazil_drought: float = 0.85
    rsi_take_profit: float = 0.72

    @model_validator(mode="after")
    def validate_rates(self) -> "WinRates":
        for name, rate in self.model_dump().items():
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f"win rate '{name}' must be in [0, 1], got {rate}.")
        return self


# Display names for the strategy summary table.
STRATEGY_NAMES: dict[str, str] = {
    "la_nina_double_hit":    "La Niña Double Hit",
    "volatility_pre_frost":  "Pre-Frost Volatility",
    "real_frost":            "Real Frost Event",
    "hurricane_false_alarm": "Hurricane False Alarm",
    "brazil_drought":        "Brazil Drought",
    "rsi_take_profit":       "RSI Take Profit",
}


class MarketRules(BaseModel):
    """Complete, immutable rule table consumed by the signal evaluator.

    Attributes:
        theme:                 Free-text label for the rule set.
        frost_rule:            Critical temperature and minimum duration.
        inventory_multipliers: Multiplier per inventory band.
        win_rates:             Base win rate per regime.
        la_nina_amplifier:     Multiplicative La Niña modifier (never an override).
        neutral_win_rate:      Baseline when no frost regime applies.
        max_win_probability:   Hard cap on any presented probability.
    """

    model_config = ConfigDict(frozen=True)

    theme: str = "Orange Juice Trading"
    frost_rule: FrostRule = FrostRule()
    inventory_multipliers: InventoryMultipliers = InventoryMultipliers()
    win_rates: WinRates = WinRates()
    la_nina_amplifier: float = 1.4
    neutral_win_rate: float = 0.5
    max_win_probability: float = 0.95

    @field_validator("max_win_probability", "neutral_win_rate")
    @classmethod
    def validate_probability(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"Probability must be in [0, 1], got {v}.")
        return v

    @field_validator("la_nina_amplifier")
    @classmethod
    def validate_amplifier(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"la_nina_amplifier must be positive, got {v}.")
        return v

    def strategy_win_rates(self) -> list[tuple[str, float]]:
        """Return ``(display_name, win_rate)`` pairs sorted by win rate, highest first."""
        rates = self.win_rates.model_dump()
        pairs = [(STRATEGY_NAMES.get(key, key), rate) for key, rate in rates.items()]
        return sorted(pairs, key=lambda p: p[1], reverse=True)


DEFAULT_RULES = MarketRules()


def load_market_rules(path: Optional[Union[str, Path]] = None) -> MarketRules:
    """Load the rule table from a JSON document.

    Args:
        path: Path to a ``market_rules.json`` file. ``None`` returns the
            built-in ``DEFAULT_RULES``.

    Returns:
        Validated, frozen ``MarketRules``.

    Raises:
        FileNotFoundError: If ``path`` is given but does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        pydantic.ValidationError: If the document does not match the schema.
    """
    if path is None:
        return DEFAULT_RULES

    rules_path = Path(path)
    if not rules_path.exists():
        raise FileNotFoundError(f"Market rules file not found: {rules_path}")

    with open(rules_path, encoding="utf-8") as f:
        raw = json.load(f)

    rules = MarketRules.model_validate(raw)
    logger.debug(
        "Loaded market rules '%s' from %s (critical=%.1fF, min_hours=%.1f)",
        rules.theme,
        rules_path,
        rules.frost_rule.critical_temp_f,
        rules.frost_rule.min_duration_hours,
    )
    return rules
