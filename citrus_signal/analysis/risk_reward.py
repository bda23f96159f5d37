"""
Risk / reward parameters for a recommended action (advisory only).

Direction
---------
    BUY / LONG / DOUBLE / INCREASE -> LONG
    SELL / SHORT / REDUCE          -> SHORT
    anything else                  -> NEUTRAL

Stop / target distances (percent of entry, 1:3 ratio)
-----------------------------------------------------
    base               2.0 / 6.0
    hurricane active   2.5 / 7.5   (wider stops for storm volatility)
    La Niña only       2.2 / 6.6

NEUTRAL uses a symmetric ±2% placeholder band.

    expected_value = p * reward - (1 - p) * risk

Prices are in whatever unit the caller passes (cents per pound for OJ).
"""

from __future__ import annotations

from dataclasses import dataclass

DIRECTION_LONG = "LONG"
DIRECTION_SHORT = "SHORT"
DIRECTION_NEUTRAL = "NEUTRAL"


@dataclass(frozen=True)
class TradeParameters:
    """Entry, stop, target and summary statistics for one position."""

    direction:         str
    entry_price:       float
    stop_loss:         float
    take_profit:       float
    risk_amount:       float
    reward_amount:     float
    risk_percent:      float
    reward_percent:    float
    risk_reward_ratio: float
    expected_value:    float


def position_direction(recommended_action: str) -> str:
    action = recommended_action.upper()
    if any(k in action for k in ("BUY", "LONG", "DOUBLE", "INCREASE")):
        return DIRECTION_LONG
    if any(k in action for k in ("SELL", "SHORT", "REDUCE")):
        return DIRECTION_SHORT
    return DIRECTION_NEUTRAL


def _distances(is_hurricane_active: bool, is_la_nina_active: bool) -> tuple[float, float]:
    if is_hurricane_active:
        return 2.5, 7.5
    if is_la_nina_active:
        return 2.2, 6.6
    return 2.0, 6.0


def compute_trade_parameters(
    entry_price: float,
    recommended_action: str,
    win_probability: float,
    is_hurricane_active: bool = False,
    is_la_nina_active: bool = False,
) -> TradeParameters:
    """Compute stop-loss / take-profit levels and expected value.

    Raises:
        ValueError: If ``entry_price`` is not positive.
    """
    if entry_price <= 0:
        raise ValueError(f"entry_price must be positive, got {entry_price}.")

    direction = position_direction(recommended_action)
    stop_pct, target_pct = _distances(is_hurricane_active, is_la_nina_active)

    if direction == DIRECTION_LONG:
        stop = entry_price * (1 - stop_pct / 100)
        target = entry_price * (1 + target_pct / 100)
        risk = entry_price - stop
        reward = target - entry_price
    elif direction == DIRECTION_SHORT:
        stop = entry_price * (1 + stop_pct / 100)
        target = entry_price * (1 - target_pct / 100)
        risk = stop - entry_price
        reward = entry_price - target
    else:
        stop_pct = target_pct = 2.0
        stop = entry_price * 0.98
        target = entry_price * 1.02
        risk = reward = entry_price * 0.02

    ev = win_probability * reward - (1 - win_probability) * risk

    return TradeParameters(
        direction=direction,
        entry_price=entry_price,
        stop_loss=round(stop, 2),
        take_profit=round(target, 2),
        risk_amount=round(risk, 2),
        reward_amount=round(reward, 2),
        risk_percent=round(stop_pct, 1),
        reward_percent=round(target_pct, 1),
        risk_reward_ratio=round(reward / risk, 1),
        expected_value=round(ev, 2),
    )
