"""
Relative Strength Index (Wilder) over daily closing prices.

Algorithm (period ``n``, default 14)
------------------------------------
    1. deltas      = close[i] - close[i-1]
    2. gains       = max(delta, 0);  losses = max(-delta, 0)
    3. seed        avg_gain / avg_loss = simple mean over the first n deltas
    4. smoothing   avg = (avg * (n - 1) + value) / n  for each later delta
    5. avg_loss == 0            -> 100.0
       otherwise RS = avg_gain / avg_loss, RSI = 100 - 100 / (1 + RS)
    6. round half-up to an integer (returned as float)

``compute_rsi`` is pure and expects finite numbers only. Price feeds
contain ``None`` / NaN for non-trading days; run them through
``clean_closes()`` first.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

DEFAULT_PERIOD = 14
NEUTRAL_RSI = 50.0
OVERBOUGHT = 70.0
OVERSOLD = 30.0


class InsufficientDataError(ValueError):
    """Raised when a price series is too short for the requested RSI period."""

    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            f"RSI needs at least {required} prices, got {available}."
        )


def clean_closes(values: Iterable[Any]) -> list[float]:
    """Drop ``None``, NaN, infinities and non-numeric entries, preserving order."""
    cleaned: list[float] = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            continue
        if not math.isfinite(v):
            continue
        cleaned.append(float(v))
    return cleaned


def _round_half_up(x: float) -> float:
    return float(math.floor(x + 0.5))


def compute_rsi(prices: Sequence[float], period: int = DEFAULT_PERIOD) -> float:
    """Compute the Wilder RSI of ``prices``.

    Args:
        prices: Ordered closing prices, oldest first. All entries finite.
        period: Smoothing period (default 14).

    Returns:
        RSI in ``[0, 100]``, rounded to the nearest integer.

    Raises:
        ValueError:            If ``period`` is not positive.
        InsufficientDataError: If ``len(prices) < period + 1``.
    """
    if period < 1:
        raise ValueError(f"period must be positive, got {period}.")
    if len(prices) < period + 1:
        raise InsufficientDataError(len(prices), period + 1)

    deltas = [prices[i] - prices[i - 1] for i in range(1, len(prices))]
    gains = [d if d > 0 else 0.0 for d in deltas]
    losses = [-d if d < 0 else 0.0 for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return _round_half_up(100.0 - 100.0 / (1.0 + rs))


def rsi_zone(rsi: float) -> str:
    """Classify an RSI reading as ``oversold`` / ``overbought`` / ``neutral``."""
    if rsi <= OVERSOLD:
        return "oversold"
    if rsi >= OVERBOUGHT:
        return "overbought"
    return "neutral"
