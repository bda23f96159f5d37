"""
Analyst rationale: plain-language commentary on a signal.

Three sections, each derived independently:

Technical setup (RSI)
---------------------
    rsi <= OVERSOLD (30)      -> Oversold          (bullish)
    rsi >= OVERBOUGHT (70)    -> Overbought        (bearish)
    50 <= rsi < OVERBOUGHT    -> Neutral-Bullish   (neutral)
    OVERSOLD < rsi < 50       -> Neutral-Bearish   (neutral)

Fundamental drivers
-------------------
Hurricane, La Niña, inventory band and temperature each add a paragraph and
bullish / bearish weight:

    hurricane active  +3 bullish      inventory < 35     +2 bullish
    La Niña active    +2 bullish      inventory < 45     +1 bullish
    temp <= 28        +3 bullish      inventory > 55     +1 bearish
    temp <= 32        +1 bullish
    temp <= 36        +0.5 bullish

    sentiment = bullish if bullish >= 2
              = bearish if bearish >= 1 and bullish == 0
              = neutral otherwise

Verdict
-------
Keyed off the recommended action: BUY / LONG / DOUBLE / INCREASE -> strong
buy; SELL / SHORT / REDUCE -> reduce exposure; HOLD -> hold; else monitor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from citrus_signal.indicators.rsi import rsi_zone

SENTIMENT_BULLISH = "bullish"
SENTIMENT_BEARISH = "bearish"
SENTIMENT_NEUTRAL = "neutral"


@dataclass(frozen=True)
class RationaleSection:
    text:      str
    sentiment: str


@dataclass(frozen=True)
class AnalystRationale:
    technical:   RationaleSection
    fundamental: RationaleSection
    verdict:     str


def technical_setup(rsi: float) -> RationaleSection:
    r = f"{rsi:g}"
    zone = rsi_zone(rsi)
    if zone == "oversold":
        return RationaleSection(
            f"RSI is {r} (Oversold), suggesting the asset is undervalued and due for "
            "a potential reversal. OJ futures tend to rebound from oversold levels, "
            "especially when combined with supply concerns.",
            SENTIMENT_BULLISH,
        )
    if zone == "overbought":
        return RationaleSection(
            f"RSI is {r} (Overbought), indicating the asset may be overextended. "
            "Momentum is stretched and profit-taking is likely. Consider reducing "
            "exposure or waiting for a pullback before adding to positions.",
            SENTIMENT_BEARISH,
        )
    if rsi >= 50:
        return RationaleSection(
            f"RSI is {r} (Neutral-Bullish), showing steady upward momentum without "
            "overextension. Trend-following strategies remain viable at current levels.",
            SENTIMENT_NEUTRAL,
        )
    return RationaleSection(
        f"RSI is {r} (Neutral-Bearish), reflecting subdued momentum. Watch for a "
        "breakdown toward oversold levels or a breakout above 50.",
        SENTIMENT_NEUTRAL,
    )


def fundamental_drivers(
    inventory: float,
    temperature: float,
    is_hurricane_active: bool = False,
    is_la_nina_active: bool = False,
    hurricane_title: Optional[str] = None,
    la_nina_sst: Optional[float] = None,
) -> RationaleSection:
    parts: list[str] = []
    bullish = 0.0
    bearish = 0.0

    if is_hurricane_active:
        suffix = f" ({hurricane_title})" if hurricane_title else ""
        parts.append(
            f"Active hurricane warning{suffix}. Storm threats to the Florida citrus "
            "belt create supply-shock risk even without direct landfall."
        )
        bullish += 3

    if is_la_nina_active:
        sst = f" (SST {la_nina_sst:.2f}C < 26.5C)" if la_nina_sst is not None else ""
        parts.append(
            f"La Niña conditions{sst}. La Niña winters correlate with colder Florida "
            "weather and act as a multiplier on any supply disruption."
        )
        bullish += 2

    inv = f"{inventory:g}M gallons"
    if inventory < 35:
        parts.append(f"Critical supply shortage ({inv}) creates significant bullish pressure.")
        bullish += 2
    elif inventory < 45:
        parts.append(f"Below-average inventory ({inv}) supports prices and limits downside.")
        bullish += 1
    elif inventory > 55:
        parts.append(f"Elevated inventory ({inv}) weighs on prices; expect range-bound action.")
        bearish += 1
    else:
        parts.append(f"Inventory at {inv} is within the normal range; no edge from storage.")

    t = f"{temperature:g}F"
    if temperature <= 28:
        parts.append(f"CRITICAL: temperature at {t} poses severe frost damage risk to the crop.")
        bullish += 3
    elif temperature <= 32:
        parts.append(f"Freeze warning at {t}; light frost possible and a weather premium is priced in.")
        bullish += 1
    elif temperature <= 36:
        parts.append(f"Frost advisory at {t}; continued cold increases vulnerability.")
        bullish += 0.5
    elif temperature >= 50:
        parts.append(f"Favourable growing conditions at {t}; no weather-related supply threat.")
    else:
        parts.append(f"Temperature at {t} is within the safe range for citrus.")

    if bullish >= 2:
        sentiment = SENTIMENT_BULLISH
    elif bearish >= 1 and bullish == 0:
        sentiment = SENTIMENT_BEARISH
    else:
        sentiment = SENTIMENT_NEUTRAL
    return RationaleSection(" ".join(parts), sentiment)


def verdict(
    recommended_action: str,
    rsi: float,
    inventory: float,
    temperature: float,
    is_hurricane_active: bool = False,
    is_la_nina_active: bool = False,
) -> str:
    action = recommended_action.upper()

    if any(k in action for k in ("BUY", "LONG", "DOUBLE", "INCREASE")):
        reasons = []
        if is_hurricane_active:
            reasons.append("active hurricane warning")
        if is_la_nina_active:
            reasons.append("La Niña conditions")
        if rsi <= 30:
            reasons.append("oversold technical conditions")
        if inventory < 40:
            reasons.append("critical supply shortage")
        if temperature <= 32:
            reasons.append("freeze-related crop risk")
        if 30 < rsi < 50:
            reasons.append("room for upside momentum")
        catalysts = f" Key catalysts: {', '.join(reasons)}." if reasons else ""
        return (
            "STRONG BUY SIGNAL. Technical and fundamental factors favour long "
            f"positions in OJ futures.{catalysts} Scale in on short-term weakness "
            "and set stops below recent support."
        )

    if any(k in action for k in ("SELL", "SHORT", "REDUCE")):
        reasons = []
        if rsi >= 70:
            reasons.append("overbought technical conditions")
        if inventory > 55:
            reasons.append("abundant supply")
        if temperature > 45:
            reasons.append("no weather threats")
        factors = f" Key factors: {', '.join(reasons)}." if reasons else ""
        return (
            "REDUCE EXPOSURE / TAKE PROFITS. Conditions favour defensive "
            f"positioning.{factors} Trim longs or hedge; wait for a pullback "
            "before re-entering."
        )

    if "HOLD" in action:
        return (
            "HOLD CURRENT POSITIONS. Maintain existing exposure but avoid adding "
            "aggressively; set alerts for the next directional move."
        )

    return (
        "MONITOR & WAIT. The picture is mixed. Watch RSI around 50 and 30, "
        "inventory reports and Florida weather forecasts."
    )


def build_rationale(
    recommended_action: str,
    rsi: float,
    inventory: float,
    temperature: float,
    is_hurricane_active: bool = False,
    is_la_nina_active: bool = False,
    hurricane_title: Optional[str] = None,
    la_nina_sst: Optional[float] = None,
) -> AnalystRationale:
    """Assemble all three rationale sections."""
    return AnalystRationale(
        technical=technical_setup(rsi),
        fundamental=fundamental_drivers(
            inventory, temperature, is_hurricane_active, is_la_nina_active,
            hurricane_title, la_nina_sst,
        ),
        verdict=verdict(
            recommended_action, rsi, inventory, temperature,
            is_hurricane_active, is_la_nina_active,
        ),
    )
