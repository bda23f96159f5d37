"""Tests for analysis/rationale.py — technical, fundamental and verdict sections."""

from __future__ import annotations

import pytest

from citrus_signal.analysis.rationale import (
    SENTIMENT_BEARISH,
    SENTIMENT_BULLISH,
    SENTIMENT_NEUTRAL,
    build_rationale,
    fundamental_drivers,
    technical_setup,
    verdict,
)
from citrus_signal.indicators.rsi import OVERBOUGHT, OVERSOLD


class TestTechnicalSetup:
    @pytest.mark.parametrize(
        "rsi, label, sentiment",
        [
            (25, "Oversold", SENTIMENT_BULLISH),
            (30, "Oversold", SENTIMENT_BULLISH),
            (31, "Neutral-Bearish", SENTIMENT_NEUTRAL),
            (50, "Neutral-Bullish", SENTIMENT_NEUTRAL),
            (69, "Neutral-Bullish", SENTIMENT_NEUTRAL),
            (70, "Overbought", SENTIMENT_BEARISH),
        ],
    )
    def test_bands(self, rsi: float, label: str, sentiment: str) -> None:
        section = technical_setup(rsi)
        assert f"RSI is {rsi:g} ({label})" in section.text
        assert section.sentiment == sentiment

    def test_bands_follow_indicator_thresholds(self) -> None:
        assert "(Oversold)" in technical_setup(OVERSOLD).text
        assert "(Overbought)" in technical_setup(OVERBOUGHT).text
        assert "(Neutral-Bearish)" in technical_setup(OVERSOLD + 0.5).text


class TestFundamentalDrivers:
    def test_quiet_market_is_neutral(self) -> None:
        section = fundamental_drivers(50.0, 45.0)
        assert section.sentiment == SENTIMENT_NEUTRAL
        assert "normal range" in section.text

    def test_elevated_inventory_is_bearish(self) -> None:
        assert fundamental_drivers(60.0, 45.0).sentiment == SENTIMENT_BEARISH

    def test_shortage_is_bullish(self) -> None:
        section = fundamental_drivers(30.0, 45.0)
        assert section.sentiment == SENTIMENT_BULLISH
        assert "Critical supply shortage (30M gallons)" in section.text

    def test_bearish_needs_zero_bullish_weight(self) -> None:
        # frost advisory adds half a point of bullish weight
        assert fundamental_drivers(60.0, 34.0).sentiment == SENTIMENT_NEUTRAL

    def test_context_details_quoted(self) -> None:
        section = fundamental_drivers(
            50.0, 45.0,
            is_hurricane_active=True,
            is_la_nina_active=True,
            hurricane_title="Hurricane Ana Advisory 4",
            la_nina_sst=26.1,
        )
        assert "(Hurricane Ana Advisory 4)" in section.text
        assert "SST 26.10C" in section.text
        assert section.sentiment == SENTIMENT_BULLISH

    def test_critical_temperature(self) -> None:
        section = fundamental_drivers(50.0, 27.0)
        assert section.text.endswith("poses severe frost damage risk to the crop.")
        assert section.sentiment == SENTIMENT_BULLISH


class TestVerdict:
    def test_long_actions_list_catalysts(self) -> None:
        text = verdict("Double Position", 50.0, 30.0, 27.0, is_hurricane_active=True)
        assert text.startswith("STRONG BUY SIGNAL")
        assert (
            "Key catalysts: active hurricane warning, critical supply shortage, "
            "freeze-related crop risk." in text
        )

    def test_long_without_catalysts(self) -> None:
        text = verdict("STRONG LONG (Brazil Drought)", 60.0, 50.0, 60.0)
        assert text.startswith("STRONG BUY SIGNAL")
        assert "Key catalysts" not in text

    @pytest.mark.parametrize(
        "action", ["Reduce Position", "TAKE PROFIT / SELL", "SELL/SHORT (False Alarm)"]
    )
    def test_defensive_actions(self, action: str) -> None:
        assert verdict(action, 50.0, 50.0, 40.0).startswith("REDUCE EXPOSURE / TAKE PROFITS")

    def test_defensive_factors(self) -> None:
        text = verdict("Reduce Position", 75.0, 60.0, 50.0)
        assert (
            "Key factors: overbought technical conditions, abundant supply, "
            "no weather threats." in text
        )

    def test_hold_and_monitor(self) -> None:
        assert verdict("Hold Position", 50, 50, 20).startswith("HOLD CURRENT POSITIONS")
        assert verdict("Monitor", 50, 50, 45).startswith("MONITOR & WAIT")


def test_build_rationale_assembles_sections() -> None:
    rationale = build_rationale(
        "Increase Position", 28.0, 40.0, 26.0, is_la_nina_active=True, la_nina_sst=25.9
    )
    assert rationale.technical.sentiment == SENTIMENT_BULLISH
    assert rationale.fundamental.sentiment == SENTIMENT_BULLISH
    assert "oversold technical conditions" in rationale.verdict
    assert "La Niña conditions" in rationale.verdict
