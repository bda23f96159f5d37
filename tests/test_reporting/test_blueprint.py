"""
Tests for reporting/blueprint.py — format_trade_blueprint() and write_blueprint().
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from citrus_signal.analysis.rationale import build_rationale
from citrus_signal.analysis.risk_reward import compute_trade_parameters
from citrus_signal.engine.evaluator import evaluate
from citrus_signal.engine.reconciler import SyncStatus
from citrus_signal.ingestion.price_client import PriceQuote
from citrus_signal.models.parameters import ParameterSet
from citrus_signal.reporting.blueprint import (
    blueprint_filename,
    format_trade_blueprint,
    write_blueprint,
)

NOW = datetime(2026, 1, 12, 6, 30, 0, tzinfo=timezone.utc)
SYNCED = datetime(2026, 1, 12, 6, 20, 0, tzinfo=timezone.utc)


def _blueprint(params: ParameterSet, with_trade: bool = True) -> str:
    result = evaluate(params.to_signal_input())
    rationale = build_rationale(
        result.recommended_action,
        params.rsi_value,
        params.current_inventory,
        params.current_temp,
        params.is_hurricane_active,
        params.is_la_nina,
    )
    trade = quote = None
    if with_trade:
        quote = PriceQuote(
            price_cents=400.0,
            previous_close_cents=390.0,
            change_cents=10.0,
            change_percent=10.0 / 390.0 * 100.0,
            fetched_at=NOW,
        )
        trade = compute_trade_parameters(
            quote.price_cents,
            result.recommended_action,
            result.win_probability,
            params.is_hurricane_active,
            params.is_la_nina,
        )
    return format_trade_blueprint(
        params, result, SyncStatus.FRESH, SYNCED, rationale, trade=trade, quote=quote, now=NOW
    )


class TestFormatTradeBlueprint:
    def test_sections_in_order(self, sample_parameters: ParameterSet) -> None:
        text = _blueprint(sample_parameters)
        markers = [
            "OJ FUTURES TRADE BLUEPRINT",
            "Generated 2026-01-12T06:30:00Z",
            "[FRESH] Last sync",
            "  Parameters",
            "=== Market Signal ===",
            "=== Analyst Rationale ===",
            "=== Risk / Reward (advisory) ===",
            "Decision support only.",
        ]
        positions = [text.index(m) for m in markers]
        assert positions == sorted(positions)
        assert text.endswith("\n")

    def test_trade_levels(self, sample_parameters: ParameterSet) -> None:
        text = _blueprint(sample_parameters)
        # hurricane toggle on -> wider 2.5 / 7.5 stops
        assert "Last price:     $4.00/lb  +$0.10 (+2.56%)" in text
        assert "Direction:      LONG" in text
        assert "Stop loss:      $3.90/lb  (-2.5%)" in text
        assert "Take profit:    $4.30/lb  (+7.5%)" in text
        assert "Reward : risk   3 : 1" in text
        assert "Expected value: +28.00 cents/lb" in text

    def test_rationale_sentiments(self, sample_parameters: ParameterSet) -> None:
        text = _blueprint(sample_parameters)
        assert "Technical (neutral):" in text
        assert "Fundamental (bullish):" in text
        assert "STRONG BUY SIGNAL" in text

    def test_without_quote(self) -> None:
        text = _blueprint(ParameterSet(current_month=1), with_trade=False)
        assert "Risk / reward unavailable (no price quote)." in text
        assert "=== Risk / Reward (advisory) ===" not in text


class TestWriteBlueprint:
    def test_writes_timestamped_file(self, tmp_path: Path) -> None:
        out_dir = tmp_path / "reports" / "blueprints"
        path = write_blueprint("memo\n", out_dir, now=NOW)
        assert path == out_dir / "blueprint_20260112T063000Z.txt"
        assert path.read_text(encoding="utf-8") == "memo\n"

    def test_filename(self) -> None:
        assert blueprint_filename(NOW) == "blueprint_20260112T063000Z.txt"
