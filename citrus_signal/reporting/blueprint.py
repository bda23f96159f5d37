"""
Trade blueprint: a plain-text decision memo for the current signal.

The blueprint bundles everything an operator needs to justify (or veto) the
recommended action in one document:

  - sync freshness banner
  - parameter snapshot
  - signal, evidence trail and flags
  - analyst rationale (technical, fundamental, verdict)
  - risk / reward levels, when a price quote is available

``write_blueprint()`` writes the memo to disk and returns the ``Path``,
following the same contract as the other file exporters: parent directories
are created if missing and the file is UTF-8 text.

File naming::

    {output_dir}/blueprint_{YYYYMMDDTHHMMSSZ}.txt
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

from citrus_signal.analysis.rationale import AnalystRationale
from citrus_signal.analysis.risk_reward import TradeParameters
from citrus_signal.engine.reconciler import SyncStatus
from citrus_signal.ingestion.price_client import PriceQuote, format_price, format_price_change
from citrus_signal.models.parameters import ParameterSet
from citrus_signal.models.signal import SignalResult
from citrus_signal.reporting.formatters import (
    format_parameters,
    format_signal_summary,
    format_sync_banner,
)
from citrus_signal.utils.time_utils import format_iso_utc, utcnow

_RULE = "=" * 64


def _cents(value: float) -> str:
    return f"${value / 100:.2f}/lb"


def _format_trade(trade: TradeParameters, quote: Optional[PriceQuote]) -> list[str]:
    lines = ["", "=== Risk / Reward (advisory) ==="]
    if quote is not None:
        lines.append(
            f"  Last price:     {format_price(quote)}  {format_price_change(quote)}"
        )
    lines += [
        f"  Direction:      {trade.direction}",
        f"  Entry:          {_cents(trade.entry_price)}",
        f"  Stop loss:      {_cents(trade.stop_loss)}  (-{trade.risk_percent:g}%)",
        f"  Take profit:    {_cents(trade.take_profit)}  (+{trade.reward_percent:g}%)",
        f"  Reward : risk   {trade.risk_reward_ratio:g} : 1",
        f"  Expected value: {trade.expected_value:+.2f} cents/lb",
    ]
    return lines


def format_trade_blueprint(
    params: ParameterSet,
    result: SignalResult,
    sync_status: SyncStatus,
    synced_at: Optional[datetime],
    rationale: AnalystRationale,
    trade: Optional[TradeParameters] = None,
    quote: Optional[PriceQuote] = None,
    now: Optional[datetime] = None,
) -> str:
    """Render the full blueprint memo as a multi-line string.

    Args:
        params:      Parameter set the signal was computed from.
        result:      The evaluated signal.
        sync_status: Freshness of the live fields.
        synced_at:   Timestamp of the last successful sync, if any.
        rationale:   Analyst commentary for the same parameters.
        trade:       Risk / reward levels; the section is omitted when ``None``.
        quote:       Latest price quote shown alongside the trade levels.
        now:         Generation time (defaults to UTC now).

    Returns:
        The memo text, newline-terminated.
    """
    now = now or utcnow()
    lines = [
        _RULE,
        "  OJ FUTURES TRADE BLUEPRINT",
        f"  Generated {format_iso_utc(now)}",
        _RULE,
        format_sync_banner(sync_status, synced_at, now),
        "",
        format_parameters(params),
        "",
        format_signal_summary(result),
        "",
        "=== Analyst Rationale ===",
        f"  Technical ({rationale.technical.sentiment}):",
        f"    {rationale.technical.text}",
        f"  Fundamental ({rationale.fundamental.sentiment}):",
        f"    {rationale.fundamental.text}",
        "  Verdict:",
        f"    {rationale.verdict}",
    ]
    if trade is not None:
        lines += _format_trade(trade, quote)
    else:
        lines += ["", "  Risk / reward unavailable (no price quote)."]

    lines += [
        "",
        _RULE,
        "  Decision support only. Win rates are illustrative constants.",
        _RULE,
    ]
    return "\n".join(lines) + "\n"


def blueprint_filename(now: datetime) -> str:
    return f"blueprint_{now.strftime('%Y%m%dT%H%M%SZ')}.txt"


def write_blueprint(text: str, output_dir: Path, now: Optional[datetime] = None) -> Path:
    """Write ``text`` to a timestamped file under ``output_dir``.

    Returns:
        Path of the written file.
    """
    path = output_dir / blueprint_filename(now or utcnow())
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
