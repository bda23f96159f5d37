"""
ASCII terminal formatters for CLI commands.

All formatters accept domain objects and return plain multi-line strings
suitable for ``typer.echo()``. No third-party dependencies.

Sync banner
-----------
Every signal output starts with a sync banner so readers can tell at a
glance whether the live fields are current::

  [FRESH] Last sync 06:42:17 AM (4.2 min ago)
  [STALE] Last sync 05:02:11 AM (104.3 min ago) -- live values may be outdated
  [UNAVAILABLE] No live data has been obtained yet

Staleness is a warning only; the signal is computed from the stored values
regardless of their age.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from citrus_signal.models.frost import FrostTrackerState
from citrus_signal.engine.reconciler import SyncStatus, sync_age_minutes
from citrus_signal.ingestion.context_client import MarketContextData
from citrus_signal.ingestion.news_client import NewsHeadline
from citrus_signal.models.parameters import ParameterSet
from citrus_signal.models.signal import SignalResult
from citrus_signal.rules import MarketRules
from citrus_signal.utils.time_utils import format_sync_time


# ── Sync banner ───────────────────────────────────────────────────────────────


def format_sync_banner(
    status: SyncStatus,
    synced_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> str:
    """Return a one-line sync-freshness indicator."""
    if status == SyncStatus.UNAVAILABLE or synced_at is None:
        return "  [UNAVAILABLE] No live data has been obtained yet"

    age = sync_age_minutes(synced_at, now)
    when = f"Last sync {format_sync_time(synced_at)} ({age:.1f} min ago)"
    if status == SyncStatus.STALE:
        return f"  [STALE] {when} -- live values may be outdated"
    return f"  [FRESH] {when}"


# ── Parameters ────────────────────────────────────────────────────────────────


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def format_parameters(params: ParameterSet) -> str:
    lines = [
        "  Parameters",
        f"    Temperature:          {params.current_temp:g}F",
        f"    Hours below 28F:      {params.hours_below_28:.2f}",
        f"    Inventory:            {params.current_inventory:g}M gallons",
        f"    RSI (14):             {params.rsi_value:g}",
        f"    La Niña:              {_yes_no(params.is_la_nina)}",
        f"    Hurricane active:     {_yes_no(params.is_hurricane_active)}",
        f"    Centre far from Polk: {_yes_no(params.hurricane_center_far_from_polk)}",
        f"    Brazil rainfall idx:  {params.brazil_rainfall_index:+g}",
        f"    Month:                {params.current_month}",
    ]
    return "\n".join(lines)


# ── Signal ────────────────────────────────────────────────────────────────────


def format_signal_summary(result: SignalResult) -> str:
    """Win probability, action, flags and the evidence trail."""
    insight = result.insight
    flags = result.flags
    active = [
        name for name, on in (
            ("HURRICANE FALSE ALARM", flags.is_hurricane_false_alarm),
            ("LA NIÑA", flags.is_la_nina_active),
            ("BRAZIL DROUGHT", flags.is_brazil_drought),
            ("RSI OVERBOUGHT", flags.is_rsi_overbought),
        ) if on
    ]

    lines = [
        "=== Market Signal ===",
        f"  Win probability:    {result.win_probability:.0%}",
        f"  Recommended action: {result.recommended_action}",
        f"  Base win rate:      {insight.base_win_rate:.2f}",
        f"  Inventory mult.:    x{insight.inventory_multiplier:g}",
        f"  Frost condition:    {insight.frost_condition}",
        f"  Inventory:          {insight.inventory_condition}",
        f"  Flags:              {', '.join(active) if active else '(none)'}",
    ]
    if insight.override:
        lines.append(f"  Override:           {insight.override}")
    if insight.evidence:
        lines.append("")
        lines.append("  Evidence")
        lines.extend(f"    - {e}" for e in insight.evidence)
    return "\n".join(lines)


# ── Strategy table ────────────────────────────────────────────────────────────


def format_strategy_table(rules: MarketRules) -> str:
    """Named strategies with their fixed win rates, highest first."""
    lines = ["=== Strategy Win Rates ==="]
    header = f"  {'Strategy':<24}  {'Win rate':>8}"
    lines.append(header)
    lines.append("  " + "-" * (len(header) - 2))
    for name, rate in rules.strategy_win_rates():
        lines.append(f"  {name:<24}  {rate:>8.0%}")
    lines.append("")
    lines.append("  Illustrative constants, not backtested results.")
    return "\n".join(lines)


# ── Frost tracker ─────────────────────────────────────────────────────────────


def format_frost_status(state: FrostTrackerState, rules: MarketRules) -> str:
    min_hours = rules.frost_rule.min_duration_hours
    hours = state.hours
    pct = min(hours / min_hours, 1.0) if min_hours else 0.0
    bar_width = 20
    filled = int(pct * bar_width)
    bar = "#" * filled + "." * (bar_width - filled)

    lines = [
        "=== Frost Exposure ===",
        f"  State:        {'TRACKING' if state.is_tracking else 'IDLE'}",
        f"  Exposure:     {hours:.2f}h / {min_hours:g}h at or below "
        f"{rules.frost_rule.critical_temp_f:g}F",
        f"  Progress:     [{bar}] {pct:.0%}",
        f"  Alert fired:  {_yes_no(state.alert_shown)}",
    ]
    if state.alert_shown:
        lines.append("  [ALERT] Critical frost exposure threshold reached this episode.")
    return "\n".join(lines)


# ── Context & news ────────────────────────────────────────────────────────────


def format_context(ctx: MarketContextData) -> str:
    hurricane = ctx.hurricane
    la_nina = ctx.la_nina

    if hurricane.error:
        h_line = f"unavailable ({hurricane.error})"
    elif hurricane.is_active:
        h_line = f"ACTIVE - {hurricane.latest_title}"
    else:
        h_line = "no active hurricane"

    if la_nina.error or la_nina.sst_c is None:
        l_line = f"unavailable ({la_nina.error or 'no SST reading'})"
    else:
        l_line = f"{'ACTIVE' if la_nina.is_active else 'inactive'} (SST {la_nina.sst_c:.2f}C)"

    return "\n".join([
        "=== Market Context (advisory) ===",
        f"  Hurricane (NHC): {h_line}",
        f"  La Niña (Niño-3.4 SST): {l_line}",
        "  Manual toggles are not changed; use 'set-params' to apply.",
    ])


def format_headlines(headlines: list[NewsHeadline]) -> str:
    lines = ["=== Weather & Hurricane Headlines ==="]
    if not headlines:
        lines.append("  (no headlines)")
        return "\n".join(lines)
    for h in headlines:
        tag = "[HURRICANE] " if h.is_hurricane else ""
        when = h.published_at.strftime("%Y-%m-%d %H:%M") if h.published_at else "--"
        lines.append(f"  {when}  {tag}{h.title}")
    return "\n".join(lines)
