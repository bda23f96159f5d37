"""
Citrus Signal — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Open the key-value store (schema applied idempotently).
  4. Execute action (evaluate, sync, frost clock, report, etc.).
  5. Report result to stdout.

Install and run::

    pip install -e .
    citrus-signal --help
    citrus-signal init-db
    citrus-signal set-params --inventory 32 --la-nina
    citrus-signal sync
    citrus-signal evaluate
    citrus-signal watch
    citrus-signal blueprint --save
"""

from __future__ import annotations

import asyncio
import json
from contextlib import contextmanager
from datetime import timedelta
from pathlib import Path
from typing import Iterator, Optional

import typer

app = typer.Typer(
    name="citrus-signal",
    help="OJ futures market signal engine and frost exposure tracker.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from citrus_signal.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from citrus_signal.utils.logging import configure_logging
    configure_logging(config.logging, debug=config.debug)


def _load_rules_or_exit(config):
    """Load the market rule table named in config, exiting on failure."""
    from citrus_signal.config import resolve_project_path
    from citrus_signal.rules import load_market_rules

    path = resolve_project_path(config.rules.rules_file) if config.rules.rules_file else None
    try:
        return load_market_rules(path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Market rules failed validation: {exc}", err=True)
        raise typer.Exit(code=1)


@contextmanager
def _open_store(config, db_path: Optional[str] = None) -> Iterator:
    """Yield the key-value store named in config (or ``db_path``)."""
    from citrus_signal.db.connection import open_store

    with open_store(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as store:
        yield store


def _sync_banner(store, config) -> str:
    from citrus_signal.engine.reconciler import sync_status
    from citrus_signal.reporting.formatters import format_sync_banner
    from citrus_signal.services.sync import last_synced_at

    synced_at = last_synced_at(store)
    status = sync_status(
        synced_at, stale_after=timedelta(minutes=config.sync.stale_after_minutes)
    )
    return format_sync_banner(status, synced_at)


def _build_sync(store, state, config):
    from citrus_signal.ingestion.price_client import YahooFinanceClient
    from citrus_signal.ingestion.weather_client import OpenMeteoClient
    from citrus_signal.services.sync import LiveDataSync

    return LiveDataSync(
        store,
        state,
        weather=OpenMeteoClient(
            latitude=config.weather.latitude,
            longitude=config.weather.longitude,
            timezone=config.weather.timezone,
            timeout=config.weather.timeout_seconds,
        ),
        prices=YahooFinanceClient(
            symbol=config.price.symbol,
            lookback_days=config.price.lookback_days,
            timeout=config.price.timeout_seconds,
        ),
        rsi_period=config.price.rsi_period,
    )


def _fetch(fn):
    """Run ``fn(client)`` inside a fresh ``httpx.AsyncClient``."""
    import httpx

    async def _run():
        async with httpx.AsyncClient() as client:
            return await fn(client)

    return asyncio.run(_run())


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Initialize the SQLite database and apply the schema.

    Safe to run multiple times; all DDL uses IF NOT EXISTS.
    """
    from citrus_signal.db.schema import ALL_TABLE_NAMES, get_existing_tables

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with _open_store(config, target_path) as store:
        existing = get_existing_tables(store.conn)
        keys = store.keys()

    missing = [t for t in ALL_TABLE_NAMES if t not in existing]
    if missing:
        typer.echo(f"[ERROR] Tables missing after schema apply: {', '.join(missing)}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo(f"  Stored keys: {len(keys)}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration and market rules and print parsed values.

    Exits with code 1 if either fails validation.
    """
    config = _load_config_or_exit(config_path)
    rules = _load_rules_or_exit(config)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  Rules file:       {config.rules.rules_file or '(built-in defaults)'}")
    typer.echo(f"  Rules theme:      {rules.theme}")
    typer.echo(f"  Frost rule:       <= {rules.frost_rule.critical_temp_f:g}F for "
               f"{rules.frost_rule.min_duration_hours:g}h")
    typer.echo(f"  Weather location: {config.weather.latitude}, {config.weather.longitude}")
    typer.echo(f"  Price symbol:     {config.price.symbol} "
               f"({config.price.lookback_days}d, RSI {config.price.rsi_period})")
    typer.echo(f"  Sync stale after: {config.sync.stale_after_minutes} min")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))
        typer.echo("")
        typer.echo("Market rules (JSON):")
        typer.echo(json.dumps(rules.model_dump(by_alias=True), indent=2))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("evaluate")
def evaluate_cmd(
    as_json: bool = typer.Option(False, "--json", help="Emit machine-readable JSON."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Evaluate the signal from the stored parameters (no network access)."""
    from citrus_signal.engine.reconciler import sync_status
    from citrus_signal.reporting.formatters import format_parameters, format_signal_summary
    from citrus_signal.services.state import DashboardState
    from citrus_signal.services.sync import last_synced_at

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    rules = _load_rules_or_exit(config)

    with _open_store(config) as store:
        state = DashboardState(store, rules)
        result = state.evaluate()
        synced_at = last_synced_at(store)
        banner = _sync_banner(store, config)

    if as_json:
        status = sync_status(
            synced_at, stale_after=timedelta(minutes=config.sync.stale_after_minutes)
        )
        typer.echo(json.dumps(
            {
                "sync_status": status.value,
                "parameters": state.parameters.model_dump(),
                "signal": result.model_dump(mode="json"),
            },
            indent=2,
        ))
        return

    typer.echo(banner)
    typer.echo("")
    typer.echo(format_parameters(state.parameters))
    typer.echo("")
    typer.echo(format_signal_summary(result))


@app.command("set-params")
def set_params(
    inventory: Optional[float] = typer.Option(
        None, "--inventory", help="FCOJ inventory in millions of gallons."
    ),
    la_nina: Optional[bool] = typer.Option(
        None, "--la-nina/--no-la-nina", help="La Niña conditions active."
    ),
    hurricane: Optional[bool] = typer.Option(
        None, "--hurricane/--no-hurricane", help="Hurricane active in the Atlantic."
    ),
    far_from_polk: Optional[bool] = typer.Option(
        None,
        "--far-from-polk/--near-polk",
        help="Hurricane centre is far from Polk County.",
    ),
    rainfall: Optional[float] = typer.Option(
        None, "--rainfall", help="Brazil rainfall index (negative = dry)."
    ),
    month: Optional[int] = typer.Option(
        None, "--month", min=1, max=12, help="Calendar month used for the drought window."
    ),
    temp: Optional[float] = typer.Option(
        None,
        "--temp",
        help="Override the live temperature (F) until the next successful sync.",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Update manual market parameters and re-evaluate the signal."""
    from pydantic import ValidationError

    from citrus_signal.reporting.formatters import format_signal_summary
    from citrus_signal.services.state import DashboardState

    changes = {
        "current_inventory": inventory,
        "is_la_nina": la_nina,
        "is_hurricane_active": hurricane,
        "hurricane_center_far_from_polk": far_from_polk,
        "brazil_rainfall_index": rainfall,
        "current_month": month,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes and temp is None:
        typer.echo("[ERROR] Nothing to update. Pass at least one option (see --help).", err=True)
        raise typer.Exit(code=1)

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    rules = _load_rules_or_exit(config)

    with _open_store(config) as store:
        state = DashboardState(store, rules)
        try:
            result = None
            if changes:
                result = state.set_manual(**changes)
            if temp is not None:
                result = state.set_temperature(temp)
        except ValidationError as exc:
            typer.echo(f"[ERROR] Invalid parameter value:\n{exc}", err=True)
            raise typer.Exit(code=1)

    for name, value in changes.items():
        typer.echo(f"  {name} = {value}")
    if temp is not None:
        typer.echo(f"  current_temp = {temp} (manual override)")
    typer.echo("")
    typer.echo(format_signal_summary(result))
    typer.echo("")
    typer.echo("[OK] Parameters updated.")


@app.command("sync")
def sync_cmd(
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Fetch live temperature and RSI once and re-evaluate.

    A failed source keeps its last known value; failures are listed but do
    not change the exit code.
    """
    from citrus_signal.reporting.formatters import format_signal_summary
    from citrus_signal.services.state import DashboardState

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    rules = _load_rules_or_exit(config)

    with _open_store(config) as store:
        state = DashboardState(store, rules)
        report = _build_sync(store, state, config).run()
        banner = _sync_banner(store, config)
        result = state.evaluate()

    params = report.outcome.parameters
    typer.echo(banner)
    typer.echo(f"  Temperature: {params.current_temp:g}F"
               f"{'' if report.outcome.temperature_updated else ' (kept)'}")
    if report.weather is not None:
        risk = report.weather.frost_risk
        typer.echo(f"  Conditions:  {report.weather.condition}")
        typer.echo(f"  Frost risk:  {risk.level} - {risk.description}")
    typer.echo(f"  RSI:         {params.rsi_value:g}"
               f"{'' if report.outcome.rsi_updated else ' (kept)'}")
    for err in report.errors:
        typer.echo(f"  [WARN] {err}")
    typer.echo("")
    typer.echo(format_signal_summary(result))
    typer.echo("")
    if report.outcome.succeeded:
        typer.echo("[OK] Sync complete.")
    else:
        typer.echo("[WARN] Sync incomplete; last known values kept.")


@app.command("status")
def status_cmd(
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Show the stored state: sync freshness, parameters, RSI, frost tracker, signal."""
    from citrus_signal.db.repositories.kv_repo import KEY_FROST_TRACKER, KEY_LAST_RSI
    from citrus_signal.models.frost import FrostTrackerState
    from citrus_signal.reporting.formatters import (
        format_frost_status,
        format_parameters,
        format_signal_summary,
    )
    from citrus_signal.services.state import DashboardState
    from citrus_signal.services.sync import load_last_sync

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    rules = _load_rules_or_exit(config)

    with _open_store(config) as store:
        state = DashboardState(store, rules)
        banner = _sync_banner(store, config)
        last_sync = load_last_sync(store) or {}
        last_rsi = store.get(KEY_LAST_RSI)
        frost = FrostTrackerState.model_validate(store.get(KEY_FROST_TRACKER) or {})
        result = state.evaluate()

    typer.echo(banner)
    for err in last_sync.get("errors", []):
        typer.echo(f"  [WARN] last sync: {err}")
    typer.echo("")
    typer.echo(format_parameters(state.parameters))
    if last_rsi:
        typer.echo(f"    RSI computed at:      {last_rsi.get('computed_at')} "
                   f"from {last_rsi.get('points')} closes")
    typer.echo("")
    typer.echo(format_frost_status(frost, rules))
    typer.echo("")
    typer.echo(format_signal_summary(result))


@app.command("frost-status")
def frost_status(
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Show the persisted frost tracker state (as of its last tick)."""
    from citrus_signal.db.repositories.kv_repo import KEY_FROST_TRACKER
    from citrus_signal.models.frost import FrostTrackerState
    from citrus_signal.reporting.formatters import format_frost_status

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    rules = _load_rules_or_exit(config)

    with _open_store(config) as store:
        raw = store.get_with_timestamp(KEY_FROST_TRACKER)

    if raw is None:
        state, updated_at = FrostTrackerState(), None
    else:
        state, updated_at = FrostTrackerState.model_validate(raw[0]), raw[1]

    typer.echo(format_frost_status(state, rules))
    if updated_at is not None:
        typer.echo(f"  Last tick:    {updated_at.isoformat(timespec='seconds')}")
    else:
        typer.echo("  Last tick:    never (run 'citrus-signal watch')")


@app.command("frost-reset")
def frost_reset(
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Force the frost tracker to Idle and zero its exposure.

    Stop a running ``watch`` first; the daemon owns the tracker state while
    it runs.
    """
    from citrus_signal.engine.frost_tracker import FrostExposureTracker
    from citrus_signal.services.state import DashboardState

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    rules = _load_rules_or_exit(config)

    with _open_store(config) as store:
        tracker = FrostExposureTracker(store, rules, reset_temp_f=config.frost.reset_temp_f)
        before = tracker.hours_below
        tracker.reset()
        DashboardState(store, rules).set_hours_below(0.0)

    typer.echo(f"  Cleared {before:.2f}h of exposure.")
    typer.echo("[OK] Frost tracker reset.")


@app.command("watch")
def watch(
    no_sync: bool = typer.Option(
        False, "--no-sync", help="Tick the frost clock only; never fetch live data."
    ),
    skip_initial_sync: bool = typer.Option(
        False, "--skip-initial-sync", help="Wait one interval before the first sync."
    ),
    tick_seconds: Optional[float] = typer.Option(
        None, "--tick-seconds", help="Override frost.tick_seconds from config."
    ),
    max_ticks: Optional[int] = typer.Option(
        None, "--max-ticks", min=1, help="Stop after this many ticks (default: run until Ctrl-C)."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Run the frost clock: tick the tracker every second and sync on an interval."""
    from citrus_signal.engine.frost_tracker import FrostExposureTracker
    from citrus_signal.scheduler import FrostClockDaemon
    from citrus_signal.services.state import DashboardState

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    rules = _load_rules_or_exit(config)

    with _open_store(config) as store:
        try:
            tracker = FrostExposureTracker(store, rules, reset_temp_f=config.frost.reset_temp_f)
        except ValueError as exc:
            typer.echo(f"[ERROR] {exc}", err=True)
            raise typer.Exit(code=1)
        state = DashboardState(store, rules)
        daemon = FrostClockDaemon(
            tracker,
            state,
            sync=None if no_sync else _build_sync(store, state, config),
            tick_seconds=tick_seconds or config.frost.tick_seconds,
            sync_interval_minutes=config.frost.sync_interval_minutes,
            skip_initial_sync=skip_initial_sync,
        )
        typer.echo("Frost clock running. Press Ctrl-C to stop.")
        daemon.start(max_ticks=max_ticks)
        hours = tracker.hours_below
        alert = tracker.alert_shown

    typer.echo(f"  Ticks: {daemon.ticks}  Syncs: {daemon.syncs}  Exposure: {hours:.2f}h")
    if alert:
        typer.echo("  [ALERT] Critical frost exposure threshold reached.")
    typer.echo("[OK] Frost clock stopped.")


@app.command("blueprint")
def blueprint(
    save: bool = typer.Option(False, "--save", help="Write the memo under output.blueprint_dir."),
    offline: bool = typer.Option(
        False, "--offline", help="Skip the price quote (no risk / reward section)."
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Print a trade blueprint memo for the current signal."""
    from citrus_signal.analysis.rationale import build_rationale
    from citrus_signal.analysis.risk_reward import compute_trade_parameters
    from citrus_signal.config import resolve_project_path
    from citrus_signal.engine.reconciler import sync_status
    from citrus_signal.ingestion.http import FetchError
    from citrus_signal.ingestion.price_client import YahooFinanceClient
    from citrus_signal.reporting.blueprint import format_trade_blueprint, write_blueprint
    from citrus_signal.services.state import DashboardState
    from citrus_signal.services.sync import last_synced_at

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    rules = _load_rules_or_exit(config)

    with _open_store(config) as store:
        state = DashboardState(store, rules)
        synced_at = last_synced_at(store)

    params = state.parameters
    result = state.evaluate()
    status = sync_status(synced_at, stale_after=timedelta(minutes=config.sync.stale_after_minutes))
    rationale = build_rationale(
        result.recommended_action,
        params.rsi_value,
        params.current_inventory,
        params.current_temp,
        is_hurricane_active=params.is_hurricane_active,
        is_la_nina_active=params.is_la_nina,
    )

    quote = trade = None
    if not offline:
        prices = YahooFinanceClient(
            symbol=config.price.symbol, timeout=config.price.timeout_seconds
        )
        try:
            quote = _fetch(prices.fetch_quote)
        except FetchError as exc:
            typer.echo(f"  [WARN] Quote unavailable: {exc}", err=True)
    if quote is not None:
        trade = compute_trade_parameters(
            quote.price_cents,
            result.recommended_action,
            result.win_probability,
            is_hurricane_active=params.is_hurricane_active,
            is_la_nina_active=params.is_la_nina,
        )

    text = format_trade_blueprint(params, result, status, synced_at, rationale, trade, quote)
    typer.echo(text)

    if save:
        path = write_blueprint(text, resolve_project_path(config.output.blueprint_dir))
        typer.echo(f"[OK] Blueprint written to {path}")


@app.command("strategies")
def strategies(
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """List the named strategies and their win rates."""
    from citrus_signal.reporting.formatters import format_strategy_table

    config = _load_config_or_exit(config_path)
    rules = _load_rules_or_exit(config)
    typer.echo(format_strategy_table(rules))


@app.command("news")
def news(
    limit: Optional[int] = typer.Option(None, "--limit", min=1, help="Override news.limit."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Fetch Florida weather and hurricane headlines."""
    from citrus_signal.ingestion.news_client import NewsFeedClient
    from citrus_signal.reporting.formatters import format_headlines

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    client = NewsFeedClient(
        feed_urls=[config.news.hurricane_feed_url, config.news.weather_feed_url],
        limit=limit or config.news.limit,
        timeout=config.news.timeout_seconds,
    )
    typer.echo(format_headlines(_fetch(client.fetch_headlines)))


@app.command("context")
def context(
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Fetch advisory hurricane and La Niña status (never changes the toggles)."""
    from citrus_signal.ingestion.context_client import MarketContextClient
    from citrus_signal.reporting.formatters import format_context
    from citrus_signal.services.state import DashboardState

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_store(config) as store:
        params = DashboardState(store).parameters

    ctx = _fetch(MarketContextClient(timeout=config.weather.timeout_seconds).fetch_all)
    typer.echo(format_context(ctx))

    if ctx.hurricane.error is None and ctx.hurricane.is_active != params.is_hurricane_active:
        flag = "--hurricane" if ctx.hurricane.is_active else "--no-hurricane"
        typer.echo(f"  Hint: hurricane toggle differs from feed; 'set-params {flag}' to apply.")
    if ctx.la_nina.error is None and ctx.la_nina.is_active != params.is_la_nina:
        flag = "--la-nina" if ctx.la_nina.is_active else "--no-la-nina"
        typer.echo(f"  Hint: La Niña toggle differs from feed; 'set-params {flag}' to apply.")


if __name__ == "__main__":
    app()
