"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``CITRUS_SIGNAL_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

The market rule table (frost thresholds, inventory bands, win rates) is a
separate JSON document loaded by ``citrus_signal.rules.load_market_rules``;
``AppConfig.rules.rules_file`` only says where to find it.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite key-value store settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/citrus_signal.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class RulesConfig(BaseModel):
    """Location of the market rule table."""

    model_config = ConfigDict(frozen=True)

    rules_file: str = "config/market_rules.json"


class WeatherConfig(BaseModel):
    """Open-Meteo forecast point (defaults to Winter Haven, FL)."""

    model_config = ConfigDict(frozen=True)

    latitude: float = 28.02
    longitude: float = -81.73
    timezone: str = "America/New_York"
    timeout_seconds: float = 15.0


class PriceConfig(BaseModel):
    """Futures price-history settings for the RSI feed."""

    model_config = ConfigDict(frozen=True)

    symbol: str = "OJ=F"
    lookback_days: int = 30
    rsi_period: int = 14
    timeout_seconds: float = 15.0

    @field_validator("lookback_days")
    @classmethod
    def validate_lookback(cls, v: int) -> int:
        # Non-trading days are dropped, so a shorter window cannot
        # guarantee period + 1 closes.
        if v < 30:
            raise ValueError(f"lookback_days must be >= 30, got {v}.")
        return v

    @field_validator("rsi_period")
    @classmethod
    def validate_period(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"rsi_period must be positive, got {v}.")
        return v


class SyncConfig(BaseModel):
    """Live-data sync settings."""

    model_config = ConfigDict(frozen=True)

    stale_after_minutes: int = 30


class FrostConfig(BaseModel):
    """Frost exposure tracker and clock settings."""

    model_config = ConfigDict(frozen=True)

    reset_temp_f: float = 32.0
    tick_seconds: float = 1.0
    sync_interval_minutes: int = 15


class NewsConfig(BaseModel):
    """Headline feed settings."""

    model_config = ConfigDict(frozen=True)

    hurricane_feed_url: str = (
        "https://news.google.com/rss/search?q=hurricane+florida+OR+orange+juice"
        "+weather+when:7d&hl=en-US&gl=US&ceid=US:en"
    )
    weather_feed_url: str = (
        "https://news.google.com/rss/search?q=florida+freeze+OR+citrus+frost"
        "+OR+orange+juice+weather+when:7d&hl=en-US&gl=US&ceid=US:en"
    )
    limit: int = 20
    timeout_seconds: float = 15.0


class OutputConfig(BaseModel):
    """Filesystem paths for generated reports."""

    model_config = ConfigDict(frozen=True)

    blueprint_dir: str = "data/outputs/blueprints"


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/citrus_signal.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    Every CLI command receives an ``AppConfig`` instance built by
    ``load_config()``, which merges TOML + .env + environment.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    rules: RulesConfig = RulesConfig()
    weather: WeatherConfig = WeatherConfig()
    price: PriceConfig = PriceConfig()
    sync: SyncConfig = SyncConfig()
    frost: FrostConfig = FrostConfig()
    news: NewsConfig = NewsConfig()
    output: OutputConfig = OutputConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

# (env var, section or None for top level, field, converter)
_ENV_OVERRIDES: tuple[tuple[str, Optional[str], str, Callable[[str], Any]], ...] = (
    ("CITRUS_SIGNAL_DB_PATH", "database", "db_path", str),
    ("CITRUS_SIGNAL_LOG_LEVEL", "logging", "level", str),
    ("CITRUS_SIGNAL_RULES_FILE", "rules", "rules_file", str),
    ("CITRUS_SIGNAL_DEBUG", None, "debug", lambda v: v.lower() in ("1", "true", "yes")),
)


def _find_project_root() -> Path:
    """Return the nearest ancestor of this package holding ``pyproject.toml``.

    Falls back to the package's parent directory when running from a tree
    without packaging metadata.
    """
    here = Path(__file__).resolve().parent
    for candidate in (here, *here.parents[:4]):
        if (candidate / "pyproject.toml").exists():
            return candidate
    return here.parent


def resolve_project_path(path: str) -> Path:
    """Resolve a config-relative path against the project root.

    Absolute paths are returned unchanged.
    """
    p = Path(path)
    return p if p.is_absolute() else _find_project_root() / p


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fh:
        return tomllib.load(fh)


def _merge(base: dict[str, Any], extra: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``extra`` layered on top, table by table."""
    merged = dict(base)
    for key, value in extra.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge(current, value)
        else:
            merged[key] = value
    return merged


def _env_layer() -> dict[str, Any]:
    """Collect ``CITRUS_SIGNAL_*`` overrides into a raw-config shaped dict."""
    layer: dict[str, Any] = {}
    for var, section, field, convert in _ENV_OVERRIDES:
        value = os.environ.get(var)
        if not value:
            continue
        target = layer if section is None else layer.setdefault(section, {})
        target[field] = convert(value)
    return layer


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Layers, lowest precedence first: the TOML file (``config/default.toml``
    unless ``config_path`` is given), a ``local.toml`` next to it, then
    ``CITRUS_SIGNAL_*`` variables from the environment or the project
    ``.env`` file. Variables already in the environment win over ``.env``.

    Raises:
        FileNotFoundError: If the TOML file does not exist.
        pydantic.ValidationError: If a merged value fails validation.
    """
    root = _find_project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else root / "config" / "default.toml"
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Create config/default.toml or pass --config."
        )

    raw = _read_toml(path)
    local = path.parent / "local.toml"
    if local.exists():
        raw = _merge(raw, _read_toml(local))
    raw = _merge(raw, _env_layer())

    # ``[project] debug`` is the TOML spelling; a top-level ``debug`` wins.
    project = raw.pop("project", {})
    raw.setdefault("debug", project.get("debug", False))
    return AppConfig.model_validate(raw)
