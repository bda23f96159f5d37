"""
Root logger setup for the citrus-signal CLI.

Every command calls ``configure_logging()`` exactly once, right after the
config is loaded. Library modules only ever do
``logger = logging.getLogger(__name__)``.

Log records go to stderr (stdout is reserved for command output, some of
which is JSON) and, when ``[logging] log_file`` is set, to a file. A
relative ``log_file`` is taken relative to the project root, so the daemon
and one-off commands write to the same file regardless of working directory.

With ``json_format = true`` each record is one JSON object per line::

    {"ts": "2026-01-12T06:00:00Z", "level": "WARNING",
     "logger": "citrus_signal.services.sync", "msg": "Weather: HTTP 503"}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from citrus_signal.config import resolve_project_path

if TYPE_CHECKING:
    from citrus_signal.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Loggers that are chatty at INFO (one line per HTTP request).
QUIET_LOGGERS = ("httpx", "httpcore")

_STANDARD_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, including any ``extra=`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict = {
            "ts": created.strftime(TIMESTAMP_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_FIELDS and not key.startswith("_")
        )
        return json.dumps(payload, default=str)


def resolve_log_path(log_file: Optional[str]) -> Optional[Path]:
    """Return the absolute log file path, or ``None`` when file logging is off."""
    if not log_file:
        return None
    return resolve_project_path(log_file)


def configure_logging(config: "LoggingConfig", debug: bool = False) -> None:
    """Replace the root logger's handlers according to ``config``.

    Args:
        config:  The ``[logging]`` section of ``AppConfig``.
        debug:   Force DEBUG level regardless of ``config.level``.
    """
    level = logging.DEBUG if debug else getattr(logging, config.level.upper(), logging.INFO)
    formatter = (
        JsonLineFormatter()
        if config.json_format
        else logging.Formatter(TEXT_FORMAT, datefmt=TIMESTAMP_FORMAT)
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_path = resolve_log_path(config.log_file)
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
