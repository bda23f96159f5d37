"""Tests for utils/logging.py — root handler setup and the JSON line format."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from citrus_signal.config import LoggingConfig, resolve_project_path
from citrus_signal.utils.logging import (
    JsonLineFormatter,
    configure_logging,
    resolve_log_path,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLogPath:
    def test_empty_disables_file_logging(self) -> None:
        assert resolve_log_path("") is None

    def test_relative_path_is_under_project_root(self) -> None:
        assert resolve_log_path("data/logs/x.log") == resolve_project_path("data/logs/x.log")

    def test_absolute_path_unchanged(self, tmp_path: Path) -> None:
        target = tmp_path / "a.log"
        assert resolve_log_path(str(target)) == target


class TestConfigureLogging:
    def test_file_handler_writes_records(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "run.log"
        configure_logging(LoggingConfig(level="INFO", log_file=str(log_file)))

        logging.getLogger("citrus_signal.test").info("frost clock started")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "frost clock started" in log_file.read_text(encoding="utf-8")

    def test_level_from_config(self) -> None:
        configure_logging(LoggingConfig(level="WARNING", log_file=""))
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_debug_overrides_level(self) -> None:
        configure_logging(LoggingConfig(level="ERROR", log_file=""), debug=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_httpx_kept_quiet(self) -> None:
        configure_logging(LoggingConfig(level="DEBUG", log_file=""))
        assert logging.getLogger("httpx").level == logging.WARNING


class TestJsonLineFormatter:
    def test_fields_and_extras(self) -> None:
        record = logging.LogRecord(
            "citrus_signal.services.sync", logging.WARNING, __file__, 1,
            "Weather: HTTP %d", (503,), None,
        )
        record.source = "open_meteo"

        payload = json.loads(JsonLineFormatter().format(record))

        assert payload["level"] == "WARNING"
        assert payload["logger"] == "citrus_signal.services.sync"
        assert payload["msg"] == "Weather: HTTP 503"
        assert payload["source"] == "open_meteo"
        assert payload["ts"].endswith("Z")
