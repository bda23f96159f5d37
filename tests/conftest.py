"""
Shared pytest fixtures for the Citrus Signal test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the schema
    applied. Created anew for each test that requests it.
  - ``kv_store``: A ``KeyValueRepository`` over ``in_memory_db``.
  - ``FakeClock``: A manually advanced epoch-seconds clock for the frost
    tracker.
  - Sample domain object factories for use in multiple test modules.
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from citrus_signal.db.repositories.kv_repo import KeyValueRepository
from citrus_signal.db.schema import apply_schema
from citrus_signal.models.market import MarketContext, SignalInput
from citrus_signal.models.parameters import ParameterSet


# ── Database fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the schema applied.

    Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    apply_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def kv_store(in_memory_db: sqlite3.Connection) -> KeyValueRepository:
    return KeyValueRepository(in_memory_db)


# ── Clock ─────────────────────────────────────────────────────────────────────

class FakeClock:
    """Callable returning a settable epoch-seconds value."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ── Sample domain object factories ────────────────────────────────────────────

@pytest.fixture
def neutral_input() -> SignalInput:
    """Mild weather, neutral inventory, no context flags, RSI 50."""
    return SignalInput(
        current_temp=45.0,
        hours_below_28=0.0,
        current_inventory=50.0,
        market_context=MarketContext(current_month=1),
        rsi_value=50.0,
    )


@pytest.fixture
def frost_input() -> SignalInput:
    """Sustained hard freeze with a critical inventory shortage."""
    return SignalInput(
        current_temp=20.0,
        hours_below_28=5.0,
        current_inventory=30.0,
        market_context=MarketContext(current_month=1),
        rsi_value=50.0,
    )


@pytest.fixture
def sample_parameters() -> ParameterSet:
    """Operator-edited parameter set with inventory and hurricane toggles set."""
    return ParameterSet(
        current_temp=45.0,
        current_inventory=30.0,
        is_hurricane_active=True,
        current_month=1,
        rsi_value=50.0,
    )
