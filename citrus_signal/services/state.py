"""
DashboardState — the single owner of the current parameter set.

Every mutation of the parameters goes through ``_commit()``:

    1. build the new frozen ``ParameterSet`` (validated)
    2. persist it under ``parameters``
    3. recompute the signal with ``evaluate()``
    4. persist a display snapshot under ``last_signal``

Because the whole set is replaced in one step, a sync's temperature update
is always visible to the very next evaluation, and no reader ever sees a
half-applied change.

Three writers feed it, each restricted to its own fields:

  - the operator (``set_manual``)     — inventory, toggles, rainfall, month
  - the live sync (``apply_snapshot``) — temperature and RSI, via ``reconcile``
  - the frost clock (``set_hours_below``) — ``hours_below_28``
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from citrus_signal.db.repositories.kv_repo import KEY_LAST_SIGNAL, KEY_PARAMETERS
from citrus_signal.engine.evaluator import evaluate
from citrus_signal.engine.reconciler import LiveSnapshot, SyncOutcome, reconcile
from citrus_signal.models.parameters import MANUAL_FIELDS, ParameterSet
from citrus_signal.models.signal import SignalResult
from citrus_signal.rules import DEFAULT_RULES, MarketRules
from citrus_signal.utils.time_utils import format_iso_utc, utcnow

logger = logging.getLogger(__name__)


class DashboardState:
    """Owns the ``parameters`` and ``last_signal`` keys.

    Args:
        store: Key-value store (normally a ``KeyValueRepository``).
        rules: Rule table passed to every evaluation.
    """

    def __init__(self, store: Any, rules: MarketRules = DEFAULT_RULES) -> None:
        self._store = store
        self._rules = rules
        raw = store.get(KEY_PARAMETERS)
        self._params = ParameterSet.model_validate(raw) if raw else ParameterSet()

    @property
    def parameters(self) -> ParameterSet:
        return self._params

    @property
    def rules(self) -> MarketRules:
        return self._rules

    def reload(self) -> ParameterSet:
        """Re-read ``parameters`` from the store (picks up edits made by other processes)."""
        raw = self._store.get(KEY_PARAMETERS)
        if raw:
            self._params = ParameterSet.model_validate(raw)
        return self._params

    def evaluate(self) -> SignalResult:
        """Evaluate the current parameters (pure; nothing is written)."""
        return evaluate(self._params.to_signal_input(), self._rules)

    # ── Writers ───────────────────────────────────────────────────────────────

    def set_manual(self, **changes: Any) -> SignalResult:
        """Apply operator edits to manual-control fields.

        Raises:
            KeyError: If a change names a live or tracker-owned field.
            pydantic.ValidationError: If a value is out of range.
        """
        forbidden = set(changes) - MANUAL_FIELDS
        if forbidden:
            raise KeyError(
                f"Not a manual control: {', '.join(sorted(forbidden))} "
                "(temperature and RSI come from sync, hours from the frost clock)"
            )
        return self._commit(self._params.with_updates(**changes))

    def apply_snapshot(
        self,
        snapshot: LiveSnapshot,
        now: Optional[datetime] = None,
        previous_synced_at: Optional[datetime] = None,
    ) -> SyncOutcome:
        """Reconcile fetched live values into the parameters and re-evaluate.

        The stored set is re-read first: a fetch can take up to the HTTP
        timeout, and manual edits committed by another process in that
        window must survive the write-back.
        """
        self.reload()
        outcome = reconcile(self._params, snapshot, now=now, previous_synced_at=previous_synced_at)
        self._commit(outcome.parameters)
        return outcome

    def set_hours_below(self, hours: float) -> Optional[SignalResult]:
        """Push the frost tracker's duration. No write when unchanged."""
        hours = round(hours, 4)
        if hours == self._params.hours_below_28:
            return None
        return self._commit(self._params.with_updates(hours_below_28=hours))

    def set_temperature(self, temp_f: float) -> SignalResult:
        """Operator override of the temperature when no live feed is available."""
        return self._commit(self._params.with_updates(current_temp=temp_f))

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _commit(self, params: ParameterSet) -> SignalResult:
        self._params = params
        self._store.set(KEY_PARAMETERS, params.model_dump())
        result = self.evaluate()
        self._store.set(KEY_LAST_SIGNAL, signal_snapshot(result))
        logger.debug(
            "Parameters committed: temp=%.1fF hours=%.2f inv=%.1fM rsi=%.0f -> %s (%.2f)",
            params.current_temp,
            params.hours_below_28,
            params.current_inventory,
            params.rsi_value,
            result.recommended_action,
            result.win_probability,
        )
        return result


def signal_snapshot(result: SignalResult, computed_at: Optional[datetime] = None) -> dict:
    """JSON-ready display snapshot of a signal (never read back as input)."""
    payload = result.model_dump(mode="json")
    payload["computed_at"] = format_iso_utc(computed_at or utcnow())
    return payload
