"""
Frost exposure tracker — persisted Idle/Tracking state machine.

Measures continuous time at or below the critical frost temperature
(28°F) across process restarts and raises a one-shot "critical exposure"
alert once the episode reaches the rule table's minimum duration (4h).

Transitions
-----------
    Idle     -> Tracking : temp <= critical (28°F). last_update_time = now.
    Tracking -> Tracking : temp <= reset (32°F). Whole elapsed seconds are
                           credited, the fractional remainder is carried by
                           advancing last_update_time by the credited amount.
                           State persisted on every tick.
    Tracking -> Idle     : temp > reset (32°F). Accumulation zeroed, alert
                           flag cleared.

The 28–32°F band is hysteresis: a brief warming blip above the critical
temperature keeps the episode (and its clock) alive.

Restart
-------
When the stored state says ``is_tracking``, construction immediately credits
``now - last_update_time`` so time spent offline counts.

Alert
-----
Fires exactly once per episode, on the first tick where
``accumulated_seconds / 3600 >= min_duration_hours``. The ``alert_shown``
flag is persisted so a restart does not re-fire it; it clears only when the
tracker returns to Idle (by warming or by ``reset()``).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from citrus_signal.db.repositories.kv_repo import KEY_FROST_TRACKER
from citrus_signal.models.frost import FrostTrackerState
from citrus_signal.rules import DEFAULT_RULES, MarketRules

logger = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_TRACKING = "tracking"

TRANSITION_STARTED = "started"
TRANSITION_RESET = "reset"


@dataclass(frozen=True)
class FrostTickResult:
    """Outcome of one ``update()`` call.

    Attributes:
        state:               ``"idle"`` or ``"tracking"`` after the tick.
        accumulated_seconds: Seconds credited to the current episode.
        alert_triggered:     ``True`` only on the tick that crossed the threshold.
        transition:          ``"started"``, ``"reset"`` or ``None``.
    """

    state:               str
    accumulated_seconds: int
    alert_triggered:     bool = False
    transition:          Optional[str] = None

    @property
    def hours_below(self) -> float:
        return self.accumulated_seconds / 3600.0


class FrostExposureTracker:
    """Single owner of the ``frost_tracker_state`` key.

    Args:
        store:        Key-value store with ``get(key, default)`` / ``set(key, value)``
                      (normally a ``KeyValueRepository``).
        rules:        Rule table supplying the critical temperature and duration.
        reset_temp_f: Temperature above which an episode ends (default 32°F).
        clock:        Callable returning epoch seconds. Injected in tests.
    """

    def __init__(
        self,
        store: Any,
        rules: MarketRules = DEFAULT_RULES,
        reset_temp_f: float = 32.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if reset_temp_f < rules.frost_rule.critical_temp_f:
            raise ValueError(
                f"reset_temp_f ({reset_temp_f}) must not be below the critical "
                f"temperature ({rules.frost_rule.critical_temp_f})."
            )
        self._store = store
        self._rules = rules
        self._reset_temp_f = reset_temp_f
        self._clock = clock
        self._state = self._load()

        if self._state.is_tracking:
            before = self._state.accumulated_seconds
            self._credit(self._clock())
            self._save()
            logger.info(
                "Frost tracker resumed: credited %ds of offline exposure (total %ds).",
                self._state.accumulated_seconds - before,
                self._state.accumulated_seconds,
            )

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def state(self) -> FrostTrackerState:
        return self._state.model_copy()

    @property
    def is_tracking(self) -> bool:
        return self._state.is_tracking

    @property
    def accumulated_seconds(self) -> int:
        return self._state.accumulated_seconds

    @property
    def hours_below(self) -> float:
        """Hours of continuous exposure in the current episode."""
        return self._state.hours

    @property
    def alert_shown(self) -> bool:
        return self._state.alert_shown

    # ── Transitions ───────────────────────────────────────────────────────────

    def update(self, temp_f: float) -> FrostTickResult:
        """Feed one temperature reading (°F) into the state machine."""
        now = self._clock()
        critical = self._rules.frost_rule.critical_temp_f

        if not self._state.is_tracking:
            if temp_f <= critical:
                self._state.is_tracking = True
                self._state.last_update_time = now
                self._save()
                logger.info(
                    "Frost tracking started: %.1fF <= %.1fF.", temp_f, critical
                )
                return self._result(transition=TRANSITION_STARTED)
            return self._result()

        if temp_f > self._reset_temp_f:
            episode = self._state.accumulated_seconds
            self._to_idle(now)
            logger.info(
                "Frost tracking reset: %.1fF > %.1fF after %ds of exposure.",
                temp_f, self._reset_temp_f, episode,
            )
            return self._result(transition=TRANSITION_RESET)

        self._credit(now)
        alert = self._check_alert()
        self._save()
        return self._result(alert_triggered=alert)

    def reset(self) -> FrostTickResult:
        """Operator reset: force Idle with zero exposure, regardless of temperature."""
        self._to_idle(self._clock())
        logger.info("Frost tracker manually reset.")
        return self._result(transition=TRANSITION_RESET)

    # ── Internal helpers ──────────────────────────────────────────────────────

    def _credit(self, now: float) -> None:
        elapsed = now - self._state.last_update_time
        if elapsed < 0:
            # Clock moved backwards; restart the interval without crediting.
            self._state.last_update_time = now
            return
        whole = int(elapsed)
        self._state.accumulated_seconds += whole
        self._state.last_update_time += whole

    def _check_alert(self) -> bool:
        if self._state.alert_shown:
            return False
        if self._state.hours < self._rules.frost_rule.min_duration_hours:
            return False
        self._state.alert_shown = True
        logger.warning(
            "CRITICAL FROST EXPOSURE: %.2fh at or below %.1fF (threshold %.1fh).",
            self._state.hours,
            self._rules.frost_rule.critical_temp_f,
            self._rules.frost_rule.min_duration_hours,
        )
        return True

    def _to_idle(self, now: float) -> None:
        self._state = FrostTrackerState(
            accumulated_seconds=0,
            last_update_time=now,
            is_tracking=False,
            alert_shown=False,
        )
        self._save()

    def _result(
        self,
        alert_triggered: bool = False,
        transition: Optional[str] = None,
    ) -> FrostTickResult:
        return FrostTickResult(
            state=STATE_TRACKING if self._state.is_tracking else STATE_IDLE,
            accumulated_seconds=self._state.accumulated_seconds,
            alert_triggered=alert_triggered,
            transition=transition,
        )

    def _load(self) -> FrostTrackerState:
        raw = self._store.get(KEY_FROST_TRACKER)
        if raw is None:
            return FrostTrackerState()
        return FrostTrackerState.model_validate(raw)

    def _save(self) -> None:
        self._store.set(KEY_FROST_TRACKER, self._state.model_dump())
