"""Frost clock daemon: ticks the frost tracker and runs periodic live syncs.

No external scheduler library is required; uses stdlib ``time`` and
``signal`` only.

Typical usage via the CLI::

    citrus-signal watch

Or import directly::

    from citrus_signal.scheduler import FrostClockDaemon
    daemon = FrostClockDaemon(tracker, state, sync=sync)
    daemon.start()  # blocks until Ctrl-C

Jobs:
  - **Tick** (every ``tick_seconds``, default 1 s): re-read the parameters,
    feed ``current_temp`` into the tracker, push ``hours_below`` into the
    ``DashboardState`` (which re-evaluates the signal when it changed).
  - **Sync** (every ``sync_interval_minutes``): one live-data sync round.
    Runs immediately on start unless ``skip_initial_sync`` is set.

A failed sync is logged but does not stop the daemon.
"""

from __future__ import annotations

import logging
import platform
import signal
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

from citrus_signal.engine.frost_tracker import FrostExposureTracker, FrostTickResult
from citrus_signal.services.state import DashboardState
from citrus_signal.services.sync import LiveDataSync
from citrus_signal.utils.time_utils import utcnow

log = logging.getLogger(__name__)


class FrostClockDaemon:
    """Drives the frost tracker once per tick and the live sync on an interval.

    Parameters
    ----------
    tracker:
        The frost exposure tracker (owner of ``frost_tracker_state``).
    state:
        The ``DashboardState`` receiving ``hours_below_28``.
    sync:
        Live-data sync service. When *None*, the daemon only ticks the
        tracker against the stored temperature.
    tick_seconds:
        Seconds between tracker ticks. Defaults to ``1.0``.
    sync_interval_minutes:
        Minutes between sync rounds. Defaults to ``15``.
    skip_initial_sync:
        When *True*, wait one full interval before the first sync.
    sleep:
        Sleep function, injected in tests.
    """

    def __init__(
        self,
        tracker: FrostExposureTracker,
        state: DashboardState,
        sync: Optional[LiveDataSync] = None,
        tick_seconds: float = 1.0,
        sync_interval_minutes: int = 15,
        skip_initial_sync: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if tick_seconds <= 0:
            raise ValueError(f"tick_seconds must be positive, got {tick_seconds}.")
        self.tracker = tracker
        self.state = state
        self.sync = sync
        self.tick_seconds = tick_seconds
        self.sync_interval = timedelta(minutes=sync_interval_minutes)
        self.skip_initial_sync = skip_initial_sync
        self._sleep = sleep
        self._running = False
        self.ticks = 0
        self.syncs = 0

    # ── Jobs ──────────────────────────────────────────────────────────────────

    def tick(self) -> FrostTickResult:
        """Advance the tracker with the current temperature."""
        params = self.state.reload()
        result = self.tracker.update(params.current_temp)
        self.state.set_hours_below(result.hours_below)
        if result.alert_triggered:
            log.warning(
                "Frost alert: %.2fh of continuous exposure. Signal now %s.",
                result.hours_below,
                self.state.evaluate().recommended_action,
            )
        self.ticks += 1
        return result

    def run_sync(self) -> bool:
        """Run one sync round. Returns ``True`` when the temperature was updated."""
        if self.sync is None:
            return False
        log.info("=== Sync starting at %s ===", utcnow().isoformat(timespec="seconds"))
        try:
            report = self.sync.run()
        except Exception as exc:
            log.error("Sync failed: %s", exc, exc_info=True)
            return False
        self.syncs += 1
        return report.outcome.succeeded

    def stop(self) -> None:
        self._running = False

    # ── Main loop ─────────────────────────────────────────────────────────────

    def start(self, max_ticks: Optional[int] = None) -> None:
        """Start the daemon. Blocks until Ctrl-C, SIGTERM, or ``max_ticks`` ticks."""
        now = utcnow()
        next_sync: Optional[datetime] = None
        if self.sync is not None:
            next_sync = now + self.sync_interval if self.skip_initial_sync else now

        log.info(
            "Frost clock started.  tick=%.1fs  sync_interval=%s  tracking=%s",
            self.tick_seconds,
            self.sync_interval if self.sync is not None else "off",
            self.tracker.is_tracking,
        )

        self._running = True

        def _shutdown(signum, frame):  # noqa: ANN001
            log.info("Signal %d received; stopping frost clock.", signum)
            self._running = False

        previous_int = signal.signal(signal.SIGINT, _shutdown)
        previous_term = None
        if platform.system() != "Windows":
            previous_term = signal.signal(signal.SIGTERM, _shutdown)

        try:
            while self._running:
                if next_sync is not None and utcnow() >= next_sync:
                    self.run_sync()
                    next_sync = utcnow() + self.sync_interval
                    log.info("Next sync scheduled: %s", next_sync.isoformat(timespec="seconds"))

                self.tick()
                if max_ticks is not None and self.ticks >= max_ticks:
                    break
                self._sleep(self.tick_seconds)
        finally:
            self._running = False
            signal.signal(signal.SIGINT, previous_int)
            if previous_term is not None:
                signal.signal(signal.SIGTERM, previous_term)

        log.info(
            "Frost clock stopped after %d tick(s); exposure %.2fh.",
            self.ticks, self.tracker.hours_below,
        )
