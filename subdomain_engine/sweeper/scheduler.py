# subdomain_engine/sweeper/scheduler.py
"""Runs sweep cycles on a fixed interval in a background thread."""

import logging
import threading
import time
from typing import Any, Dict, Optional

from subdomain_engine.sweeper.sweeper import PropagationSweeper, SweepSummary

logger = logging.getLogger(__name__)


class SweeperScheduler:
    """
    Start/stop control around a PropagationSweeper.

    - start() runs one cycle right away, then one every `interval_seconds`
      measured from cycle start; a long cycle delays the next, never overlaps it
    - stop() prevents new cycles; an in-flight cycle finishes
    - trigger_now() runs a cycle in the caller's thread
    """

    def __init__(self, sweeper: PropagationSweeper, interval_seconds: Optional[float] = None):
        self.sweeper = sweeper
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None
            else sweeper.config.interval_seconds
        )

        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self) -> bool:
        """Returns False if already running."""
        with self._state_lock:
            if self._thread is not None:
                return False

            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(self._stop_event,),
                name="dns-sweeper",
                daemon=True,
            )
            self._thread.start()

        logger.info(f"[scheduler] 🚀 sweeper started (interval {self.interval_seconds}s)")
        return True

    def stop(self, timeout: Optional[float] = None) -> bool:
        """Returns False if not running. Waits for an in-flight cycle."""
        with self._state_lock:
            thread = self._thread
            if thread is None:
                return False
            self._stop_event.set()
            self._thread = None

        if thread is not threading.current_thread():
            thread.join(timeout)

        logger.info("[scheduler] sweeper stopped")
        return True

    def trigger_now(self, include_retries: bool = True) -> SweepSummary:
        """Out-of-band cycle; does not move the schedule."""
        logger.info("[scheduler] manual sweep requested")
        return self.sweeper.run_cycle(include_retries=include_retries)

    def status(self) -> Dict[str, Any]:
        summary = self.sweeper.last_summary
        return {
            "running": self.running,
            "last_cycle_at": self.sweeper.last_cycle_at,
            "interval_seconds": self.interval_seconds,
            "cycle_in_progress": self.sweeper.cycle_in_progress,
            "last_summary": summary.to_dict() if summary else None,
        }

    def _run_loop(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            started = time.monotonic()

            try:
                self.sweeper.run_cycle()
            except Exception as e:
                logger.error(f"[scheduler] error in sweep cycle: {e}", exc_info=True)

            elapsed = time.monotonic() - started
            if stop_event.wait(max(0.0, self.interval_seconds - elapsed)):
                break
