# subdomain_engine/sweeper/sweeper.py
"""Propagation sweeper - drives pending and failed records through the orchestrator."""

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from threading import Lock
from typing import Callable, Iterable, List, Optional

from subdomain_engine.core.models import utcnow
from subdomain_engine.core.repository import SubdomainRepository
from subdomain_engine.lifecycle.orchestrator import (
    CheckOutcome,
    RetryOutcome,
    SubdomainOrchestrator,
)
from subdomain_engine.sweeper.config import SweeperConfig
from subdomain_engine.sweeper.queue import PropagationQueue

logger = logging.getLogger(__name__)


@dataclass
class SweepSummary:
    """Counts for one sweep cycle."""

    attempted: int = 0
    propagated: int = 0
    still_pending: int = 0
    newly_failed: int = 0

    retried: int = 0
    retry_succeeded: int = 0
    retry_exhausted: int = 0

    errors: int = 0

    # True if another cycle was already running and this one did nothing
    skipped: bool = False

    started_at: datetime = field(default_factory=utcnow)
    finished_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return asdict(self)


class PropagationSweeper:
    """
    One sweep cycle at a time.

    Per cycle:
    1. Queued ids (fresh registrar writes) first, then a snapshot of
       records still awaiting propagation; each id is checked at most once
    2. Write retries for failed records, every `retry_every_cycles` cycles
       or when explicitly requested

    Records are handled sequentially with a pause between registrar calls.
    A failure on one record is logged and never aborts the cycle.
    """

    def __init__(
        self,
        orchestrator: SubdomainOrchestrator,
        repository: SubdomainRepository,
        config: Optional[SweeperConfig] = None,
        queue: Optional[PropagationQueue] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._orchestrator = orchestrator
        self._repo = repository
        self.config = config or SweeperConfig()
        self.queue = queue or PropagationQueue()
        self._sleep = sleep

        self._cycle_lock = Lock()
        self._cycle_count = 0
        self.last_cycle_at: Optional[datetime] = None
        self.last_summary: Optional[SweepSummary] = None

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    def enqueue(self, record_id: int) -> None:
        """Ask for a propagation check of `record_id` in the next cycle."""
        self.queue.put(record_id)

    def run_cycle(self, include_retries: Optional[bool] = None) -> SweepSummary:
        """
        Run one cycle, or return a skipped summary if a cycle is already running.

        include_retries=None follows the configured retry cadence.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.info("[sweeper] cycle already in progress, skipping")
            now = utcnow()
            return SweepSummary(skipped=True, started_at=now, finished_at=now)

        try:
            summary = SweepSummary()

            self._sweep_propagation(summary)

            # Manual cycles do not advance the retry cadence
            if include_retries is None:
                self._cycle_count += 1
                every = self.config.retry_every_cycles
                include_retries = every > 0 and self._cycle_count % every == 0

            if include_retries:
                self._sweep_retries(summary)

            summary.finished_at = utcnow()
            self.last_cycle_at = summary.finished_at
            self.last_summary = summary
            self._log_summary(summary)
            return summary

        finally:
            self._cycle_lock.release()

    # -------------------------
    # PROPAGATION
    # -------------------------

    def _propagation_candidates(self) -> List[int]:
        queued = self.queue.drain()
        snapshot = [
            r.id for r in self._repo.select_pending_propagation(self.config.batch_limit)
        ]
        return _unique(queued + snapshot)

    def _sweep_propagation(self, summary: SweepSummary) -> None:
        candidates = self._propagation_candidates()
        if not candidates:
            logger.debug("[sweeper] no records awaiting propagation")
            return

        logger.info(f"[sweeper] checking propagation for {len(candidates)} record(s)")

        first = True
        for record_id in candidates:
            if not first:
                self._pause(self.config.propagation_delay_seconds)

            try:
                outcome = self._orchestrator.check_propagation(record_id)
            except Exception as e:
                summary.errors += 1
                first = False
                logger.error(
                    f"[sweeper] propagation check failed for {record_id}: {e}",
                    exc_info=True,
                )
                continue

            if outcome == CheckOutcome.SKIPPED:
                continue

            first = False
            summary.attempted += 1
            if outcome == CheckOutcome.PROPAGATED:
                summary.propagated += 1
            elif outcome == CheckOutcome.FAILED:
                summary.newly_failed += 1
            else:
                summary.still_pending += 1

    # -------------------------
    # WRITE RETRIES
    # -------------------------

    def _sweep_retries(self, summary: SweepSummary) -> None:
        records = list(self._repo.select_failed_for_retry(self.config.batch_limit))
        if not records:
            logger.debug("[sweeper] no failed records to retry")
            return

        logger.info(f"[sweeper] retrying {len(records)} failed write(s)")

        first = True
        for record in records:
            if not first:
                self._pause(self.config.retry_delay_seconds)

            try:
                outcome = self._orchestrator.retry_write(record.id)
            except Exception as e:
                summary.errors += 1
                first = False
                logger.error(
                    f"[sweeper] write retry failed for {record.id}: {e}",
                    exc_info=True,
                )
                continue

            if outcome == RetryOutcome.SKIPPED:
                continue

            first = False
            summary.retried += 1
            if outcome == RetryOutcome.SUCCEEDED:
                summary.retry_succeeded += 1
            elif outcome == RetryOutcome.EXHAUSTED:
                summary.retry_exhausted += 1

    # -------------------------
    # HELPERS
    # -------------------------

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)

    def _log_summary(self, summary: SweepSummary) -> None:
        if summary.attempted == 0 and summary.retried == 0 and summary.errors == 0:
            logger.debug("[sweeper] cycle finished, nothing to do")
            return

        logger.info(
            f"[sweeper] ✅ cycle done: attempted={summary.attempted} "
            f"propagated={summary.propagated} pending={summary.still_pending} "
            f"failed={summary.newly_failed} retried={summary.retried} "
            f"retry_ok={summary.retry_succeeded} errors={summary.errors}"
        )


def _unique(ids: Iterable[int]) -> List[int]:
    seen = set()
    result = []
    for record_id in ids:
        if record_id not in seen:
            seen.add(record_id)
            result.append(record_id)
    return result
