"""Test the propagation sweeper and its scheduler."""

import threading
import time

import pytest

from subdomain_engine.core.errors import RegistrarError
from subdomain_engine.core.models import (
    PROPAGATION_MAX_ATTEMPTS,
    SubdomainStatus,
)
from subdomain_engine.sweeper.config import SweeperConfig
from subdomain_engine.sweeper.sweeper import PropagationSweeper


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestSweepCycle:
    """Test a single sweep cycle."""

    def test_happy_path_propagates(self, orchestrator, sweeper, repository):
        record = orchestrator.create_subdomain(1, "www", "A", "203.0.113.10", 3600)

        summary = sweeper.run_cycle()

        assert summary.attempted == 1
        assert summary.propagated == 1
        assert not summary.skipped
        assert repository.get(record.id).dns_propagated
        assert sweeper.last_cycle_at == summary.finished_at

    def test_record_checked_once_per_cycle(self, orchestrator, sweeper, registrar, queue):
        """Queued ids and the snapshot overlap; each record is looked up once."""
        registrar.propagate = False
        record = orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")
        queue.put(record.id)

        summary = sweeper.run_cycle()

        assert summary.attempted == 1
        assert summary.still_pending == 1
        assert registrar.operations().count("lookup") == 1

    def test_pause_between_records(self, orchestrator, sweeper, sleeps):
        for name in ("a", "b", "c"):
            orchestrator.create_subdomain(1, name, "A", "203.0.113.10")

        sweeper.run_cycle(include_retries=False)

        assert sleeps == [1.0, 1.0]

    def test_five_cycles_fail_a_record(self, orchestrator, sweeper, registrar, repository):
        registrar.propagate = False
        record = orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")

        summaries = [sweeper.run_cycle() for _ in range(PROPAGATION_MAX_ATTEMPTS)]

        assert [s.newly_failed for s in summaries] == [0, 0, 0, 0, 1]
        assert repository.get(record.id).status == SubdomainStatus.FAILED
        assert sweeper.run_cycle().attempted == 0

    def test_one_record_failure_does_not_abort_cycle(
        self, orchestrator, sweeper, repository, monkeypatch
    ):
        first = orchestrator.create_subdomain(1, "a", "A", "203.0.113.10")
        second = orchestrator.create_subdomain(1, "b", "A", "203.0.113.11")

        real_check = orchestrator.check_propagation

        def flaky(record_id):
            if record_id == first.id:
                raise RuntimeError("store unavailable")
            return real_check(record_id)

        monkeypatch.setattr(orchestrator, "check_propagation", flaky)

        summary = sweeper.run_cycle()

        assert summary.errors == 1
        assert summary.propagated == 1
        assert repository.get(second.id).dns_propagated

    def test_retries_failed_writes(self, orchestrator, sweeper, registrar, repository, queue):
        registrar.fail_next("create", "quota exceeded")
        with pytest.raises(RegistrarError):
            orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")
        record = repository.find_active_by_name(1, "www")

        summary = sweeper.run_cycle()

        assert summary.retried == 1
        assert summary.retry_succeeded == 1
        assert repository.get(record.id).status == SubdomainStatus.ACTIVE
        assert queue.drain() == [record.id]

    def test_retry_cadence(self, orchestrator, repository, registrar, queue, sleeps):
        sweeper = PropagationSweeper(
            orchestrator=orchestrator,
            repository=repository,
            config=SweeperConfig(retry_every_cycles=2),
            queue=queue,
            sleep=sleeps.append,
        )
        registrar.fail_next("create", "quota exceeded")
        with pytest.raises(RegistrarError):
            orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")

        assert sweeper.run_cycle().retried == 0
        assert sweeper.run_cycle().retried == 1

    def test_manual_cycles_keep_retry_cadence(self, orchestrator, repository, registrar, queue, sleeps):
        sweeper = PropagationSweeper(
            orchestrator=orchestrator,
            repository=repository,
            config=SweeperConfig(retry_every_cycles=2),
            queue=queue,
            sleep=sleeps.append,
        )
        registrar.fail_next("create", "quota exceeded")
        with pytest.raises(RegistrarError):
            orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")

        assert sweeper.run_cycle(include_retries=False).retried == 0
        assert sweeper.run_cycle().retried == 0
        assert sweeper.run_cycle().retried == 1

    def test_forced_retries(self, orchestrator, repository, registrar, queue, sleeps):
        sweeper = PropagationSweeper(
            orchestrator=orchestrator,
            repository=repository,
            config=SweeperConfig(retry_every_cycles=0),
            queue=queue,
            sleep=sleeps.append,
        )
        registrar.fail_next("create", "quota exceeded")
        with pytest.raises(RegistrarError):
            orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")

        assert sweeper.run_cycle().retried == 0
        assert sweeper.run_cycle(include_retries=True).retried == 1

    def test_cycles_do_not_overlap(self, orchestrator, sweeper, registrar):
        """A cycle requested mid-cycle is skipped; the registrar never sees two calls at once."""
        orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")
        registrar.delay = 0.3

        results = []
        background = threading.Thread(target=lambda: results.append(sweeper.run_cycle()))
        background.start()

        assert _wait_for(lambda: sweeper.cycle_in_progress)
        second = sweeper.run_cycle()
        background.join()

        assert second.skipped
        assert second.attempted == 0
        assert results[0].attempted == 1
        assert registrar.max_in_flight == 1


class TestScheduler:
    """Test start/stop/trigger control."""

    def test_start_runs_cycle_immediately(self, orchestrator, scheduler, repository):
        record = orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")

        assert scheduler.start()

        assert _wait_for(lambda: repository.get(record.id).dns_propagated)
        assert _wait_for(lambda: scheduler.status()["last_cycle_at"] is not None)
        assert scheduler.status()["running"]

    def test_start_is_idempotent(self, scheduler):
        assert scheduler.start()
        assert not scheduler.start()

    def test_stop_is_idempotent(self, scheduler):
        assert not scheduler.stop()

        scheduler.start()

        assert scheduler.stop(timeout=5)
        assert not scheduler.stop()
        assert not scheduler.status()["running"]

    def test_recurring_cycles(self, scheduler, sweeper):
        scheduler.start()

        assert _wait_for(lambda: sweeper._cycle_count >= 3)

    def test_stop_lets_in_flight_cycle_finish(self, orchestrator, scheduler, sweeper, registrar, repository):
        record = orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")
        registrar.delay = 0.3

        scheduler.start()
        assert _wait_for(lambda: sweeper.cycle_in_progress)
        scheduler.stop(timeout=5)

        assert not sweeper.cycle_in_progress
        assert repository.get(record.id).dns_propagated

    def test_trigger_now(self, orchestrator, scheduler, repository):
        record = orchestrator.create_subdomain(1, "www", "A", "203.0.113.10")

        summary = scheduler.trigger_now()

        assert summary.propagated == 1
        assert not scheduler.status()["running"]
        assert repository.get(record.id).dns_propagated

    def test_status_shape(self, scheduler):
        scheduler.trigger_now()

        status = scheduler.status()

        assert set(status) == {
            "running", "last_cycle_at", "interval_seconds", "cycle_in_progress", "last_summary",
        }
        assert status["interval_seconds"] == 0.05
        assert status["last_summary"]["skipped"] is False


class TestPropagationQueue:
    def test_put_deduplicates_and_drain_empties(self, queue):
        queue.put(3)
        queue.put(1)
        queue.put(3)

        assert len(queue) == 2
        assert queue.drain() == [3, 1]
        assert len(queue) == 0
