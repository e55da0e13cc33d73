"""Test record store implementations (SQLAlchemy on SQLite, and in-memory)."""

from datetime import timedelta

import pytest

from subdomain_engine.core.errors import StoreConcurrencyError, SubdomainConflictError
from subdomain_engine.core.models import (
    CREATION_MAX_RETRIES,
    PROPAGATION_MAX_ATTEMPTS,
    RecordType,
    SubdomainRecord,
    SubdomainStatus,
)
from subdomain_engine.infrastructure.memory.repository import (
    InMemoryDomainRepository,
    InMemorySubdomainRepository,
)


@pytest.fixture(params=["sql", "memory"])
def stores(request):
    """(subdomain store, domain store) pair with domain 'example.com' registered."""
    if request.param == "sql":
        repo = request.getfixturevalue("sql_repository")
        domains = request.getfixturevalue("sql_domains")
    else:
        repo = InMemorySubdomainRepository()
        domains = InMemoryDomainRepository()
    domains.add("example.com")
    return repo, domains


def _record(name="www", **overrides):
    fields = dict(
        domain_id=1,
        name=name,
        record_type=RecordType.A,
        target_value="203.0.113.10",
        ttl=3600,
    )
    fields.update(overrides)
    return SubdomainRecord(**fields)


class TestSubdomainStore:
    """Test store operations."""

    # -------------------------
    # CREATE TESTS
    # -------------------------

    def test_create_assigns_id(self, stores):
        repo, _ = stores

        created = repo.create(_record())

        assert created.id is not None
        retrieved = repo.get(created.id)
        assert retrieved.name == "www"
        assert retrieved.record_type == RecordType.A
        assert retrieved.status == SubdomainStatus.PENDING
        assert retrieved.created_at.tzinfo is not None

    def test_duplicate_active_name_conflicts(self, stores):
        repo, _ = stores
        repo.create(_record())

        with pytest.raises(SubdomainConflictError):
            repo.create(_record())

    def test_name_reusable_after_deactivation(self, stores):
        repo, _ = stores
        first = repo.create(_record())
        first.deactivate()
        repo.update(first)

        second = repo.create(_record())

        assert second.id != first.id

    # -------------------------
    # READ TESTS
    # -------------------------

    def test_get_nonexistent(self, stores):
        repo, _ = stores
        assert repo.get(999) is None

    def test_find_active_by_name(self, stores):
        repo, _ = stores
        created = repo.create(_record())

        assert repo.find_active_by_name(1, "www").id == created.id
        assert repo.find_active_by_name(1, "api") is None

    def test_list_by_domain(self, stores):
        repo, _ = stores
        repo.create(_record("www"))
        api = repo.create(_record("api"))
        api.deactivate()
        repo.update(api)

        assert [r.name for r in repo.list_by_domain(1)] == ["www"]
        assert [r.name for r in repo.list_by_domain(1, include_inactive=True)] == ["api", "www"]

    # -------------------------
    # SWEEPER SELECTION TESTS
    # -------------------------

    def test_select_pending_propagation(self, stores):
        repo, _ = stores
        pending = repo.create(_record("pending"))

        active = repo.create(_record("active"))
        active.mark_write_succeeded()
        repo.update(active)

        done = repo.create(_record("done"))
        done.mark_propagated()
        repo.update(done)

        exhausted = repo.create(_record("exhausted"))
        exhausted.mark_write_succeeded()
        for _ in range(PROPAGATION_MAX_ATTEMPTS):
            exhausted.record_propagation_miss()
        repo.update(exhausted)

        selected = {r.id for r in repo.select_pending_propagation(10)}

        assert selected == {pending.id, active.id}

    def test_select_pending_respects_limit_and_order(self, stores):
        repo, _ = stores
        older = repo.create(_record("older"))
        newer = repo.create(_record("newer"))
        newer.updated_at = older.updated_at + timedelta(seconds=5)
        repo.update(newer)

        selected = list(repo.select_pending_propagation(1))

        assert [r.id for r in selected] == [older.id]

    def test_select_failed_for_retry(self, stores):
        repo, _ = stores
        failed = repo.create(_record("failed"))
        failed.mark_write_failed("rejected")
        repo.update(failed)

        exhausted = repo.create(_record("exhausted"))
        exhausted.mark_write_failed("rejected")
        exhausted.creation_retry_count = CREATION_MAX_RETRIES
        repo.update(exhausted)

        timed_out = repo.create(_record("timedout"))
        timed_out.mark_write_succeeded()
        for _ in range(PROPAGATION_MAX_ATTEMPTS):
            timed_out.record_propagation_miss()
        repo.update(timed_out)

        selected = [r.id for r in repo.select_failed_for_retry(10)]

        assert selected == [failed.id]

    # -------------------------
    # UPDATE TESTS
    # -------------------------

    def test_update_bumps_version(self, stores):
        repo, _ = stores
        record = repo.create(_record())

        record.mark_write_succeeded()
        updated = repo.update(record)

        assert updated.version == 1
        stored = repo.get(record.id)
        assert stored.version == 1
        assert stored.status == SubdomainStatus.ACTIVE
        assert stored.dns_created

    def test_update_optimistic_locking(self, stores):
        """A stale copy cannot overwrite a newer row."""
        repo, _ = stores
        record = repo.create(_record())
        stale = repo.get(record.id)

        record.mark_write_succeeded()
        repo.update(record)

        stale.mark_write_failed("late")
        with pytest.raises(StoreConcurrencyError):
            repo.update(stale)

        assert repo.get(record.id).status == SubdomainStatus.ACTIVE

    def test_rename_onto_active_name_conflicts(self, stores):
        repo, _ = stores
        repo.create(_record("www"))
        api = repo.create(_record("api"))

        api.name = "www"
        with pytest.raises(SubdomainConflictError):
            repo.update(api)


class TestDomainStore:
    def test_get_domain(self, stores):
        _, domains = stores

        domain = domains.get(1)

        assert domain.name == "example.com"
        assert domain.is_manageable()

    def test_unknown_domain(self, stores):
        _, domains = stores
        assert domains.get(42) is None
