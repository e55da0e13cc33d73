#tests/test_integration.py

"""Integration test - full workflow on the SQLAlchemy store."""

import pytest

from subdomain_engine.config import SweeperSettings
from subdomain_engine.container import build_container
from subdomain_engine.core.errors import RegistrarError
from subdomain_engine.core.events import RecordingEventEmitter
from subdomain_engine.core.models import SubdomainStatus, SubdomainUpdate
from subdomain_engine.registrar.memory import InMemoryRegistrarClient


@pytest.fixture
def engine_parts(sql_repository, sql_domains):
    domain = sql_domains.add("example.com")
    events = RecordingEventEmitter()
    container = build_container(
        sweeper_settings=SweeperSettings(autostart=False),
        repository=sql_repository,
        domain_repository=sql_domains,
        registrar=InMemoryRegistrarClient(),
        event_emitter=events,
        sleep=lambda seconds: None,
    )
    return container, domain, events


class TestIntegrationWorkflow:
    """Test complete subdomain workflows."""

    def test_complete_subdomain_lifecycle(self, engine_parts):
        """Test: create -> sweep -> update -> sweep -> delete."""
        container, domain, events = engine_parts
        orchestrator = container.orchestrator

        # 1. Create
        record = orchestrator.create_subdomain(domain.id, "www", "A", "203.0.113.10", 3600)
        assert record.status == SubdomainStatus.ACTIVE

        # 2. Sweep
        summary = container.scheduler.trigger_now()
        assert summary.propagated == 1
        assert container.repository.get(record.id).dns_propagated

        # 3. Update
        updated = orchestrator.update_subdomain(
            domain.id, record.id, SubdomainUpdate(target_value="198.51.100.7")
        )
        assert not updated.dns_propagated

        # 4. Sweep again
        container.scheduler.trigger_now()
        assert container.repository.get(record.id).dns_propagated

        # 5. Delete
        orchestrator.delete_subdomain(domain.id, record.id)

        final = container.repository.get(record.id)
        assert final.status == SubdomainStatus.INACTIVE
        assert not final.is_active
        assert container.registrar.hosts("example.com") == []
        assert events.types() == [
            "subdomain.created",
            "subdomain.activated",
            "subdomain.propagated",
            "subdomain.activated",
            "subdomain.propagated",
            "subdomain.deleted",
        ]

    def test_failed_create_recovered_by_sweeper(self, engine_parts):
        """Test: rejected create -> automatic write retry -> propagation."""
        container, domain, _ = engine_parts
        container.registrar.fail_next("create", "quota exceeded")

        with pytest.raises(RegistrarError):
            container.orchestrator.create_subdomain(domain.id, "api", "A", "203.0.113.11")

        record = container.repository.find_active_by_name(domain.id, "api")
        assert record.status == SubdomainStatus.FAILED

        first = container.scheduler.trigger_now()
        assert first.retry_succeeded == 1

        second = container.scheduler.trigger_now()
        assert second.propagated == 1

        final = container.repository.get(record.id)
        assert final.status == SubdomainStatus.ACTIVE
        assert final.dns_propagated
        assert final.creation_retry_count == 1

    def test_rename_with_failed_create(self, engine_parts):
        """Rename whose create fails ends failed even though the delete went through."""
        container, domain, _ = engine_parts
        record = container.orchestrator.create_subdomain(domain.id, "old", "A", "203.0.113.10")
        container.registrar.fail_next("create", "quota exceeded")

        with pytest.raises(RegistrarError):
            container.orchestrator.update_subdomain(domain.id, record.id, SubdomainUpdate(name="new"))

        stored = container.repository.get(record.id)
        assert stored.status == SubdomainStatus.FAILED
        assert stored.name == "new"
        assert container.registrar.operations() == ["create", "delete", "create"]
