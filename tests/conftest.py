#tests/conftest.py

"""Pytest configuration and fixtures."""

import pytest

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from subdomain_engine.infrastructure.postgres.database import drop_db, get_session_factory, init_db
from subdomain_engine.infrastructure.postgres.repository import (
    PostgresDomainRepository,
    PostgresSubdomainRepository,
)
from subdomain_engine.infrastructure.memory.repository import (
    InMemoryDomainRepository,
    InMemorySubdomainRepository,
)
from subdomain_engine.core.events import RecordingEventEmitter
from subdomain_engine.core.models import Domain, RecordType, SubdomainRecord
from subdomain_engine.lifecycle.orchestrator import SubdomainOrchestrator
from subdomain_engine.registrar.memory import InMemoryRegistrarClient
from subdomain_engine.sweeper.config import SweeperConfig
from subdomain_engine.sweeper.queue import PropagationQueue
from subdomain_engine.sweeper.scheduler import SweeperScheduler
from subdomain_engine.sweeper.sweeper import PropagationSweeper


# ============================================
# DATABASE
# ============================================

@pytest.fixture(scope="function")
def test_engine():
    """In-memory SQLite engine shared across threads."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)

    yield engine

    drop_db(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_session_factory(test_engine):
    """Create session factory for tests."""
    return get_session_factory(test_engine)


@pytest.fixture
def sql_repository(test_session_factory):
    return PostgresSubdomainRepository(session_factory=test_session_factory)


@pytest.fixture
def sql_domains(test_session_factory):
    return PostgresDomainRepository(session_factory=test_session_factory)


# ============================================
# IN-MEMORY COLLABORATORS
# ============================================

@pytest.fixture
def domain():
    return Domain(id=1, name="example.com", status="active")


@pytest.fixture
def domain_repository(domain):
    return InMemoryDomainRepository([domain])


@pytest.fixture
def repository():
    return InMemorySubdomainRepository()


@pytest.fixture
def registrar():
    return InMemoryRegistrarClient()


@pytest.fixture
def events():
    return RecordingEventEmitter()


@pytest.fixture
def queue():
    return PropagationQueue()


@pytest.fixture
def orchestrator(repository, domain_repository, registrar, events, queue):
    return SubdomainOrchestrator(
        repository=repository,
        domain_repository=domain_repository,
        registrar=registrar,
        event_emitter=events,
        enqueue=queue.put,
    )


@pytest.fixture
def sleeps():
    """Collects the pauses the sweeper asked for instead of sleeping."""
    return []


@pytest.fixture
def sweeper(orchestrator, repository, queue, sleeps):
    return PropagationSweeper(
        orchestrator=orchestrator,
        repository=repository,
        config=SweeperConfig(interval_seconds=0.05, batch_limit=50),
        queue=queue,
        sleep=sleeps.append,
    )


@pytest.fixture
def scheduler(sweeper):
    scheduler = SweeperScheduler(sweeper)

    yield scheduler

    scheduler.stop(timeout=5)


@pytest.fixture
def sample_record():
    """A new A record for domain 1."""
    return SubdomainRecord(
        domain_id=1,
        name="www",
        record_type=RecordType.A,
        target_value="203.0.113.10",
        ttl=3600,
    )
