#subdomain_engine/container.py

"""Composition root - wires stores, registrar, orchestrator and sweeper together."""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from subdomain_engine.config import RegistrarSettings, SweeperSettings
from subdomain_engine.core.events import EventEmitter, LoggingEventEmitter, MultiEventEmitter
from subdomain_engine.core.repository import DomainRepository, SubdomainRepository
from subdomain_engine.lifecycle.locks import RecordLockRegistry
from subdomain_engine.lifecycle.orchestrator import SubdomainOrchestrator
from subdomain_engine.registrar.client import RegistrarClient
from subdomain_engine.registrar.memory import InMemoryRegistrarClient
from subdomain_engine.registrar.namecheap import NamecheapRegistrarClient
from subdomain_engine.sweeper.config import SweeperConfig
from subdomain_engine.sweeper.queue import PropagationQueue
from subdomain_engine.sweeper.scheduler import SweeperScheduler
from subdomain_engine.sweeper.sweeper import PropagationSweeper


@dataclass
class Container:
    repository: SubdomainRepository
    domain_repository: DomainRepository
    registrar: RegistrarClient
    orchestrator: SubdomainOrchestrator
    sweeper: PropagationSweeper
    scheduler: SweeperScheduler
    settings: SweeperSettings


# ============================================
# REGISTRAR
# ============================================

def build_registrar(settings: RegistrarSettings) -> RegistrarClient:
    if settings.backend == "memory":
        return InMemoryRegistrarClient()

    return NamecheapRegistrarClient(
        api_user=settings.api_user,
        api_key=settings.api_key,
        client_ip=settings.client_ip,
        username=settings.username,
        sandbox=settings.sandbox,
        mutation_timeout=settings.mutation_timeout,
        lookup_timeout=settings.lookup_timeout,
    )


# ============================================
# CONTAINER
# ============================================

def build_container(
    *,
    registrar_settings: Optional[RegistrarSettings] = None,
    sweeper_settings: Optional[SweeperSettings] = None,
    repository: Optional[SubdomainRepository] = None,
    domain_repository: Optional[DomainRepository] = None,
    registrar: Optional[RegistrarClient] = None,
    event_emitter: Optional[EventEmitter] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Container:
    """
    Build one fully wired engine.

    Anything not passed in is built from environment settings; stores
    default to PostgreSQL.
    """
    sweeper_settings = sweeper_settings or SweeperSettings()

    if repository is None or domain_repository is None:
        # Deferred so in-memory setups never touch the database layer
        from subdomain_engine.infrastructure.postgres.repository import (
            PostgresDomainRepository,
            PostgresSubdomainRepository,
        )
        repository = repository or PostgresSubdomainRepository()
        domain_repository = domain_repository or PostgresDomainRepository()

    if registrar is None:
        registrar = build_registrar(registrar_settings or RegistrarSettings())

    emitters = event_emitter or MultiEventEmitter([
        LoggingEventEmitter()
    ])

    queue = PropagationQueue()

    orchestrator = SubdomainOrchestrator(
        repository=repository,
        domain_repository=domain_repository,
        registrar=registrar,
        event_emitter=emitters,
        locks=RecordLockRegistry(),
        enqueue=queue.put,
    )

    sweeper = PropagationSweeper(
        orchestrator=orchestrator,
        repository=repository,
        config=SweeperConfig.from_settings(sweeper_settings),
        queue=queue,
        sleep=sleep,
    )

    scheduler = SweeperScheduler(sweeper)

    return Container(
        repository=repository,
        domain_repository=domain_repository,
        registrar=registrar,
        orchestrator=orchestrator,
        sweeper=sweeper,
        scheduler=scheduler,
        settings=sweeper_settings,
    )
