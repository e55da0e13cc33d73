"""Quick verification script."""

from sqlalchemy import text

from subdomain_engine.container import build_container
from subdomain_engine.core.models import SubdomainStatus
from subdomain_engine.infrastructure.postgres.database import get_engine, init_db
from subdomain_engine.infrastructure.postgres.repository import (
    PostgresDomainRepository,
    PostgresSubdomainRepository,
)
from subdomain_engine.registrar.memory import InMemoryRegistrarClient


def main():
    print("🔍 Verifying Subdomain Engine Setup...")
    print()

    # 1. Database connection
    print("✓ Testing database connection...")
    with get_engine().connect() as conn:
        result = conn.execute(text("SELECT 1"))
        print(f"  Connected: {result.scalar() == 1}")
    init_db()
    print()

    # 2. Wiring (registrar kept in memory so no real DNS changes are made)
    print("✓ Building container...")
    domains = PostgresDomainRepository()
    container = build_container(
        repository=PostgresSubdomainRepository(),
        domain_repository=domains,
        registrar=InMemoryRegistrarClient(),
        sleep=lambda seconds: None,
    )
    domain = domains.add(f"verify-{id(container)}.test")
    print(f"  Domain: {domain.name} (id={domain.id})")
    print()

    # 3. Create
    print("✓ Testing create...")
    record = container.orchestrator.create_subdomain(domain.id, "www", "A", "203.0.113.10")
    assert record.status == SubdomainStatus.ACTIVE
    assert record.dns_created
    print(f"  Created {record.fqdn(domain.name)} -> {record.target_value}")
    print()

    # 4. Sweep
    print("✓ Testing sweep...")
    summary = container.scheduler.trigger_now()
    print(f"  Summary: attempted={summary.attempted} propagated={summary.propagated}")
    final = container.repository.get(record.id)
    assert final.dns_propagated
    print()

    # 5. Delete
    print("✓ Testing delete...")
    container.orchestrator.delete_subdomain(domain.id, record.id)
    assert container.repository.get(record.id).status == SubdomainStatus.INACTIVE
    print("  Deleted")
    print()

    print("🎉 All checks passed!")


if __name__ == "__main__":
    main()
