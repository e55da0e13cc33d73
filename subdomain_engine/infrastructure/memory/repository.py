# subdomain_engine/infrastructure/memory/repository.py

from itertools import count
from threading import Lock
from typing import Iterable, Optional

from subdomain_engine.core.repository import DomainRepository, SubdomainRepository
from subdomain_engine.core.models import Domain, SubdomainRecord
from subdomain_engine.core.errors import (
    StoreConcurrencyError,
    SubdomainConflictError,
)


class InMemorySubdomainRepository(SubdomainRepository):
    """Thread-safe dict-backed store. Hands out copies so callers never alias stored rows."""

    def __init__(self):
        self._store: dict[int, SubdomainRecord] = {}
        self._ids = count(1)
        self._lock = Lock()

    def create(self, record: SubdomainRecord) -> SubdomainRecord:
        with self._lock:
            self._assert_name_free(record)
            stored = record.copy()
            stored.id = next(self._ids)
            self._store[stored.id] = stored
            return stored.copy()

    def get(self, record_id: int) -> Optional[SubdomainRecord]:
        with self._lock:
            stored = self._store.get(record_id)
            return stored.copy() if stored else None

    def find_active_by_name(self, domain_id: int, name: str) -> Optional[SubdomainRecord]:
        with self._lock:
            for r in self._store.values():
                if r.is_active and r.domain_id == domain_id and r.name == name:
                    return r.copy()
            return None

    def list_by_domain(self, domain_id: int, include_inactive: bool = False) -> Iterable[SubdomainRecord]:
        with self._lock:
            results = [
                r.copy() for r in self._store.values()
                if r.domain_id == domain_id and (include_inactive or r.is_active)
            ]
        return sorted(results, key=lambda r: (r.name, r.id))

    def select_pending_propagation(self, limit: int = 100) -> Iterable[SubdomainRecord]:
        return self._select(lambda r: r.needs_propagation_check(), limit)

    def select_failed_for_retry(self, limit: int = 100) -> Iterable[SubdomainRecord]:
        return self._select(lambda r: r.can_retry_write(), limit)

    def update(self, record: SubdomainRecord) -> SubdomainRecord:
        with self._lock:
            stored = self._store.get(record.id)
            if not stored:
                raise StoreConcurrencyError(f"Subdomain {record.id} not found")

            if stored.version != record.version:
                raise StoreConcurrencyError(
                    f"Update failed for subdomain {record.id} - concurrent modification"
                )

            if record.is_active:
                self._assert_name_free(record)

            record.version += 1
            self._store[record.id] = record.copy()
            return record

    def _select(self, predicate, limit: int) -> list:
        with self._lock:
            matches = [r for r in self._store.values() if predicate(r)]
        matches.sort(key=lambda r: (r.updated_at, r.id))
        return [r.copy() for r in matches[:limit]]

    def _assert_name_free(self, record: SubdomainRecord) -> None:
        for other in self._store.values():
            if (
                other.is_active
                and other.id != record.id
                and other.domain_id == record.domain_id
                and other.name == record.name
            ):
                raise SubdomainConflictError(
                    f"Subdomain '{record.name}' already exists for this domain"
                )


class InMemoryDomainRepository(DomainRepository):
    def __init__(self, domains: Iterable[Domain] = ()):
        self._domains: dict[int, Domain] = {d.id: d for d in domains}
        self._ids = count(max(self._domains, default=0) + 1)
        self._lock = Lock()

    def get(self, domain_id: int) -> Optional[Domain]:
        return self._domains.get(domain_id)

    def add(self, name: str, status: str = "active") -> Domain:
        with self._lock:
            domain = Domain(id=next(self._ids), name=name.lower(), status=status)
            self._domains[domain.id] = domain
            return domain
