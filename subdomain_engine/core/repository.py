# subdomain_engine/core/repository.py

from abc import ABC, abstractmethod
from typing import Optional, Iterable

from subdomain_engine.core.models import Domain, SubdomainRecord


class SubdomainRepository(ABC):
    """
    Persistence contract for subdomain records.
    """

    @abstractmethod
    def create(self, record: SubdomainRecord) -> SubdomainRecord:
        """
        Persist a new record and return it with its store-assigned id.
        Must raise SubdomainConflictError if (domain_id, name) is
        already taken by an active record.
        """
        raise NotImplementedError

    @abstractmethod
    def get(self, record_id: int) -> Optional[SubdomainRecord]:
        """
        Fetch record by ID (active or not).
        Returns None if not found.
        """
        raise NotImplementedError

    @abstractmethod
    def update(self, record: SubdomainRecord) -> SubdomainRecord:
        """
        Persist updated record state.
        Must enforce optimistic concurrency on `version` and return
        the record carrying its new version.
        """
        raise NotImplementedError

    @abstractmethod
    def find_active_by_name(self, domain_id: int, name: str) -> Optional[SubdomainRecord]:
        """
        Active record holding `name` on the domain, if any.
        """
        raise NotImplementedError

    @abstractmethod
    def list_by_domain(
        self,
        domain_id: int,
        include_inactive: bool = False,
    ) -> Iterable[SubdomainRecord]:
        raise NotImplementedError

    @abstractmethod
    def select_pending_propagation(self, limit: int) -> Iterable[SubdomainRecord]:
        """
        Active records in pending/active state, not yet propagated and
        below the propagation ceiling. Used by the sweeper.
        """
        raise NotImplementedError

    @abstractmethod
    def select_failed_for_retry(self, limit: int) -> Iterable[SubdomainRecord]:
        """
        Active failed records whose registrar write never succeeded and
        that are below the write-retry ceiling. Used by the sweeper.
        """
        raise NotImplementedError


class DomainRepository(ABC):
    """
    Read-only access to parent domains.
    """

    @abstractmethod
    def get(self, domain_id: int) -> Optional[Domain]:
        raise NotImplementedError
