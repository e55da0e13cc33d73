#subdomain_engine/infrastructure/postgres/repository.py

"""PostgreSQL repository implementation using SQLAlchemy."""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from subdomain_engine.core.repository import DomainRepository, SubdomainRepository
from subdomain_engine.core.models import (
    CREATION_MAX_RETRIES,
    PROPAGATION_MAX_ATTEMPTS,
    Domain,
    SubdomainRecord,
    SubdomainStatus,
)
from subdomain_engine.core.errors import (
    StoreConcurrencyError,
    StoreError,
    SubdomainConflictError,
)
from subdomain_engine.infrastructure.postgres.database import get_session_factory
from subdomain_engine.infrastructure.postgres.models import DomainORM, SubdomainORM

logger = logging.getLogger(__name__)


# ============================================
# Mapping Functions
# ============================================

def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def orm_to_domain(orm: SubdomainORM) -> SubdomainRecord:
    """Convert ORM model to domain model."""
    return SubdomainRecord(
        id=orm.id,
        domain_id=orm.domain_id,
        name=orm.name,
        record_type=orm.record_type,
        target_value=orm.target_value,
        ttl=orm.ttl,
        priority=orm.priority,
        port=orm.port,
        weight=orm.weight,
        status=orm.status,
        is_active=orm.is_active,
        dns_created=orm.dns_created,
        dns_propagated=orm.dns_propagated,
        dns_error=orm.dns_error,
        last_checked=_aware(orm.last_checked),
        retry_count=orm.retry_count,
        creation_retry_count=orm.creation_retry_count,
        previous_target_value=orm.previous_target_value,
        created_at=_aware(orm.created_at),
        updated_at=_aware(orm.updated_at),
        version=orm.version,
    )


def domain_to_orm(record: SubdomainRecord) -> SubdomainORM:
    """Convert domain model to ORM model."""
    return SubdomainORM(
        domain_id=record.domain_id,
        name=record.name,
        record_type=record.record_type,
        target_value=record.target_value,
        ttl=record.ttl,
        priority=record.priority,
        port=record.port,
        weight=record.weight,
        status=record.status,
        is_active=record.is_active,
        dns_created=record.dns_created,
        dns_propagated=record.dns_propagated,
        dns_error=record.dns_error,
        last_checked=record.last_checked,
        retry_count=record.retry_count,
        creation_retry_count=record.creation_retry_count,
        previous_target_value=record.previous_target_value,
        created_at=record.created_at,
        updated_at=record.updated_at,
        version=record.version,
    )


# Fields an update may change (identity and created_at are fixed)
MUTABLE_FIELDS = (
    "name",
    "record_type",
    "target_value",
    "ttl",
    "priority",
    "port",
    "weight",
    "status",
    "is_active",
    "dns_created",
    "dns_propagated",
    "dns_error",
    "last_checked",
    "retry_count",
    "creation_retry_count",
    "previous_target_value",
    "updated_at",
)


# ============================================
# Repository Implementation
# ============================================

class PostgresSubdomainRepository(SubdomainRepository):
    """PostgreSQL implementation using SQLAlchemy with dependency injection."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        """
        Initialize repository with optional session factory.

        Args:
            session_factory: SQLAlchemy session factory. If None, uses default production factory.
        """
        self._session_factory = session_factory or get_session_factory()

    def _get_session(self) -> Session:
        """Get new session from the injected factory."""
        return self._session_factory()

    # -------------------------
    # CREATE
    # -------------------------

    def create(self, record: SubdomainRecord) -> SubdomainRecord:
        """Insert a new record; the store assigns the id."""
        session = self._get_session()
        try:
            orm = domain_to_orm(record)
            session.add(orm)
            session.commit()
            logger.debug(f"[store] create {record.name} (domain {record.domain_id}) -> id {orm.id}")
            return orm_to_domain(orm)
        except IntegrityError as e:
            session.rollback()
            raise SubdomainConflictError(
                f"Subdomain '{record.name}' already exists for this domain"
            ) from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Failed to create subdomain: {e}") from e
        finally:
            session.close()

    # -------------------------
    # READ
    # -------------------------

    def get(self, record_id: int) -> Optional[SubdomainRecord]:
        session = self._get_session()
        try:
            orm = session.get(SubdomainORM, record_id)
            return orm_to_domain(orm) if orm is not None else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load subdomain {record_id}: {e}") from e
        finally:
            session.close()

    def find_active_by_name(self, domain_id: int, name: str) -> Optional[SubdomainRecord]:
        session = self._get_session()
        try:
            orm = session.query(SubdomainORM).filter(
                and_(
                    SubdomainORM.domain_id == domain_id,
                    SubdomainORM.name == name,
                    SubdomainORM.is_active.is_(True),
                )
            ).first()
            return orm_to_domain(orm) if orm is not None else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to look up subdomain '{name}': {e}") from e
        finally:
            session.close()

    def list_by_domain(self, domain_id: int, include_inactive: bool = False) -> Iterable[SubdomainRecord]:
        session = self._get_session()
        try:
            query = session.query(SubdomainORM).filter(SubdomainORM.domain_id == domain_id)
            if not include_inactive:
                query = query.filter(SubdomainORM.is_active.is_(True))
            results = query.order_by(SubdomainORM.name.asc(), SubdomainORM.id.asc()).all()
            return [orm_to_domain(orm) for orm in results]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to list subdomains for domain {domain_id}: {e}") from e
        finally:
            session.close()

    # -------------------------
    # SWEEPER SELECTIONS
    # -------------------------

    def select_pending_propagation(self, limit: int) -> Iterable[SubdomainRecord]:
        session = self._get_session()
        try:
            results = session.query(SubdomainORM).filter(
                and_(
                    SubdomainORM.is_active.is_(True),
                    SubdomainORM.status.in_([SubdomainStatus.PENDING, SubdomainStatus.ACTIVE]),
                    SubdomainORM.dns_propagated.is_(False),
                    SubdomainORM.retry_count < PROPAGATION_MAX_ATTEMPTS,
                )
            ).order_by(
                SubdomainORM.updated_at.asc(),
                SubdomainORM.id.asc(),
            ).limit(limit).all()

            logger.debug(f"[store] select_pending_propagation -> {len(results)} rows")
            return [orm_to_domain(orm) for orm in results]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to select pending propagation: {e}") from e
        finally:
            session.close()

    def select_failed_for_retry(self, limit: int) -> Iterable[SubdomainRecord]:
        session = self._get_session()
        try:
            results = session.query(SubdomainORM).filter(
                and_(
                    SubdomainORM.is_active.is_(True),
                    SubdomainORM.status == SubdomainStatus.FAILED,
                    SubdomainORM.dns_created.is_(False),
                    SubdomainORM.creation_retry_count < CREATION_MAX_RETRIES,
                )
            ).order_by(
                SubdomainORM.updated_at.asc(),
                SubdomainORM.id.asc(),
            ).limit(limit).all()

            logger.debug(f"[store] select_failed_for_retry -> {len(results)} rows")
            return [orm_to_domain(orm) for orm in results]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to select failed records: {e}") from e
        finally:
            session.close()

    # -------------------------
    # UPDATE
    # -------------------------

    def update(self, record: SubdomainRecord) -> SubdomainRecord:
        """Update record with optimistic locking on `version`."""
        session = self._get_session()
        try:
            current = session.query(SubdomainORM).filter(
                and_(
                    SubdomainORM.id == record.id,
                    SubdomainORM.version == record.version,
                )
            ).with_for_update().first()

            if not current:
                raise StoreConcurrencyError(
                    f"Update failed for subdomain {record.id} - concurrent modification"
                )

            for name in MUTABLE_FIELDS:
                setattr(current, name, getattr(record, name))
            current.version = record.version + 1

            session.commit()
            record.version = current.version
            logger.debug(f"[store] update {record.id} -> v{record.version}")
            return record

        except StoreConcurrencyError:
            session.rollback()
            raise
        except IntegrityError as e:
            session.rollback()
            raise SubdomainConflictError(
                f"Subdomain '{record.name}' already exists for this domain"
            ) from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Update failed: {e}") from e
        finally:
            session.close()


class PostgresDomainRepository(DomainRepository):
    """Read access to the domains table."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or get_session_factory()

    def get(self, domain_id: int) -> Optional[Domain]:
        session = self._session_factory()
        try:
            orm = session.get(DomainORM, domain_id)
            if orm is None:
                return None
            return Domain(id=orm.id, name=orm.full_domain, status=orm.status)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load domain {domain_id}: {e}") from e
        finally:
            session.close()

    def add(self, name: str, status: str = "active") -> Domain:
        """Register a parent domain (seeding and tests)."""
        session = self._session_factory()
        try:
            orm = DomainORM(full_domain=name.lower(), status=status)
            session.add(orm)
            session.commit()
            return Domain(id=orm.id, name=orm.full_domain, status=orm.status)
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(f"Failed to add domain {name}: {e}") from e
        finally:
            session.close()
