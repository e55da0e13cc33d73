#subdomain_engine/infrastructure/postgres/models.py
"""SQLAlchemy ORM models for database tables."""

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Column, DateTime, Enum as SQLEnum,
    ForeignKey, Index, Integer, String, Text, text,
)

from subdomain_engine.core.models import MAX_TARGET_LENGTH, RecordType, SubdomainStatus
from subdomain_engine.infrastructure.postgres.database import Base


# BIGSERIAL on PostgreSQL, INTEGER PRIMARY KEY (rowid alias) on SQLite
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class DomainORM(Base):
    """
    Parent domains. Owned by the purchase flow; this engine only reads them.
    """

    __tablename__ = "domains"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    full_domain = Column(String(255), nullable=False, unique=True)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def __repr__(self) -> str:
        return f"<DomainORM(id={self.id}, full_domain={self.full_domain}, status={self.status})>"


class SubdomainORM(Base):
    """
    Subdomain DNS records and their lifecycle fields.

    Indexes:
    - Partial unique index on (domain_id, name) among active rows
    - Partial index for the propagation sweep
    - Partial index for the write-retry sweep
    """

    __tablename__ = "subdomains"

    # Primary key
    id = Column(BigIntPK, primary_key=True, autoincrement=True)

    # Identity
    domain_id = Column(
        BigIntPK,
        ForeignKey("domains.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(63), nullable=False)
    record_type = Column(
        SQLEnum(RecordType, name="dns_record_type", values_callable=_enum_values),
        nullable=False,
    )

    # Value
    target_value = Column(String(MAX_TARGET_LENGTH), nullable=False)
    ttl = Column(Integer, nullable=False, default=3600)
    priority = Column(Integer, nullable=True)
    port = Column(Integer, nullable=True)
    weight = Column(Integer, nullable=True)

    # Lifecycle
    status = Column(
        SQLEnum(SubdomainStatus, name="subdomain_status", values_callable=_enum_values),
        nullable=False,
        default=SubdomainStatus.PENDING,
        index=True,
    )
    is_active = Column(Boolean, nullable=False, default=True)
    dns_created = Column(Boolean, nullable=False, default=False)
    dns_propagated = Column(Boolean, nullable=False, default=False)
    dns_error = Column(Text, nullable=True)
    last_checked = Column(DateTime(timezone=True), nullable=True)

    # Retry
    retry_count = Column(Integer, nullable=False, default=0)
    creation_retry_count = Column(Integer, nullable=False, default=0)
    previous_target_value = Column(String(MAX_TARGET_LENGTH), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Optimistic concurrency
    version = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("ttl >= 60 AND ttl <= 86400", name="valid_ttl"),
        Index(
            "uq_subdomains_active_name",
            "domain_id",
            "name",
            unique=True,
            postgresql_where=is_active.is_(True),
            sqlite_where=is_active.is_(True),
        ),
        Index(
            "ix_subdomains_propagation_lookup",
            "status",
            "retry_count",
            postgresql_where=text("is_active AND NOT dns_propagated"),
        ),
        Index(
            "ix_subdomains_retry_lookup",
            "creation_retry_count",
            postgresql_where=text("is_active AND NOT dns_created AND status = 'failed'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SubdomainORM(id={self.id}, name={self.name}, "
            f"status={self.status.value if self.status else None}, "
            f"propagated={self.dns_propagated})>"
        )
