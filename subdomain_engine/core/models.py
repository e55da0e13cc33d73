"""Core domain models (business logic)."""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


# Ceilings for automatic attempts
PROPAGATION_MAX_ATTEMPTS = 5
CREATION_MAX_RETRIES = 3

# Width of the target_value columns
MAX_TARGET_LENGTH = 255

# Parent domain states that allow subdomain management
MANAGEABLE_DOMAIN_STATUSES = {"active", "pending", "registered"}


class RecordType(Enum):
    """Supported DNS record types."""

    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"
    MX = "MX"
    TXT = "TXT"
    SRV = "SRV"
    NS = "NS"


DEFAULT_TTLS = {
    RecordType.A: 3600,
    RecordType.AAAA: 3600,
    RecordType.CNAME: 3600,
    RecordType.MX: 3600,
    RecordType.TXT: 3600,
    RecordType.SRV: 3600,
    RecordType.NS: 86400,
}


class SubdomainStatus(Enum):
    """Subdomain lifecycle state."""

    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"
    INACTIVE = "inactive"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Domain:
    """Parent domain owning subdomains (read-only for this engine)."""

    id: int
    name: str
    status: str = "active"

    def is_manageable(self) -> bool:
        return self.status in MANAGEABLE_DOMAIN_STATUSES


@dataclass
class SubdomainRecord:
    """Subdomain DNS record with lifecycle tracking."""

    # Identity
    domain_id: int
    name: str
    record_type: RecordType
    target_value: str
    ttl: int = 3600
    id: Optional[int] = None

    # MX / SRV extras
    priority: Optional[int] = None
    port: Optional[int] = None
    weight: Optional[int] = None

    # Lifecycle
    status: SubdomainStatus = SubdomainStatus.PENDING
    is_active: bool = True
    dns_created: bool = False
    dns_propagated: bool = False
    dns_error: Optional[str] = None
    last_checked: Optional[datetime] = None

    # Retry
    retry_count: int = 0
    creation_retry_count: int = 0
    previous_target_value: Optional[str] = None

    # Timestamps
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    # Optimistic concurrency
    version: int = 0

    def fqdn(self, domain_name: str) -> str:
        return f"{self.name}.{domain_name}"

    def copy(self) -> "SubdomainRecord":
        return SubdomainRecord(**{f.name: getattr(self, f.name) for f in fields(self)})

    # -------------------------
    # STATE TRANSITIONS
    # -------------------------

    def mark_write_pending(self) -> None:
        """A registrar write is about to be attempted for this record."""
        self.status = SubdomainStatus.PENDING
        self.dns_created = False
        self.dns_propagated = False
        self.dns_error = None
        self.retry_count = 0
        self.creation_retry_count = 0
        self._touch()

    def mark_write_succeeded(self) -> None:
        """Registrar confirmed the write; propagation is still unknown."""
        self.status = SubdomainStatus.ACTIVE
        self.dns_created = True
        self.dns_propagated = False
        self.dns_error = None
        self.retry_count = 0
        self.previous_target_value = None
        self.last_checked = utcnow()
        self._touch()

    def mark_write_failed(self, error_message: str, retryable: bool = True) -> None:
        """
        Registrar rejected or never confirmed the write.

        A non-retryable failure (bad credentials, unparseable response) uses up
        the automatic write retries at once; only an explicit update revives it.
        """
        self.status = SubdomainStatus.FAILED
        self.dns_created = False
        self.dns_propagated = False
        self.dns_error = error_message
        if not retryable:
            self.creation_retry_count = CREATION_MAX_RETRIES
        self.last_checked = utcnow()
        self._touch()

    def mark_propagated(self) -> None:
        self.status = SubdomainStatus.ACTIVE
        self.dns_created = True
        self.dns_propagated = True
        self.dns_error = None
        self.last_checked = utcnow()
        self._touch()

    def record_propagation_miss(self, error_message: Optional[str] = None) -> bool:
        """
        Count one unsuccessful propagation check.

        Returns True if the ceiling was reached and the record is now FAILED.
        """
        self.retry_count += 1
        self.last_checked = utcnow()
        self.dns_error = error_message

        if self.retry_count >= PROPAGATION_MAX_ATTEMPTS:
            self.retry_count = PROPAGATION_MAX_ATTEMPTS
            self.status = SubdomainStatus.FAILED
            self.dns_propagated = False
            if error_message is None:
                self.dns_error = (
                    f"DNS propagation timeout after {self.retry_count} attempts"
                )
            self._touch()
            return True

        self._touch()
        return False

    def deactivate(self) -> None:
        """Soft delete."""
        self.is_active = False
        self.status = SubdomainStatus.INACTIVE
        self.dns_propagated = False
        self._touch()

    # -------------------------
    # SELECTION PREDICATES
    # -------------------------

    def needs_propagation_check(self) -> bool:
        return (
            self.is_active
            and self.status in (SubdomainStatus.PENDING, SubdomainStatus.ACTIVE)
            and not self.dns_propagated
            and self.retry_count < PROPAGATION_MAX_ATTEMPTS
        )

    def can_retry_write(self) -> bool:
        return (
            self.is_active
            and self.status == SubdomainStatus.FAILED
            and not self.dns_created
            and self.creation_retry_count < CREATION_MAX_RETRIES
        )

    def _touch(self) -> None:
        self.updated_at = utcnow()


@dataclass
class SubdomainUpdate:
    """
    Partial update; None means unchanged.

    Because of that, priority, port and weight cannot be cleared through an
    update. Changing the record type to one that does not use them drops them.
    """

    name: Optional[str] = None
    record_type: Optional[RecordType] = None
    target_value: Optional[str] = None
    ttl: Optional[int] = None
    priority: Optional[int] = None
    port: Optional[int] = None
    weight: Optional[int] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))
