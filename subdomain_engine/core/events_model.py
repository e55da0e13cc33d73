"""Event models for the subdomain engine."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class SubdomainEvent:
    """Lifecycle event for a single subdomain record."""

    event_type: str
    subdomain_id: int
    timestamp: datetime
    metadata: Dict[str, Any]

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    @staticmethod
    def subdomain_created(record):
        return SubdomainEvent(
            event_type="subdomain.created",
            subdomain_id=record.id,
            timestamp=SubdomainEvent._now(),
            metadata={
                "domain_id": record.domain_id,
                "name": record.name,
                "record_type": record.record_type.value,
            },
        )

    @staticmethod
    def subdomain_activated(record):
        """Registrar confirmed the write."""
        return SubdomainEvent(
            event_type="subdomain.activated",
            subdomain_id=record.id,
            timestamp=SubdomainEvent._now(),
            metadata={
                "name": record.name,
                "target_value": record.target_value,
                "ttl": record.ttl,
            },
        )

    @staticmethod
    def subdomain_propagated(record):
        return SubdomainEvent(
            event_type="subdomain.propagated",
            subdomain_id=record.id,
            timestamp=SubdomainEvent._now(),
            metadata={
                "attempts": record.retry_count + 1,
            },
        )

    @staticmethod
    def subdomain_failed(record, reason: Optional[str] = None):
        return SubdomainEvent(
            event_type="subdomain.failed",
            subdomain_id=record.id,
            timestamp=SubdomainEvent._now(),
            metadata={
                "error_message": reason or record.dns_error,
                "retry_count": record.retry_count,
                "creation_retry_count": record.creation_retry_count,
            },
        )

    @staticmethod
    def subdomain_retried(record):
        return SubdomainEvent(
            event_type="subdomain.retried",
            subdomain_id=record.id,
            timestamp=SubdomainEvent._now(),
            metadata={
                "attempt": record.creation_retry_count,
            },
        )

    @staticmethod
    def subdomain_deleted(record):
        return SubdomainEvent(
            event_type="subdomain.deleted",
            subdomain_id=record.id,
            timestamp=SubdomainEvent._now(),
            metadata={
                "name": record.name,
            },
        )
