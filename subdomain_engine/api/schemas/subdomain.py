from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from subdomain_engine.core.models import SubdomainRecord, SubdomainUpdate


class SubdomainCreateRequest(BaseModel):
    name: str
    record_type: str
    target_value: str
    ttl: Optional[int] = None
    priority: Optional[int] = None
    port: Optional[int] = None
    weight: Optional[int] = None


class SubdomainUpdateRequest(BaseModel):
    name: Optional[str] = None
    record_type: Optional[str] = None
    target_value: Optional[str] = None
    ttl: Optional[int] = None
    priority: Optional[int] = None
    port: Optional[int] = None
    weight: Optional[int] = None

    def to_update(self) -> SubdomainUpdate:
        return SubdomainUpdate(**self.model_dump())


class SubdomainResponse(BaseModel):
    id: int
    domain_id: int
    name: str
    record_type: str
    target_value: str
    ttl: int
    priority: Optional[int] = None
    port: Optional[int] = None
    weight: Optional[int] = None
    status: str
    is_active: bool
    dns_created: bool
    dns_propagated: bool
    dns_error: Optional[str] = None
    last_checked: Optional[datetime] = None
    retry_count: int
    creation_retry_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: SubdomainRecord) -> "SubdomainResponse":
        return cls(
            id=record.id,
            domain_id=record.domain_id,
            name=record.name,
            record_type=record.record_type.value,
            target_value=record.target_value,
            ttl=record.ttl,
            priority=record.priority,
            port=record.port,
            weight=record.weight,
            status=record.status.value,
            is_active=record.is_active,
            dns_created=record.dns_created,
            dns_propagated=record.dns_propagated,
            dns_error=record.dns_error,
            last_checked=record.last_checked,
            retry_count=record.retry_count,
            creation_retry_count=record.creation_retry_count,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class SweepSummaryResponse(BaseModel):
    attempted: int
    propagated: int
    still_pending: int
    newly_failed: int
    retried: int
    retry_succeeded: int
    retry_exhausted: int
    errors: int
    skipped: bool
    started_at: datetime
    finished_at: Optional[datetime] = None


class SweeperStatusResponse(BaseModel):
    running: bool
    last_cycle_at: Optional[datetime] = None
    interval_seconds: float
    cycle_in_progress: bool
    last_summary: Optional[Dict[str, Any]] = None
