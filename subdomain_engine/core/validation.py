#subdomain_engine/core/validation.py
import re
from typing import Optional

from subdomain_engine.core.models import (
    DEFAULT_TTLS,
    MAX_TARGET_LENGTH,
    RecordType,
    SubdomainRecord,
    SubdomainStatus,
)
from subdomain_engine.core.errors import SubdomainValidationError


LABEL_RE = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$")
IPV4_OCTET = r"(25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9]?[0-9])"
# No leading zeros: some resolvers read 010 as octal
IPV4_RE = re.compile(rf"^({IPV4_OCTET}\.){{3}}{IPV4_OCTET}$")

MIN_TTL = 60
MAX_TTL = 86400


def normalize_name(name: str) -> str:
    if name is None:
        raise SubdomainValidationError("subdomain name is required")
    return name.strip().lower()


def validate_name(name: str) -> None:
    if not name or not LABEL_RE.match(name):
        raise SubdomainValidationError(
            f"Invalid subdomain name '{name}': must be 1-63 letters, digits "
            "or hyphens, not starting or ending with a hyphen"
        )


def parse_record_type(value) -> RecordType:
    if isinstance(value, RecordType):
        return value
    try:
        return RecordType(str(value).upper())
    except ValueError:
        raise SubdomainValidationError(f"Unsupported record type: {value}") from None


def validate_target_value(record_type: RecordType, target_value: Optional[str]) -> None:
    value = target_value or ""

    if len(value) > MAX_TARGET_LENGTH:
        raise SubdomainValidationError(
            f"Target value is {len(value)} characters; at most {MAX_TARGET_LENGTH} allowed"
        )

    if record_type == RecordType.A:
        if not IPV4_RE.match(value):
            raise SubdomainValidationError("Invalid IPv4 address for A record")

    elif record_type == RecordType.AAAA:
        if ":" not in value or len(value) < 3:
            raise SubdomainValidationError("Invalid IPv6 address for AAAA record")

    elif record_type == RecordType.CNAME:
        if "." not in value or value.endswith("."):
            raise SubdomainValidationError("Invalid domain name for CNAME record")

    elif record_type == RecordType.MX:
        if "." not in value or value.endswith("."):
            raise SubdomainValidationError("Invalid mail server domain for MX record")

    elif record_type == RecordType.TXT:
        if not value.strip():
            raise SubdomainValidationError("TXT record cannot be empty")

    else:
        # SRV, NS
        if not value.strip():
            raise SubdomainValidationError("Target value cannot be empty")


def resolve_ttl(record_type: RecordType, ttl: Optional[int]) -> int:
    if ttl is None:
        return DEFAULT_TTLS[record_type]
    try:
        ttl = int(ttl)
    except (TypeError, ValueError):
        raise SubdomainValidationError(f"TTL must be an integer, got {ttl!r}") from None
    if ttl < MIN_TTL or ttl > MAX_TTL:
        raise SubdomainValidationError(
            f"TTL must be between {MIN_TTL} and {MAX_TTL} seconds"
        )
    return ttl


def _optional_int(label: str, value, upper: int) -> Optional[int]:
    if value is None:
        return None
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise SubdomainValidationError(f"{label} must be an integer") from None
    if value < 0 or value > upper:
        raise SubdomainValidationError(f"{label} must be between 0 and {upper}")
    return value


def scope_extras(record_type: RecordType, priority, port, weight):
    """Keep priority only for MX/SRV, port and weight only for SRV."""
    if record_type not in (RecordType.MX, RecordType.SRV):
        priority = None
    if record_type != RecordType.SRV:
        port = None
        weight = None
    return (
        _optional_int("priority", priority, 65535),
        _optional_int("port", port, 65535),
        _optional_int("weight", weight, 65535),
    )


def validate_new_record(record: SubdomainRecord) -> None:
    # -------------------------
    # Identity
    # -------------------------
    if record.domain_id is None:
        raise SubdomainValidationError("domain_id is required")

    validate_name(record.name)

    # -------------------------
    # Value
    # -------------------------
    validate_target_value(record.record_type, record.target_value)
    resolve_ttl(record.record_type, record.ttl)

    # -------------------------
    # Lifecycle invariants
    # -------------------------
    if record.status != SubdomainStatus.PENDING:
        raise SubdomainValidationError("new subdomain must start in pending state")

    if record.dns_created or record.dns_propagated:
        raise SubdomainValidationError("DNS flags must not be set at creation")

    if record.version != 0:
        raise SubdomainValidationError("new subdomain version must be 0")
