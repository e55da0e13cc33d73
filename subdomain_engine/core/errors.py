# subdomain_engine/core/errors.py

from enum import Enum

# -----------------------------
# Base Errors
# -----------------------------

class SubdomainError(Exception):
    """Base class for all subdomain engine errors."""
    pass


# -----------------------------
# Caller Errors (never retried)
# -----------------------------

class SubdomainValidationError(SubdomainError):
    """Malformed name, value, ttl or unmanageable parent domain."""
    pass


class SubdomainConflictError(SubdomainError):
    """An active subdomain with the same name already exists on the domain."""
    pass


class SubdomainNotFoundError(SubdomainError):
    """Unknown domain or subdomain."""
    pass


class InvalidStateTransition(SubdomainError):
    """Illegal lifecycle transition attempted."""
    pass


# -----------------------------
# Registrar Errors
# -----------------------------

class RegistrarErrorKind(Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    REJECTED = "rejected"
    AUTH = "auth"
    INVALID_RESPONSE = "invalid_response"


class RegistrarError(SubdomainError):
    """Failure reported by (or while talking to) the external registrar."""

    def __init__(self, message: str, kind: RegistrarErrorKind = RegistrarErrorKind.REJECTED):
        super().__init__(message)
        self.message = message
        self.kind = kind

    @property
    def retryable(self) -> bool:
        return self.kind in (
            RegistrarErrorKind.TIMEOUT,
            RegistrarErrorKind.NETWORK,
            RegistrarErrorKind.REJECTED,
        )

    def __str__(self) -> str:
        return self.message


# -----------------------------
# Persistence Errors
# -----------------------------

class StoreError(SubdomainError):
    pass


class StoreConcurrencyError(StoreError):
    pass
