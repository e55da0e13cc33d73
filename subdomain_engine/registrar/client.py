# subdomain_engine/registrar/client.py
"""Registrar client contract."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class HostRecord:
    """One host entry as served by the registrar."""
    name: str
    record_type: str
    address: str
    ttl: int = 1800
    mx_pref: Optional[int] = None

    def matches(self, name: str, record_type: str, address: Optional[str] = None) -> bool:
        if self.name.lower() != name.lower():
            return False
        if self.record_type.upper() != record_type.upper():
            return False
        if address is None:
            return True
        return _normalize_value(self.address) == _normalize_value(address)


def _normalize_value(value: str) -> str:
    return (value or "").strip().rstrip(".").lower()


class RegistrarClient(ABC):
    """
    Narrow interface to the registrar's DNS API.

    Implementations do not retry: every failure surfaces immediately as a
    RegistrarError whose `kind` tells callers whether it is worth retrying.
    """

    @abstractmethod
    def create_record(
        self,
        domain: str,
        name: str,
        record_type: str,
        value: str,
        ttl: int,
        priority: Optional[int] = None,
    ) -> None:
        """Add a record. Raises RegistrarError on failure."""
        raise NotImplementedError

    @abstractmethod
    def update_record(
        self,
        domain: str,
        name: str,
        record_type: str,
        new_value: str,
        ttl: int,
        previous_value: Optional[str] = None,
        priority: Optional[int] = None,
    ) -> None:
        """
        Replace the value of a record. `previous_value` selects which entry
        of a multi-value record set is replaced.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_record(self, domain: str, name: str, record_type: str) -> None:
        """Remove a record. A record that does not exist counts as deleted."""
        raise NotImplementedError

    @abstractmethod
    def lookup_authoritative(
        self,
        name: str,
        domain: str,
        record_type: str,
        expected_value: str,
    ) -> bool:
        """True if the registrar currently serves `expected_value`."""
        raise NotImplementedError
