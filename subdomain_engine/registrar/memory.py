# subdomain_engine/registrar/memory.py
"""In-memory registrar for development and tests."""

import logging
import time
from collections import defaultdict, deque
from threading import Lock
from typing import Dict, List, Optional

from subdomain_engine.core.errors import RegistrarError, RegistrarErrorKind
from subdomain_engine.registrar.client import HostRecord, RegistrarClient

logger = logging.getLogger(__name__)


class InMemoryRegistrarClient(RegistrarClient):
    """
    Keeps host records per domain in memory.

    Failures can be scripted per operation with `fail_next`, propagation
    can be held back with `propagate=False`, and `delay` simulates a slow
    registrar. `calls` records every operation for assertions.
    """

    OPERATIONS = ("create", "update", "delete", "lookup")

    def __init__(self, propagate: bool = True, delay: float = 0.0):
        self.zones: Dict[str, List[HostRecord]] = defaultdict(list)
        self.propagate = propagate
        self.delay = delay
        self.calls: List[tuple] = []
        self._failures: Dict[str, deque] = defaultdict(deque)
        self._lock = Lock()

        self._in_flight = 0
        self.max_in_flight = 0

    # -------------------------
    # SCRIPTING
    # -------------------------

    def fail_next(
        self,
        operation: str,
        message: str = "registrar rejected request",
        kind: RegistrarErrorKind = RegistrarErrorKind.REJECTED,
        times: int = 1,
    ) -> None:
        if operation not in self.OPERATIONS:
            raise ValueError(f"Unknown operation: {operation}")
        for _ in range(times):
            self._failures[operation].append(RegistrarError(message, kind=kind))

    def hosts(self, domain: str) -> List[HostRecord]:
        with self._lock:
            return list(self.zones[domain])

    def operations(self, name: Optional[str] = None) -> List[str]:
        return [c[0] for c in self.calls if name is None or c[2] == name]

    # -------------------------
    # RegistrarClient
    # -------------------------

    def create_record(self, domain, name, record_type, value, ttl, priority=None):
        with self._call("create", domain, name):
            with self._lock:
                zone = self.zones[domain]
                if not any(h.matches(name, record_type, value) for h in zone):
                    zone.append(HostRecord(name, record_type, value, ttl, priority))
        logger.info(f"Mock: Created {record_type} {name}.{domain} -> {value}")

    def update_record(
        self,
        domain,
        name,
        record_type,
        new_value,
        ttl,
        previous_value=None,
        priority=None,
    ):
        with self._call("update", domain, name):
            with self._lock:
                zone = self.zones[domain]
                replacement = HostRecord(name, record_type, new_value, ttl, priority)
                for i, host in enumerate(zone):
                    if host.matches(name, record_type, previous_value):
                        zone[i] = replacement
                        break
                else:
                    zone.append(replacement)
        logger.info(f"Mock: Updated {record_type} {name}.{domain} -> {new_value}")

    def delete_record(self, domain, name, record_type):
        with self._call("delete", domain, name):
            with self._lock:
                self.zones[domain] = [
                    h for h in self.zones[domain] if not h.matches(name, record_type)
                ]
        logger.info(f"Mock: Deleted {record_type} {name}.{domain}")

    def lookup_authoritative(self, name, domain, record_type, expected_value):
        with self._call("lookup", domain, name):
            if not self.propagate:
                return False
            with self._lock:
                return any(
                    h.matches(name, record_type, expected_value)
                    for h in self.zones[domain]
                )

    # -------------------------
    # INTERNAL
    # -------------------------

    def _call(self, operation: str, domain: str, name: str):
        return _CallContext(self, operation, domain, name)


class _CallContext:
    """Tracks concurrency, applies the artificial delay and scripted failures."""

    def __init__(self, client: InMemoryRegistrarClient, operation: str, domain: str, name: str):
        self.client = client
        self.operation = operation
        self.domain = domain
        self.name = name

    def __enter__(self):
        client = self.client
        with client._lock:
            client.calls.append((self.operation, self.domain, self.name))
            client._in_flight += 1
            client.max_in_flight = max(client.max_in_flight, client._in_flight)
            failure = (
                client._failures[self.operation].popleft()
                if client._failures[self.operation]
                else None
            )

        if client.delay:
            time.sleep(client.delay)

        if failure is not None:
            self._leave()
            raise failure
        return self

    def __exit__(self, exc_type, exc, tb):
        self._leave()
        return False

    def _leave(self):
        with self.client._lock:
            self.client._in_flight -= 1
