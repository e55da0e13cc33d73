# subdomain_engine/registrar/namecheap.py
"""Namecheap registrar client (XML API over HTTPS)."""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Dict, List, Optional, Tuple

import requests

from subdomain_engine.core.errors import RegistrarError, RegistrarErrorKind
from subdomain_engine.registrar.client import HostRecord, RegistrarClient

logger = logging.getLogger(__name__)


PRODUCTION_URL = "https://api.namecheap.com/xml.response"
SANDBOX_URL = "https://api.sandbox.namecheap.com/xml.response"

# API error numbers that mean our credentials or source IP are not accepted
AUTH_ERROR_NUMBERS = {"1011102", "1011150"}


def split_domain(domain: str) -> Tuple[str, str]:
    """'example.co.uk' -> ('example', 'co.uk')"""
    domain = domain.strip().rstrip(".").lower()
    sld, _, tld = domain.partition(".")
    if not sld or not tld:
        raise RegistrarError(
            f"Cannot split domain '{domain}' into SLD/TLD",
            kind=RegistrarErrorKind.REJECTED,
        )
    return sld, tld


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class NamecheapRegistrarClient(RegistrarClient):
    """
    Registrar client for the Namecheap XML API.

    Namecheap only exposes whole-zone host operations (getHosts / setHosts),
    so every record mutation is a read-modify-write of the host list.
    """

    def __init__(
        self,
        api_user: str,
        api_key: str,
        client_ip: str,
        username: Optional[str] = None,
        sandbox: bool = False,
        mutation_timeout: float = 15.0,
        lookup_timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize client.

        Args:
            api_user: Namecheap API user
            api_key: Namecheap API key
            client_ip: Whitelisted source IP sent with every call
            username: Account the domains belong to (defaults to api_user)
            sandbox: Use the sandbox endpoint
            mutation_timeout: Timeout for create/update/delete (seconds)
            lookup_timeout: Timeout for authoritative lookups (seconds)
            session: Optional requests session (injected in tests)
        """
        self.api_user = api_user
        self.api_key = api_key
        self.client_ip = client_ip
        self.username = username or api_user
        self.base_url = SANDBOX_URL if sandbox else PRODUCTION_URL
        self.mutation_timeout = mutation_timeout
        self.lookup_timeout = lookup_timeout
        self._session = session or requests.Session()

    # -------------------------
    # RECORD OPERATIONS
    # -------------------------

    def create_record(self, domain, name, record_type, value, ttl, priority=None):
        logger.info(f"[namecheap] create {record_type} {name}.{domain} -> {value}")

        hosts = self.get_hosts(domain, timeout=self.mutation_timeout)
        if any(h.matches(name, record_type, value) for h in hosts):
            logger.info(f"[namecheap] {name}.{domain} already serves {value}")
            return

        hosts.append(HostRecord(
            name=name,
            record_type=record_type,
            address=value,
            ttl=ttl,
            mx_pref=priority,
        ))
        self.set_hosts(domain, hosts)

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
        logger.info(
            f"[namecheap] update {record_type} {name}.{domain}: "
            f"{previous_value} -> {new_value}"
        )

        hosts = self.get_hosts(domain, timeout=self.mutation_timeout)
        replacement = HostRecord(
            name=name,
            record_type=record_type,
            address=new_value,
            ttl=ttl,
            mx_pref=priority,
        )

        index = self._find_host(hosts, name, record_type, previous_value)
        if index is None:
            # Previous entry is gone; the new value becomes the record
            hosts.append(replacement)
        else:
            hosts[index] = replacement

        self.set_hosts(domain, hosts)

    def delete_record(self, domain, name, record_type):
        logger.info(f"[namecheap] delete {record_type} {name}.{domain}")

        hosts = self.get_hosts(domain, timeout=self.mutation_timeout)
        remaining = [h for h in hosts if not h.matches(name, record_type)]

        if len(remaining) == len(hosts):
            logger.info(f"[namecheap] {name}.{domain} not present, nothing to delete")
            return

        self.set_hosts(domain, remaining)

    def lookup_authoritative(self, name, domain, record_type, expected_value):
        hosts = self.get_hosts(domain, timeout=self.lookup_timeout)
        return any(h.matches(name, record_type, expected_value) for h in hosts)

    # -------------------------
    # HOST LIST
    # -------------------------

    def get_hosts(self, domain: str, timeout: Optional[float] = None) -> List[HostRecord]:
        sld, tld = split_domain(domain)
        root = self._call(
            "namecheap.domains.dns.getHosts",
            {"SLD": sld, "TLD": tld},
            timeout=timeout or self.lookup_timeout,
        )

        hosts = []
        for element in root.iter():
            if _local(element.tag).lower() != "host":
                continue
            attrs = element.attrib
            hosts.append(HostRecord(
                name=attrs.get("Name", ""),
                record_type=attrs.get("Type", ""),
                address=attrs.get("Address", ""),
                ttl=int(attrs.get("TTL") or 1800),
                mx_pref=int(attrs["MXPref"]) if attrs.get("MXPref") else None,
            ))
        return hosts

    def set_hosts(self, domain: str, hosts: List[HostRecord]) -> None:
        sld, tld = split_domain(domain)
        params: Dict[str, Any] = {"SLD": sld, "TLD": tld}

        for i, host in enumerate(hosts, start=1):
            params[f"HostName{i}"] = host.name
            params[f"RecordType{i}"] = host.record_type
            params[f"Address{i}"] = host.address
            params[f"TTL{i}"] = host.ttl
            if host.mx_pref is not None:
                params[f"MXPref{i}"] = host.mx_pref

        if any(h.record_type.upper() == "MX" for h in hosts):
            params["EmailType"] = "MX"

        root = self._call(
            "namecheap.domains.dns.setHosts",
            params,
            timeout=self.mutation_timeout,
            method="POST",
        )

        result = next(
            (e for e in root.iter() if _local(e.tag) == "DomainDNSSetHostsResult"),
            None,
        )
        if result is None or result.attrib.get("IsSuccess", "").lower() != "true":
            raise RegistrarError(
                f"Namecheap did not confirm host update for {domain}",
                kind=RegistrarErrorKind.REJECTED,
            )

    # -------------------------
    # TRANSPORT
    # -------------------------

    def _call(
        self,
        command: str,
        params: Dict[str, Any],
        timeout: float,
        method: str = "GET",
    ) -> ET.Element:
        payload = {
            "ApiUser": self.api_user,
            "ApiKey": self.api_key,
            "UserName": self.username,
            "ClientIp": self.client_ip,
            "Command": command,
            **params,
        }

        try:
            if method == "POST":
                response = self._session.post(self.base_url, data=payload, timeout=timeout)
            else:
                response = self._session.get(self.base_url, params=payload, timeout=timeout)
        except requests.exceptions.Timeout:
            raise RegistrarError(
                f"Namecheap {command} timed out after {timeout}s",
                kind=RegistrarErrorKind.TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise RegistrarError(
                f"Cannot reach Namecheap API: {e}",
                kind=RegistrarErrorKind.NETWORK,
            ) from e

        if response.status_code in (401, 403):
            raise RegistrarError(
                f"Namecheap refused credentials (HTTP {response.status_code})",
                kind=RegistrarErrorKind.AUTH,
            )
        if response.status_code != 200:
            raise RegistrarError(
                f"Namecheap HTTP {response.status_code}",
                kind=RegistrarErrorKind.NETWORK,
            )

        return self._parse(command, response.text)

    def _parse(self, command: str, body: str) -> ET.Element:
        try:
            root = ET.fromstring(body)
        except ET.ParseError as e:
            raise RegistrarError(
                f"Malformed Namecheap response for {command}: {e}",
                kind=RegistrarErrorKind.INVALID_RESPONSE,
            ) from e

        if root.attrib.get("Status", "").upper() == "ERROR":
            errors = [e for e in root.iter() if _local(e.tag) == "Error"]
            numbers = {e.attrib.get("Number", "") for e in errors}
            message = ", ".join((e.text or "").strip() for e in errors) or "Unknown error"

            kind = RegistrarErrorKind.REJECTED
            if numbers & AUTH_ERROR_NUMBERS:
                kind = RegistrarErrorKind.AUTH
                logger.error(
                    f"[namecheap] credentials rejected (client ip {self.client_ip}): {message}"
                )

            raise RegistrarError(message, kind=kind)

        return root

    @staticmethod
    def _find_host(
        hosts: List[HostRecord],
        name: str,
        record_type: str,
        previous_value: Optional[str],
    ) -> Optional[int]:
        for i, host in enumerate(hosts):
            if host.matches(name, record_type, previous_value):
                return i
        return None
