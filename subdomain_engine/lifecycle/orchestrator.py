# subdomain_engine/lifecycle/orchestrator.py
"""Subdomain lifecycle orchestrator - drives records through registrar writes and checks."""

import logging
from enum import Enum
from typing import Callable, List, Optional

from subdomain_engine.core.errors import (
    RegistrarError,
    RegistrarErrorKind,
    SubdomainConflictError,
    SubdomainNotFoundError,
    SubdomainValidationError,
)
from subdomain_engine.core.events import EventEmitter, NullEventEmitter
from subdomain_engine.core.events_model import SubdomainEvent
from subdomain_engine.core.models import (
    CREATION_MAX_RETRIES,
    Domain,
    SubdomainRecord,
    SubdomainStatus,
    SubdomainUpdate,
    utcnow,
)
from subdomain_engine.core.repository import DomainRepository, SubdomainRepository
from subdomain_engine.core.state_machine import SubdomainStateMachine
from subdomain_engine.core.validation import (
    normalize_name,
    parse_record_type,
    resolve_ttl,
    scope_extras,
    validate_name,
    validate_new_record,
    validate_target_value,
)
from subdomain_engine.lifecycle.locks import RecordLockRegistry
from subdomain_engine.registrar.client import RegistrarClient

logger = logging.getLogger(__name__)


class CheckOutcome(Enum):
    PROPAGATED = "propagated"
    PENDING = "pending"
    FAILED = "failed"
    SKIPPED = "skipped"


class RetryOutcome(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    EXHAUSTED = "exhausted"
    SKIPPED = "skipped"


class SubdomainOrchestrator:
    """
    Owns every status change of a subdomain record.

    Request path:
    - create / update / delete call the registrar synchronously and
      persist the outcome before returning (or raising)

    Sweeper path:
    - check_propagation / retry_write are invoked per record by the sweeper;
      they never raise for registrar problems, they record them

    All operations on one record id are serialized through the lock registry.
    """

    def __init__(
        self,
        repository: SubdomainRepository,
        domain_repository: DomainRepository,
        registrar: RegistrarClient,
        event_emitter: Optional[EventEmitter] = None,
        locks: Optional[RecordLockRegistry] = None,
        enqueue: Optional[Callable[[int], None]] = None,
    ):
        self._repo = repository
        self._domains = domain_repository
        self._registrar = registrar
        self._events = event_emitter or NullEventEmitter()
        self._locks = locks or RecordLockRegistry()
        self._enqueue = enqueue

    # -------------------------
    # CREATE
    # -------------------------

    def create_subdomain(
        self,
        domain_id: int,
        name: str,
        record_type,
        target_value: str,
        ttl: Optional[int] = None,
        priority: Optional[int] = None,
        port: Optional[int] = None,
        weight: Optional[int] = None,
    ) -> SubdomainRecord:
        """
        Validate, store as pending, then write to the registrar.

        Raises:
            SubdomainValidationError, SubdomainNotFoundError, SubdomainConflictError
            RegistrarError: the write failed; the record is stored as failed
        """
        domain = self._require_domain(domain_id)

        name = normalize_name(name)
        validate_name(name)
        record_type = parse_record_type(record_type)
        target_value = (target_value or "").strip()
        validate_target_value(record_type, target_value)
        ttl = resolve_ttl(record_type, ttl)
        priority, port, weight = scope_extras(record_type, priority, port, weight)

        if self._repo.find_active_by_name(domain_id, name) is not None:
            raise SubdomainConflictError(
                f"Subdomain '{name}' already exists for {domain.name}"
            )

        record = SubdomainRecord(
            domain_id=domain_id,
            name=name,
            record_type=record_type,
            target_value=target_value,
            ttl=ttl,
            priority=priority,
            port=port,
            weight=weight,
        )
        validate_new_record(record)

        record = self._repo.create(record)
        logger.info(f"[orchestrator] created {record.fqdn(domain.name)} (id={record.id}) as pending")
        self._emit(SubdomainEvent.subdomain_created(record))

        with self._locks.hold(record.id):
            # The sweeper may have touched the row before we took the lock
            record = self._repo.get(record.id)

            try:
                self._call_registrar(
                    self._registrar.create_record,
                    domain.name,
                    record.name,
                    record.record_type.value,
                    record.target_value,
                    record.ttl,
                    priority=record.priority,
                )
            except RegistrarError as e:
                self._persist_write_failure(record, domain, e)
                raise

            return self._persist_write_success(record, domain)

    # -------------------------
    # UPDATE
    # -------------------------

    def update_subdomain(
        self,
        domain_id: int,
        subdomain_id: int,
        changes: SubdomainUpdate,
    ) -> SubdomainRecord:
        """
        Apply a partial update and push it to the registrar.

        A change of name or record type is structural: the old host is
        deleted (failures logged and ignored) and the new one created.
        Anything else is an in-place update of the live value.
        """
        domain = self._require_domain(domain_id)

        with self._locks.hold(subdomain_id):
            record = self._require_active_record(domain_id, subdomain_id)

            if changes.is_empty():
                return record

            new_name = record.name
            if changes.name is not None:
                new_name = normalize_name(changes.name)
                validate_name(new_name)

            new_type = record.record_type
            if changes.record_type is not None:
                new_type = parse_record_type(changes.record_type)

            new_value = record.target_value
            if changes.target_value is not None:
                new_value = changes.target_value.strip()
            validate_target_value(new_type, new_value)

            new_ttl = resolve_ttl(new_type, changes.ttl if changes.ttl is not None else record.ttl)

            new_priority, new_port, new_weight = scope_extras(
                new_type,
                _pick(changes.priority, record.priority),
                _pick(changes.port, record.port),
                _pick(changes.weight, record.weight),
            )

            structural = new_name != record.name or new_type != record.record_type
            dns_changed = structural or (
                new_value != record.target_value
                or new_ttl != record.ttl
                or (new_priority, new_port, new_weight)
                != (record.priority, record.port, record.weight)
            )

            # Re-submitting identical values on a failed record forces a rewrite
            if not dns_changed and record.status != SubdomainStatus.FAILED:
                logger.debug(f"[orchestrator] update {subdomain_id}: no DNS-visible change")
                return record

            if new_name != record.name:
                existing = self._repo.find_active_by_name(domain_id, new_name)
                if existing is not None and existing.id != record.id:
                    raise SubdomainConflictError(
                        f"Subdomain '{new_name}' already exists for {domain.name}"
                    )

            SubdomainStateMachine.ensure(record.status, SubdomainStatus.PENDING)

            old = record.copy()
            live_value = old.target_value if old.dns_created else old.previous_target_value

            record.name = new_name
            record.record_type = new_type
            record.target_value = new_value
            record.ttl = new_ttl
            record.priority = new_priority
            record.port = new_port
            record.weight = new_weight
            record.mark_write_pending()
            record.previous_target_value = None if structural else live_value
            record = self._repo.update(record)

            try:
                if structural:
                    self._replace_host(domain, old, record)
                elif live_value is not None:
                    self._call_registrar(
                        self._registrar.update_record,
                        domain.name,
                        record.name,
                        record.record_type.value,
                        record.target_value,
                        record.ttl,
                        previous_value=live_value,
                        priority=record.priority,
                    )
                else:
                    # Nothing was ever written for this record
                    self._call_registrar(
                        self._registrar.create_record,
                        domain.name,
                        record.name,
                        record.record_type.value,
                        record.target_value,
                        record.ttl,
                        priority=record.priority,
                    )
            except RegistrarError as e:
                self._persist_write_failure(record, domain, e)
                raise

            return self._persist_write_success(record, domain)

    def _replace_host(self, domain: Domain, old: SubdomainRecord, new: SubdomainRecord) -> None:
        try:
            self._call_registrar(
                self._registrar.delete_record,
                domain.name,
                old.name,
                old.record_type.value,
            )
        except RegistrarError as e:
            logger.warning(
                f"[orchestrator] could not delete old host {old.fqdn(domain.name)} "
                f"({old.record_type.value}): {e} - continuing with create"
            )

        self._call_registrar(
            self._registrar.create_record,
            domain.name,
            new.name,
            new.record_type.value,
            new.target_value,
            new.ttl,
            priority=new.priority,
        )

    # -------------------------
    # DELETE
    # -------------------------

    def delete_subdomain(self, domain_id: int, subdomain_id: int) -> None:
        """Soft-delete. Registrar failures are logged and never block the delete."""
        domain = self._require_domain(domain_id)

        with self._locks.hold(subdomain_id):
            record = self._require_active_record(domain_id, subdomain_id)

            try:
                self._call_registrar(
                    self._registrar.delete_record,
                    domain.name,
                    record.name,
                    record.record_type.value,
                )
            except RegistrarError as e:
                logger.warning(
                    f"[orchestrator] registrar delete failed for {record.fqdn(domain.name)}: {e}"
                )

            SubdomainStateMachine.ensure(record.status, SubdomainStatus.INACTIVE)
            record.deactivate()
            record = self._repo.update(record)

            logger.info(f"[orchestrator] deleted {record.fqdn(domain.name)} (id={record.id})")
            self._emit(SubdomainEvent.subdomain_deleted(record))

    # -------------------------
    # READ
    # -------------------------

    def get_subdomain(self, domain_id: int, subdomain_id: int) -> SubdomainRecord:
        self._require_domain(domain_id)
        record = self._repo.get(subdomain_id)
        if record is None or record.domain_id != domain_id:
            raise SubdomainNotFoundError(f"Subdomain {subdomain_id} not found")
        return record

    def list_subdomains(self, domain_id: int, include_inactive: bool = False) -> List[SubdomainRecord]:
        self._require_domain(domain_id)
        return list(self._repo.list_by_domain(domain_id, include_inactive=include_inactive))

    # -------------------------
    # SWEEPER TRANSITIONS
    # -------------------------

    def check_propagation(self, subdomain_id: int) -> CheckOutcome:
        """
        One authoritative lookup for a record awaiting propagation.

        Lookup errors count as a miss. Returns SKIPPED if the record is
        busy, gone, or no longer needs checking.
        """
        with self._locks.hold(subdomain_id, blocking=False) as acquired:
            if not acquired:
                logger.debug(f"[orchestrator] {subdomain_id} busy, skipping propagation check")
                return CheckOutcome.SKIPPED

            record = self._repo.get(subdomain_id)
            if record is None or not record.needs_propagation_check():
                return CheckOutcome.SKIPPED

            domain = self._domains.get(record.domain_id)
            error_message = None
            propagated = False

            if domain is None:
                error_message = f"Domain {record.domain_id} not found"
            else:
                try:
                    propagated = self._call_registrar(
                        self._registrar.lookup_authoritative,
                        record.name,
                        domain.name,
                        record.record_type.value,
                        record.target_value,
                    )
                except RegistrarError as e:
                    error_message = str(e)

            if propagated:
                SubdomainStateMachine.ensure(record.status, SubdomainStatus.ACTIVE)
                record.mark_propagated()
                record = self._repo.update(record)
                logger.info(
                    f"[orchestrator] ✅ {record.fqdn(domain.name)} propagated "
                    f"after {record.retry_count + 1} check(s)"
                )
                self._emit(SubdomainEvent.subdomain_propagated(record))
                return CheckOutcome.PROPAGATED

            exhausted = record.record_propagation_miss(error_message)
            record = self._repo.update(record)

            if exhausted:
                logger.warning(
                    f"[orchestrator] {subdomain_id} failed propagation: {record.dns_error}"
                )
                self._emit(SubdomainEvent.subdomain_failed(record))
                return CheckOutcome.FAILED

            logger.debug(
                f"[orchestrator] {subdomain_id} not propagated yet "
                f"(attempt {record.retry_count})"
            )
            return CheckOutcome.PENDING

    def retry_write(self, subdomain_id: int) -> RetryOutcome:
        """
        Re-attempt the registrar write of a failed record.

        The attempt is counted and persisted before the registrar call.
        Records whose last failure left a live value behind are updated
        in place; all others are created.
        """
        with self._locks.hold(subdomain_id, blocking=False) as acquired:
            if not acquired:
                logger.debug(f"[orchestrator] {subdomain_id} busy, skipping write retry")
                return RetryOutcome.SKIPPED

            record = self._repo.get(subdomain_id)
            if record is None or not record.can_retry_write():
                return RetryOutcome.SKIPPED

            record.creation_retry_count += 1
            record.last_checked = utcnow()
            record = self._repo.update(record)
            self._emit(SubdomainEvent.subdomain_retried(record))

            logger.info(
                f"[orchestrator] retrying write for {subdomain_id} "
                f"(attempt {record.creation_retry_count}/{CREATION_MAX_RETRIES})"
            )

            domain = self._domains.get(record.domain_id)

            try:
                if domain is None:
                    raise RegistrarError(
                        f"Domain {record.domain_id} not found",
                        kind=RegistrarErrorKind.REJECTED,
                    )

                if record.previous_target_value:
                    self._call_registrar(
                        self._registrar.update_record,
                        domain.name,
                        record.name,
                        record.record_type.value,
                        record.target_value,
                        record.ttl,
                        previous_value=record.previous_target_value,
                        priority=record.priority,
                    )
                else:
                    self._call_registrar(
                        self._registrar.create_record,
                        domain.name,
                        record.name,
                        record.record_type.value,
                        record.target_value,
                        record.ttl,
                        priority=record.priority,
                    )

            except RegistrarError as e:
                record.mark_write_failed(str(e), retryable=e.retryable)
                record = self._repo.update(record)

                if not e.retryable:
                    logger.error(
                        f"[orchestrator] {subdomain_id} write retry hit a non-retryable "
                        f"{e.kind.value} error, manual intervention required: {e}"
                    )
                    self._emit(SubdomainEvent.subdomain_failed(record, reason=str(e)))
                    return RetryOutcome.EXHAUSTED

                if record.creation_retry_count >= CREATION_MAX_RETRIES:
                    logger.error(
                        f"[orchestrator] {subdomain_id} exhausted {CREATION_MAX_RETRIES} write "
                        f"retries, manual intervention required: {e}"
                    )
                    self._emit(SubdomainEvent.subdomain_failed(record, reason=str(e)))
                    return RetryOutcome.EXHAUSTED

                logger.warning(f"[orchestrator] write retry failed for {subdomain_id}: {e}")
                return RetryOutcome.FAILED

            SubdomainStateMachine.ensure(record.status, SubdomainStatus.ACTIVE)
            record.mark_write_succeeded()
            record = self._repo.update(record)

            logger.info(f"[orchestrator] ✅ write retry succeeded for {record.fqdn(domain.name)}")
            self._emit(SubdomainEvent.subdomain_activated(record))
            self._schedule_check(record)
            return RetryOutcome.SUCCEEDED

    # -------------------------
    # HELPERS
    # -------------------------

    def _require_domain(self, domain_id: int) -> Domain:
        domain = self._domains.get(domain_id)
        if domain is None:
            raise SubdomainNotFoundError(f"Domain {domain_id} not found")
        if not domain.is_manageable():
            raise SubdomainValidationError(
                f"Domain {domain.name} is {domain.status}; subdomains cannot be managed"
            )
        return domain

    def _require_active_record(self, domain_id: int, subdomain_id: int) -> SubdomainRecord:
        record = self._repo.get(subdomain_id)
        if record is None or record.domain_id != domain_id or not record.is_active:
            raise SubdomainNotFoundError(f"Subdomain {subdomain_id} not found")
        return record

    def _persist_write_success(self, record: SubdomainRecord, domain: Domain) -> SubdomainRecord:
        SubdomainStateMachine.ensure(record.status, SubdomainStatus.ACTIVE)
        record.mark_write_succeeded()
        record = self._repo.update(record)

        logger.info(
            f"[orchestrator] ✅ registrar accepted {record.fqdn(domain.name)} "
            f"{record.record_type.value} -> {record.target_value}"
        )
        self._emit(SubdomainEvent.subdomain_activated(record))
        self._schedule_check(record)
        return record

    def _persist_write_failure(self, record: SubdomainRecord, domain: Domain, error: RegistrarError) -> None:
        SubdomainStateMachine.ensure(record.status, SubdomainStatus.FAILED)
        record.mark_write_failed(str(error), retryable=error.retryable)
        self._repo.update(record)

        logger.error(
            f"[orchestrator] registrar write failed for {record.fqdn(domain.name)} "
            f"({error.kind.value}): {error}"
        )
        if not error.retryable:
            logger.error(
                f"[orchestrator] {record.id} will not be retried automatically, "
                "manual intervention required"
            )
        self._emit(SubdomainEvent.subdomain_failed(record, reason=str(error)))

    def _schedule_check(self, record: SubdomainRecord) -> None:
        if self._enqueue is not None:
            self._enqueue(record.id)

    def _call_registrar(self, operation, *args, **kwargs):
        """Invoke a registrar operation; anything unexpected becomes a RegistrarError."""
        try:
            return operation(*args, **kwargs)
        except RegistrarError:
            raise
        except Exception as e:
            logger.error(f"[orchestrator] unexpected registrar failure: {e}", exc_info=True)
            raise RegistrarError(
                f"Unexpected registrar failure: {e}",
                kind=RegistrarErrorKind.INVALID_RESPONSE,
            ) from e

    def _emit(self, *events: SubdomainEvent) -> None:
        self._events.emit(events)


def _pick(new, current):
    return current if new is None else new
