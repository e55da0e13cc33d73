#tests/test_domain_models.py

"""Test domain models and state transitions."""

import pytest

from subdomain_engine.core.errors import InvalidStateTransition, RegistrarError, RegistrarErrorKind
from subdomain_engine.core.models import (
    CREATION_MAX_RETRIES,
    PROPAGATION_MAX_ATTEMPTS,
    Domain,
    SubdomainStatus,
    SubdomainUpdate,
)
from subdomain_engine.core.state_machine import SubdomainStateMachine


class TestSubdomainRecord:
    """Test subdomain record lifecycle helpers."""

    # -------------------------
    # STATE TRANSITION TESTS
    # -------------------------

    def test_initial_state(self, sample_record):
        """New records start pending with no DNS flags."""
        assert sample_record.status == SubdomainStatus.PENDING
        assert sample_record.is_active
        assert not sample_record.dns_created
        assert not sample_record.dns_propagated
        assert sample_record.version == 0

    def test_write_succeeded(self, sample_record):
        sample_record.retry_count = 2
        sample_record.previous_target_value = "198.51.100.1"

        sample_record.mark_write_succeeded()

        assert sample_record.status == SubdomainStatus.ACTIVE
        assert sample_record.dns_created
        assert not sample_record.dns_propagated
        assert sample_record.retry_count == 0
        assert sample_record.previous_target_value is None
        assert sample_record.last_checked is not None

    def test_write_failed_keeps_message(self, sample_record):
        sample_record.mark_write_failed("quota exceeded")

        assert sample_record.status == SubdomainStatus.FAILED
        assert sample_record.dns_error == "quota exceeded"
        assert not sample_record.dns_created

    def test_write_pending_resets_counters(self, sample_record):
        sample_record.mark_write_failed("boom")
        sample_record.retry_count = 3
        sample_record.creation_retry_count = 2

        sample_record.mark_write_pending()

        assert sample_record.status == SubdomainStatus.PENDING
        assert sample_record.dns_error is None
        assert sample_record.retry_count == 0
        assert sample_record.creation_retry_count == 0

    def test_propagation_miss_below_ceiling(self, sample_record):
        sample_record.mark_write_succeeded()

        exhausted = sample_record.record_propagation_miss()

        assert not exhausted
        assert sample_record.retry_count == 1
        assert sample_record.status == SubdomainStatus.ACTIVE

    def test_propagation_fails_exactly_at_ceiling(self, sample_record):
        """The fifth miss fails the record, the fourth does not."""
        sample_record.mark_write_succeeded()

        for _ in range(PROPAGATION_MAX_ATTEMPTS - 1):
            assert not sample_record.record_propagation_miss()
        assert sample_record.status == SubdomainStatus.ACTIVE

        assert sample_record.record_propagation_miss()
        assert sample_record.status == SubdomainStatus.FAILED
        assert sample_record.retry_count == PROPAGATION_MAX_ATTEMPTS
        assert sample_record.dns_error == "DNS propagation timeout after 5 attempts"
        assert not sample_record.needs_propagation_check()

    def test_propagation_miss_with_lookup_error(self, sample_record):
        sample_record.mark_write_succeeded()

        sample_record.record_propagation_miss("lookup timed out")

        assert sample_record.dns_error == "lookup timed out"
        assert sample_record.status == SubdomainStatus.ACTIVE

    def test_mark_propagated(self, sample_record):
        sample_record.mark_write_succeeded()
        sample_record.record_propagation_miss("slow")

        sample_record.mark_propagated()

        assert sample_record.dns_propagated
        assert sample_record.dns_error is None
        assert sample_record.status == SubdomainStatus.ACTIVE

    def test_deactivate(self, sample_record):
        sample_record.mark_write_succeeded()

        sample_record.deactivate()

        assert not sample_record.is_active
        assert sample_record.status == SubdomainStatus.INACTIVE

    def test_copy_is_independent(self, sample_record):
        clone = sample_record.copy()
        clone.name = "api"

        assert sample_record.name == "www"

    def test_fqdn(self, sample_record):
        assert sample_record.fqdn("example.com") == "www.example.com"

    # -------------------------
    # SELECTION PREDICATES
    # -------------------------

    def test_needs_propagation_check(self, sample_record):
        assert sample_record.needs_propagation_check()

        sample_record.mark_propagated()
        assert not sample_record.needs_propagation_check()

    def test_inactive_never_selected(self, sample_record):
        sample_record.deactivate()

        assert not sample_record.needs_propagation_check()
        assert not sample_record.can_retry_write()

    def test_can_retry_write(self, sample_record):
        sample_record.mark_write_failed("rejected")
        assert sample_record.can_retry_write()

        sample_record.creation_retry_count = CREATION_MAX_RETRIES
        assert not sample_record.can_retry_write()

    def test_propagation_timeout_is_not_rewritten(self, sample_record):
        """A write the registrar confirmed is never retried automatically."""
        sample_record.mark_write_succeeded()
        for _ in range(PROPAGATION_MAX_ATTEMPTS):
            sample_record.record_propagation_miss()

        assert sample_record.status == SubdomainStatus.FAILED
        assert not sample_record.can_retry_write()


class TestDomain:
    def test_manageable_statuses(self):
        assert Domain(id=1, name="a.com", status="active").is_manageable()
        assert Domain(id=1, name="a.com", status="pending").is_manageable()
        assert Domain(id=1, name="a.com", status="registered").is_manageable()
        assert not Domain(id=1, name="a.com", status="expired").is_manageable()


class TestSubdomainUpdate:
    def test_empty(self):
        assert SubdomainUpdate().is_empty()
        assert not SubdomainUpdate(ttl=300).is_empty()


class TestStateMachine:
    """Test allowed status transitions."""

    def test_pending_to_active(self):
        assert SubdomainStateMachine.can_transition(SubdomainStatus.PENDING, SubdomainStatus.ACTIVE)

    def test_failed_to_active(self):
        assert SubdomainStateMachine.can_transition(SubdomainStatus.FAILED, SubdomainStatus.ACTIVE)

    def test_active_stays_active(self):
        assert SubdomainStateMachine.can_transition(SubdomainStatus.ACTIVE, SubdomainStatus.ACTIVE)

    def test_inactive_is_terminal(self):
        for status in SubdomainStatus:
            assert not SubdomainStateMachine.can_transition(SubdomainStatus.INACTIVE, status)

    def test_ensure_raises(self):
        with pytest.raises(InvalidStateTransition):
            SubdomainStateMachine.ensure(SubdomainStatus.INACTIVE, SubdomainStatus.ACTIVE)


class TestRegistrarError:
    def test_retryable_kinds(self):
        assert RegistrarError("t", kind=RegistrarErrorKind.TIMEOUT).retryable
        assert RegistrarError("n", kind=RegistrarErrorKind.NETWORK).retryable
        assert not RegistrarError("a", kind=RegistrarErrorKind.AUTH).retryable

    def test_str_is_message(self):
        assert str(RegistrarError("quota exceeded")) == "quota exceeded"
