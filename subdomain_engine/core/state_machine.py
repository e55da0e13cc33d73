#subdomain_engine/core/state_machine.py

from subdomain_engine.core.models import SubdomainStatus
from subdomain_engine.core.errors import InvalidStateTransition


ALLOWED_TRANSITIONS = {
    SubdomainStatus.PENDING: {
        SubdomainStatus.ACTIVE,
        SubdomainStatus.FAILED,
        SubdomainStatus.INACTIVE,
    },
    SubdomainStatus.ACTIVE: {
        SubdomainStatus.PENDING,
        SubdomainStatus.FAILED,
        SubdomainStatus.INACTIVE,
    },
    SubdomainStatus.FAILED: {
        SubdomainStatus.PENDING,
        SubdomainStatus.ACTIVE,
        SubdomainStatus.INACTIVE,
    },
    # INACTIVE is terminal
}


class SubdomainStateMachine:
    @staticmethod
    def can_transition(current: SubdomainStatus, new_status: SubdomainStatus) -> bool:
        if current == new_status:
            return current != SubdomainStatus.INACTIVE
        return new_status in ALLOWED_TRANSITIONS.get(current, set())

    @staticmethod
    def ensure(current: SubdomainStatus, new_status: SubdomainStatus) -> None:
        if not SubdomainStateMachine.can_transition(current, new_status):
            raise InvalidStateTransition(
                f"Cannot transition from {current.value} to {new_status.value}"
            )
