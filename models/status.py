from enum import Enum
from typing import Dict, FrozenSet, Optional, Union

from utils.exceptions import InvalidDataError


class ServiceOrderStatus(str, Enum):
    """
    Lifecycle of a service order:
    RECEIVED -> IN_DIAGNOSIS -> WAITING_APPROVAL -> IN_EXECUTION -> FINISHED -> DELIVERED.
    CANCELLED is reachable only while the quote is still open.
    """
    RECEIVED = "RECEIVED"
    IN_DIAGNOSIS = "IN_DIAGNOSIS"
    WAITING_APPROVAL = "WAITING_APPROVAL"
    IN_EXECUTION = "IN_EXECUTION"
    FINISHED = "FINISHED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def of(cls, status: Union[str, "ServiceOrderStatus", None]) -> "ServiceOrderStatus":
        """Parse a status literal (case-insensitive, surrounding blanks ignored)."""
        if isinstance(status, cls):
            return status
        if status is None or not str(status).strip():
            raise InvalidDataError("Order status must not be null or blank")
        normalized = str(status).strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidDataError(f"Invalid order status: {status}") from None

    # Named constructors
    @classmethod
    def received(cls) -> "ServiceOrderStatus":
        return cls.RECEIVED

    @classmethod
    def in_diagnosis(cls) -> "ServiceOrderStatus":
        return cls.IN_DIAGNOSIS

    @classmethod
    def waiting_approval(cls) -> "ServiceOrderStatus":
        return cls.WAITING_APPROVAL

    @classmethod
    def in_execution(cls) -> "ServiceOrderStatus":
        return cls.IN_EXECUTION

    @classmethod
    def finished(cls) -> "ServiceOrderStatus":
        return cls.FINISHED

    @classmethod
    def delivered(cls) -> "ServiceOrderStatus":
        return cls.DELIVERED

    @classmethod
    def cancelled(cls) -> "ServiceOrderStatus":
        return cls.CANCELLED

    @property
    def is_received(self) -> bool:
        return self is ServiceOrderStatus.RECEIVED

    @property
    def is_in_diagnosis(self) -> bool:
        return self is ServiceOrderStatus.IN_DIAGNOSIS

    @property
    def is_waiting_approval(self) -> bool:
        return self is ServiceOrderStatus.WAITING_APPROVAL

    @property
    def is_in_execution(self) -> bool:
        return self is ServiceOrderStatus.IN_EXECUTION

    @property
    def is_finished(self) -> bool:
        return self is ServiceOrderStatus.FINISHED

    @property
    def is_delivered(self) -> bool:
        return self is ServiceOrderStatus.DELIVERED

    @property
    def is_cancelled(self) -> bool:
        return self is ServiceOrderStatus.CANCELLED

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]

    @property
    def is_open_for_update(self) -> bool:
        """Quote content may only change before the quote is sent for approval."""
        return self in (ServiceOrderStatus.RECEIVED, ServiceOrderStatus.IN_DIAGNOSIS)

    def allowed_targets(self) -> FrozenSet["ServiceOrderStatus"]:
        return _TRANSITIONS[self]

    def can_transition_to(self, target: Optional["ServiceOrderStatus"]) -> bool:
        if not isinstance(target, ServiceOrderStatus):
            return False
        return target in _TRANSITIONS[self]

    def __str__(self) -> str:
        return self.value


_TRANSITIONS: Dict[ServiceOrderStatus, FrozenSet[ServiceOrderStatus]] = {
    ServiceOrderStatus.RECEIVED: frozenset({
        ServiceOrderStatus.IN_DIAGNOSIS,
        ServiceOrderStatus.CANCELLED,
    }),
    ServiceOrderStatus.IN_DIAGNOSIS: frozenset({
        ServiceOrderStatus.WAITING_APPROVAL,
        ServiceOrderStatus.CANCELLED,
    }),
    ServiceOrderStatus.WAITING_APPROVAL: frozenset({
        ServiceOrderStatus.IN_EXECUTION,
        ServiceOrderStatus.IN_DIAGNOSIS,
        ServiceOrderStatus.CANCELLED,
    }),
    ServiceOrderStatus.IN_EXECUTION: frozenset({ServiceOrderStatus.FINISHED}),
    ServiceOrderStatus.FINISHED: frozenset({ServiceOrderStatus.DELIVERED}),
    ServiceOrderStatus.DELIVERED: frozenset(),
    ServiceOrderStatus.CANCELLED: frozenset(),
}

# Every status needs a row
_missing = set(ServiceOrderStatus) - set(_TRANSITIONS)
if _missing:
    raise RuntimeError(f"Transition table is missing statuses: {sorted(s.value for s in _missing)}")
del _missing
