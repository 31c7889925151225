"""Domain exceptions raised by the service order core.

The API layer translates these into HTTP responses and the Temporal
activities translate them into ApplicationErrors. Infrastructure failures
(storage, Temporal) are never wrapped in these types.
"""


class ServiceOrderError(Exception):
    """Base class for every deterministic service order failure."""


class NotFoundError(ServiceOrderError):
    """The requested service order does not exist (maps to HTTP 404)."""


class InvalidDataError(ServiceOrderError):
    """Malformed input or an operation not allowed in the current status (maps to HTTP 400)."""


class ConcurrencyConflictError(ServiceOrderError):
    """The stored order changed since it was read (maps to HTTP 409)."""

    def __init__(self, order_id: int, expected_version: int, actual_version: int) -> None:
        self.order_id = order_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Service order {order_id} was modified concurrently: "
            f"expected version {expected_version}, but current version is {actual_version}"
        )
