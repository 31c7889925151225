from typing import TYPE_CHECKING, Awaitable, Optional

from temporalio import activity
from temporalio.exceptions import ApplicationError

from models.requests import ServiceOrderStatusUpdateRequest
from models.service_order import ServiceOrder
from models.status import ServiceOrderStatus
from utils.exceptions import InvalidDataError, NotFoundError

if TYPE_CHECKING:
    from usecases.service_orders import CancelServiceOrderUseCase, UpdateServiceOrderStatusUseCase

DEFAULT_PAYMENT_FAILED_REASON = "Payment failed"
DEFAULT_RESOURCE_UNAVAILABLE_REASON = "Resource unavailable"


class ServiceOrderActivities:
    """
    Activities that apply events coming from the other Saga participants
    (billing, execution, parts) to the service order.

    NotFound and InvalidData outcomes are deterministic and raised as
    non-retryable ApplicationErrors. Anything else (including concurrent
    modification) is left to the activity retry policy.
    """

    def __init__(
        self,
        update_status: "UpdateServiceOrderStatusUseCase",
        cancel: "CancelServiceOrderUseCase",
    ):
        self._update_status = update_status
        self._cancel = cancel

    @staticmethod
    async def _run(operation: str, order_id: int, pending: Awaitable[ServiceOrder]) -> dict:
        try:
            order = await pending
        except (NotFoundError, InvalidDataError) as e:
            activity.logger.error(f"'{operation}' rejected for order {order_id}: {e}")
            raise ApplicationError(str(e), type=type(e).__name__, non_retryable=True) from e
        activity.logger.info(f"'{operation}' applied to order {order_id}, status now {order.status}")
        return order.model_dump(mode="json")

    async def _move_to(self, operation: str, order_id: int, status: ServiceOrderStatus) -> dict:
        request = ServiceOrderStatusUpdateRequest(status=status.value)
        return await self._run(operation, order_id, self._update_status.execute(order_id, request))

    @activity.defn
    async def handle_quote_approved(self, order_id: int) -> dict:
        """Billing approved the budget: start execution."""
        activity.logger.info(f"Received quote approved event for order: {order_id}")
        return await self._move_to("quote approved", order_id, ServiceOrderStatus.in_execution())

    @activity.defn
    async def handle_execution_completed(self, order_id: int) -> dict:
        """Execution service finished the work."""
        activity.logger.info(f"Received execution completed event for order: {order_id}")
        return await self._move_to("execution completed", order_id, ServiceOrderStatus.finished())

    @activity.defn
    async def handle_payment_failed(self, order_id: int, reason: Optional[str] = None) -> dict:
        activity.logger.info(f"Received payment failed event for order: {order_id}. Compensating...")
        reason = reason or DEFAULT_PAYMENT_FAILED_REASON
        return await self._run("payment failed", order_id, self._cancel.execute(order_id, reason))

    @activity.defn
    async def handle_resource_unavailable(self, order_id: int, reason: Optional[str] = None) -> dict:
        activity.logger.info(f"Received resource unavailable event for order: {order_id}. Compensating...")
        reason = reason or DEFAULT_RESOURCE_UNAVAILABLE_REASON
        return await self._run("resource unavailable", order_id, self._cancel.execute(order_id, reason))

    def all(self) -> list:
        return [
            self.handle_quote_approved,
            self.handle_execution_completed,
            self.handle_payment_failed,
            self.handle_resource_unavailable,
        ]
