from datetime import timedelta
from typing import List, Optional, Tuple

from temporalio import workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError

with workflow.unsafe.imports_passed_through():
    from activities.service_order_activities import ServiceOrderActivities

TERMINAL_STATUSES = ("DELIVERED", "CANCELLED")

QUOTE_APPROVED = "quote_approved"
EXECUTION_COMPLETED = "execution_completed"
PAYMENT_FAILED = "payment_failed"
RESOURCE_UNAVAILABLE = "resource_unavailable"


def saga_workflow_id(order_id: int) -> str:
    return f"service-order-{order_id}"


@workflow.defn(name="ServiceOrderSagaWorkflow")
class ServiceOrderSagaWorkflow:
    """
    Per-order Saga coordinator.

    Outbound milestones published by the service arrive through the
    `record_event` signal and drive the tracked status. Inbound events from
    billing, execution and parts arrive as their own signals and are applied
    in arrival order through activities. The workflow completes once the
    order reaches a terminal status and no inbound event is pending.
    """

    def __init__(self):
        self._order_id: Optional[int] = None
        self._status: Optional[str] = None
        self._events: List[dict] = []
        self._pending: List[Tuple[str, Optional[str]]] = []
        self._rejected: List[dict] = []
        self._retry_policy = RetryPolicy(
            initial_interval=timedelta(seconds=2),
            backoff_coefficient=2.0,
            maximum_interval=timedelta(seconds=30),
            maximum_attempts=5,
            # NotFound / InvalidData are raised as non-retryable ApplicationErrors
            non_retryable_error_types=["NotFoundError", "InvalidDataError"],
        )

    @workflow.run
    async def run(self, order_id: int) -> dict:
        self._order_id = order_id
        workflow.logger.info(f"Starting ServiceOrderSagaWorkflow for order: {order_id}")

        while True:
            await workflow.wait_condition(lambda: bool(self._pending) or self._is_terminal())
            if not self._pending:
                break
            command, reason = self._pending.pop(0)
            await self._apply(command, reason)

        workflow.logger.info(f"Saga finished for order {order_id} with final status {self._status}")
        return self.get_details()

    def _is_terminal(self) -> bool:
        return self._status in TERMINAL_STATUSES

    async def _apply(self, command: str, reason: Optional[str]) -> None:
        workflow.logger.info(f"Applying '{command}' to order {self._order_id}")
        options = dict(start_to_close_timeout=timedelta(seconds=30), retry_policy=self._retry_policy)
        try:
            if command == QUOTE_APPROVED:
                await workflow.execute_activity_method(
                    ServiceOrderActivities.handle_quote_approved, self._order_id, **options)
            elif command == EXECUTION_COMPLETED:
                await workflow.execute_activity_method(
                    ServiceOrderActivities.handle_execution_completed, self._order_id, **options)
            elif command == PAYMENT_FAILED:
                await workflow.execute_activity_method(
                    ServiceOrderActivities.handle_payment_failed, args=[self._order_id, reason], **options)
            elif command == RESOURCE_UNAVAILABLE:
                await workflow.execute_activity_method(
                    ServiceOrderActivities.handle_resource_unavailable, args=[self._order_id, reason], **options)
            else:
                workflow.logger.warning(f"Ignoring unknown command '{command}' for order {self._order_id}")
        except ActivityError as e:
            # The order stays as it is; the rejection is kept for inspection
            workflow.logger.error(f"'{command}' could not be applied to order {self._order_id}: {e.cause or e}")
            self._rejected.append({"command": command, "reason": reason, "error": str(e.cause or e)})

    @workflow.signal
    async def record_event(self, event: dict):
        """Outbound milestone published after the order was persisted."""
        self._events.append(event)
        status = event.get("status")
        if status:
            workflow.logger.info(
                f"Order {self._order_id}: {event.get('eventType')} (status {self._status} -> {status})")
            self._status = status

    @workflow.signal
    async def quote_approved(self):
        self._pending.append((QUOTE_APPROVED, None))

    @workflow.signal
    async def execution_completed(self):
        self._pending.append((EXECUTION_COMPLETED, None))

    @workflow.signal
    async def payment_failed(self, reason: Optional[str] = None):
        self._pending.append((PAYMENT_FAILED, reason))

    @workflow.signal
    async def resource_unavailable(self, reason: Optional[str] = None):
        self._pending.append((RESOURCE_UNAVAILABLE, reason))

    @workflow.query
    def get_status(self) -> str:
        """Returns the last status published for the order."""
        return self._status or "UNKNOWN"

    @workflow.query
    def get_events(self) -> List[dict]:
        return list(self._events)

    @workflow.query
    def get_details(self) -> dict:
        return {
            "order_id": self._order_id,
            "status": self.get_status(),
            "events": list(self._events),
            "rejected_commands": list(self._rejected),
        }
