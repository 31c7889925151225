"""Service order event publishing (the Saga boundary).

Every lifecycle milestone becomes a :class:`ServiceOrderEvent`. The Temporal
publisher signals the order's saga workflow with it; the in-memory publisher
keeps it for inspection and logs it.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from temporalio.client import Client

from models.events import BillingOrderEvent, ServiceOrderEvent, ServiceOrderEventType
from models.service_order import ServiceOrder
from workflows.service_order_saga_workflow import ServiceOrderSagaWorkflow, saga_workflow_id

logger = logging.getLogger(__name__)

BILLING_WORKFLOW_NAME = "CreateBudgetWorkflow"


class ServiceOrderEventPublisher(ABC):
    """One method per milestone, each taking the persisted order snapshot."""

    @abstractmethod
    async def publish(self, event: ServiceOrderEvent) -> None:
        """Deliver a single event. Failures propagate to the calling use case."""

    async def publish_order_created(self, order: ServiceOrder) -> None:
        await self.publish(ServiceOrderEvent.from_order(ServiceOrderEventType.ORDER_CREATED, order))

    async def publish_order_waiting_approval(self, order: ServiceOrder) -> None:
        await self.publish(ServiceOrderEvent.from_order(ServiceOrderEventType.ORDER_WAITING_APPROVAL, order))

    async def publish_order_approved(self, order: ServiceOrder) -> None:
        await self.publish(ServiceOrderEvent.from_order(ServiceOrderEventType.ORDER_APPROVED, order))

    async def publish_order_rejected(self, order: ServiceOrder) -> None:
        await self.publish(ServiceOrderEvent.from_order(ServiceOrderEventType.ORDER_REJECTED, order))

    async def publish_order_finished(self, order: ServiceOrder) -> None:
        await self.publish(ServiceOrderEvent.from_order(ServiceOrderEventType.ORDER_FINISHED, order))

    async def publish_order_delivered(self, order: ServiceOrder) -> None:
        await self.publish(ServiceOrderEvent.from_order(ServiceOrderEventType.ORDER_DELIVERED, order))

    async def publish_order_cancelled(self, order: ServiceOrder, reason: Optional[str] = None) -> None:
        await self.publish(ServiceOrderEvent.from_order(ServiceOrderEventType.ORDER_CANCELLED, order, reason=reason))


class InMemoryEventPublisher(ServiceOrderEventPublisher):
    """Keeps published events in order; used when Temporal is disabled and in tests."""

    def __init__(self) -> None:
        self.events: List[ServiceOrderEvent] = []

    async def publish(self, event: ServiceOrderEvent) -> None:
        self.events.append(event)
        logger.info(f"Published event: {event.event_type.value} for order: {event.order_id}")

    def event_types(self, order_id: Optional[int] = None) -> List[ServiceOrderEventType]:
        return [e.event_type for e in self.events if order_id is None or e.order_id == order_id]

    def clear(self) -> None:
        self.events.clear()


class TemporalEventPublisher(ServiceOrderEventPublisher):
    """
    Publishes milestones to the order's ServiceOrderSagaWorkflow using
    signal-with-start, so the first event also starts the workflow.

    ORDER_CREATED is additionally forwarded to the billing service's budget
    workflow when a billing task queue is configured.
    """

    def __init__(self, client: Client, task_queue: str, billing_task_queue: Optional[str] = None) -> None:
        self._client = client
        self._task_queue = task_queue
        self._billing_task_queue = billing_task_queue

    async def publish(self, event: ServiceOrderEvent) -> None:
        workflow_id = saga_workflow_id(event.order_id)
        try:
            await self._client.start_workflow(
                ServiceOrderSagaWorkflow.run,
                event.order_id,
                id=workflow_id,
                task_queue=self._task_queue,
                start_signal="record_event",
                start_signal_args=[event.to_payload()],
            )
        except Exception as e:
            logger.error(f"Error publishing {event.event_type.value} for order {event.order_id}: {e}")
            raise
        logger.info(f"Published event: {event.event_type.value} for order: {event.order_id} to {workflow_id}")

    async def publish_order_created(self, order: ServiceOrder) -> None:
        await super().publish_order_created(order)
        await self._forward_to_billing(order)

    async def _forward_to_billing(self, order: ServiceOrder) -> None:
        if not self._billing_task_queue:
            logger.debug("Billing task queue not configured, skipping billing notification")
            return

        payload = BillingOrderEvent.from_order(order)
        try:
            await self._client.start_workflow(
                BILLING_WORKFLOW_NAME,
                payload.to_payload(),
                id=f"billing-budget-{order.id}",
                task_queue=self._billing_task_queue,
            )
        except Exception as e:
            # Best-effort: a billing failure never fails order creation
            logger.error(f"Error forwarding order {order.id} to billing: {e}")
            return
        logger.info(f"Published ORDER_CREATED to billing for order: {order.id} with {len(payload.items)} item(s)")
