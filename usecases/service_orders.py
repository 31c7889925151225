"""Orchestration use cases for the service order lifecycle.

Each use case reads the aggregate through the gateway, validates, derives
the new state, persists it and only then publishes the matching event.
Errors from the gateway or publisher propagate unchanged.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from gateways.service_order_gateway import ServiceOrderGateway
from messaging.publisher import ServiceOrderEventPublisher
from models.page import Page, PageRequest
from models.requests import (
    ServiceOrderItemRequest,
    ServiceOrderRequest,
    ServiceOrderResourceRequest,
    ServiceOrderStatusUpdateRequest,
)
from models.service_order import ServiceOrder, ServiceOrderItem, ServiceOrderResource
from models.status import ServiceOrderStatus
from utils.exceptions import InvalidDataError, NotFoundError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def build_quote(
    service_requests: Optional[List[ServiceOrderItemRequest]],
    resource_requests: Optional[List[ServiceOrderResourceRequest]],
) -> Tuple[List[ServiceOrderItem], List[ServiceOrderResource], Decimal]:
    """Price the requested lines; a missing unit price counts as zero."""
    total = Decimal("0")

    services: List[ServiceOrderItem] = []
    for request in service_requests or []:
        price = request.price if request.price is not None else Decimal("0")
        line_total = price * request.quantity
        services.append(ServiceOrderItem(
            service_id=request.service_id,
            service_name=request.service_name,
            service_description=request.service_description,
            quantity=request.quantity,
            price=price,
            total_price=line_total,
        ))
        total += line_total

    resources: List[ServiceOrderResource] = []
    for request in resource_requests or []:
        price = request.price if request.price is not None else Decimal("0")
        line_total = price * request.quantity
        resources.append(ServiceOrderResource(
            resource_id=request.resource_id,
            resource_name=request.resource_name,
            resource_description=request.resource_description,
            resource_type=request.resource_type,
            quantity=request.quantity,
            price=price,
            total_price=line_total,
        ))
        total += line_total

    return services, resources, total


def has_complete_quote(
    services: List[ServiceOrderItem], resources: List[ServiceOrderResource], total: Decimal
) -> bool:
    """At least one line and a strictly positive total."""
    return (bool(services) or bool(resources)) and total > 0


async def _require_order(gateway: ServiceOrderGateway, order_id: int) -> ServiceOrder:
    order = await gateway.find_by_id(order_id)
    if order is None:
        raise NotFoundError(f"Service order not found with id: {order_id}")
    return order


class CreateServiceOrderUseCase:
    def __init__(self, gateway: ServiceOrderGateway, publisher: ServiceOrderEventPublisher,
                 clock: Clock = datetime.now):
        self._gateway = gateway
        self._publisher = publisher
        self._clock = clock

    async def execute(self, request: ServiceOrderRequest) -> ServiceOrder:
        services, resources, total = build_quote(request.services, request.resources)

        now = self._clock()
        order = ServiceOrder(
            customer_id=request.customer_id,
            customer_name=request.customer_name,
            vehicle_id=request.vehicle_id,
            vehicle_license_plate=request.vehicle_license_plate,
            vehicle_model=request.vehicle_model,
            vehicle_brand=request.vehicle_brand,
            description=request.description,
            status=ServiceOrderStatus.received(),
            total_price=total,
            created_at=now,
            updated_at=now,
            services=services,
            resources=resources,
        )

        saved = await self._gateway.insert(order)
        logger.info(f"Created service order {saved.id} with total {saved.total_price}")
        await self._publisher.publish_order_created(saved)

        # A fully priced quote skips the manual diagnosis step
        if has_complete_quote(services, resources, total):
            advance_time = self._clock()
            in_diagnosis = await self._gateway.update(
                saved.apply_status(ServiceOrderStatus.in_diagnosis(), advance_time))
            saved = await self._gateway.update(
                in_diagnosis.apply_status(ServiceOrderStatus.waiting_approval(), advance_time))
            logger.info(f"Service order {saved.id} has a complete quote, advanced to {saved.status}")
            await self._publisher.publish_order_waiting_approval(saved)

        return saved


class UpdateServiceOrderUseCase:
    """Replaces the quote of an order that is still RECEIVED or IN_DIAGNOSIS. Emits no event."""

    def __init__(self, gateway: ServiceOrderGateway, clock: Clock = datetime.now):
        self._gateway = gateway
        self._clock = clock

    async def execute(self, order_id: int, request: ServiceOrderRequest) -> ServiceOrder:
        existing = await _require_order(self._gateway, order_id)

        if not existing.status.is_open_for_update:
            raise InvalidDataError(f"Cannot update order in status: {existing.status.value}")

        services, resources, total = build_quote(request.services, request.resources)

        def pick(new, old):
            return new if new is not None else old

        updated = existing.model_copy(update={
            "customer_id": pick(request.customer_id, existing.customer_id),
            "customer_name": pick(request.customer_name, existing.customer_name),
            "vehicle_id": pick(request.vehicle_id, existing.vehicle_id),
            "vehicle_license_plate": pick(request.vehicle_license_plate, existing.vehicle_license_plate),
            "vehicle_model": pick(request.vehicle_model, existing.vehicle_model),
            "vehicle_brand": pick(request.vehicle_brand, existing.vehicle_brand),
            "description": request.description,
            "total_price": total,
            "updated_at": self._clock(),
            "services": services,
            "resources": resources,
        })

        saved = await self._gateway.update(updated)
        logger.info(f"Updated quote of service order {saved.id}, new total {saved.total_price}")
        return saved


class UpdateServiceOrderStatusUseCase:
    def __init__(self, gateway: ServiceOrderGateway, publisher: ServiceOrderEventPublisher,
                 clock: Clock = datetime.now):
        self._gateway = gateway
        self._publisher = publisher
        self._clock = clock

    async def execute(self, order_id: int, request: ServiceOrderStatusUpdateRequest) -> ServiceOrder:
        existing = await _require_order(self._gateway, order_id)

        current = existing.status
        new_status = ServiceOrderStatus.of(request.status)

        if not current.can_transition_to(new_status):
            raise InvalidDataError(f"Invalid status transition from {current} to {new_status}")

        saved = await self._gateway.update(existing.apply_status(new_status, self._clock()))
        logger.info(f"Service order {saved.id} moved from {current} to {new_status}")
        await self._publish_status_change(saved, new_status)
        return saved

    async def _publish_status_change(self, order: ServiceOrder, status: ServiceOrderStatus) -> None:
        if status.is_waiting_approval:
            await self._publisher.publish_order_waiting_approval(order)
        elif status.is_in_execution:
            await self._publisher.publish_order_approved(order)
        elif status.is_finished:
            await self._publisher.publish_order_finished(order)
        elif status.is_delivered:
            await self._publisher.publish_order_delivered(order)
        elif status.is_cancelled:
            await self._publisher.publish_order_cancelled(order)
        # IN_DIAGNOSIS is an internal step, not relevant to the Saga


class ProcessApprovalUseCase:
    def __init__(self, gateway: ServiceOrderGateway, publisher: ServiceOrderEventPublisher,
                 clock: Clock = datetime.now):
        self._gateway = gateway
        self._publisher = publisher
        self._clock = clock

    async def execute(self, order_id: int, approved: bool) -> ServiceOrder:
        existing = await _require_order(self._gateway, order_id)

        if not existing.status.is_waiting_approval:
            raise InvalidDataError(
                f"Service order is not waiting for approval. Current status: {existing.status.value}")

        # A rejected quote goes back to diagnosis for revision
        new_status = ServiceOrderStatus.in_execution() if approved else ServiceOrderStatus.in_diagnosis()
        if not existing.status.can_transition_to(new_status):
            raise InvalidDataError(f"Invalid status transition from {existing.status} to {new_status}")
        saved = await self._gateway.update(existing.apply_status(new_status, self._clock()))

        if approved:
            logger.info(f"Service order {saved.id} approved by customer")
            await self._publisher.publish_order_approved(saved)
        else:
            logger.info(f"Service order {saved.id} rejected by customer, back to diagnosis")
            await self._publisher.publish_order_rejected(saved)
        return saved


class CancelServiceOrderUseCase:
    """Saga compensation: cancel an order whose quote has not started execution."""

    def __init__(self, gateway: ServiceOrderGateway, publisher: ServiceOrderEventPublisher,
                 clock: Clock = datetime.now):
        self._gateway = gateway
        self._publisher = publisher
        self._clock = clock

    async def execute(self, order_id: int, reason: Optional[str] = None) -> ServiceOrder:
        existing = await _require_order(self._gateway, order_id)

        cancelled = ServiceOrderStatus.cancelled()
        if not existing.status.can_transition_to(cancelled):
            raise InvalidDataError(f"Cannot cancel order in status: {existing.status.value}")

        saved = await self._gateway.update(existing.apply_status(cancelled, self._clock()))
        logger.info(f"Service order {saved.id} cancelled (reason: {reason or 'not informed'})")
        await self._publisher.publish_order_cancelled(saved, reason)
        return saved


class FindServiceOrderUseCase:
    def __init__(self, gateway: ServiceOrderGateway):
        self._gateway = gateway

    async def find_by_id(self, order_id: int) -> ServiceOrder:
        return await _require_order(self._gateway, order_id)

    async def find_all(self, page_request: PageRequest) -> Page[ServiceOrder]:
        return await self._gateway.find_all(page_request)

    async def find_by_customer_id(self, customer_id: int, page_request: PageRequest) -> Page[ServiceOrder]:
        return await self._gateway.find_by_customer_id(customer_id, page_request)

    async def find_by_status(self, status: str, page_request: PageRequest) -> Page[ServiceOrder]:
        return await self._gateway.find_by_status(ServiceOrderStatus.of(status), page_request)
