"""Persistence gateway for service orders.

The use cases depend only on :class:`ServiceOrderGateway`. The in-memory
implementation backs the API process and the tests; a database-backed
gateway would implement the same contract.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Union

from models.page import Page, PageRequest
from models.service_order import ServiceOrder
from models.status import ServiceOrderStatus
from utils.exceptions import ConcurrencyConflictError, NotFoundError

logger = logging.getLogger(__name__)


class ServiceOrderGateway(ABC):
    """Storage contract for the service order aggregate.

    Implementations persist one order atomically per call. `update` must
    reject a stale order (one whose `version` no longer matches the stored
    record) with ConcurrencyConflictError and return the order with its
    version bumped.
    """

    @abstractmethod
    async def insert(self, order: ServiceOrder) -> ServiceOrder:
        """Store a new order and return it with ids assigned."""

    @abstractmethod
    async def update(self, order: ServiceOrder) -> ServiceOrder:
        """Replace a stored order."""

    @abstractmethod
    async def find_by_id(self, order_id: int) -> Optional[ServiceOrder]:
        ...

    @abstractmethod
    async def find_all(self, page_request: PageRequest) -> Page[ServiceOrder]:
        ...

    @abstractmethod
    async def find_by_customer_id(self, customer_id: int, page_request: PageRequest) -> Page[ServiceOrder]:
        ...

    @abstractmethod
    async def find_by_status(
        self, status: Union[ServiceOrderStatus, str], page_request: PageRequest
    ) -> Page[ServiceOrder]:
        ...

    @abstractmethod
    async def delete_by_id(self, order_id: int) -> None:
        ...


class InMemoryServiceOrderGateway(ServiceOrderGateway):
    """Dict-backed gateway; ids are sequential integers starting at 1."""

    def __init__(self) -> None:
        self._orders: Dict[int, ServiceOrder] = {}
        self._next_order_id = 1
        self._next_line_id = 1
        self._lock = asyncio.Lock()

    def _assign_line_ids(self, order: ServiceOrder) -> ServiceOrder:
        services = []
        for item in order.services:
            if item.id is None:
                item = item.with_id(self._next_line_id)
                self._next_line_id += 1
            services.append(item)
        resources = []
        for resource in order.resources:
            if resource.id is None:
                resource = resource.with_id(self._next_line_id)
                self._next_line_id += 1
            resources.append(resource)
        return order.model_copy(update={"services": services, "resources": resources})

    async def insert(self, order: ServiceOrder) -> ServiceOrder:
        async with self._lock:
            order_id = self._next_order_id
            self._next_order_id += 1
            stored = self._assign_line_ids(order).model_copy(update={"id": order_id, "version": 0})
            self._orders[order_id] = stored
            logger.debug(f"Inserted service order {order_id}")
            return stored

    async def update(self, order: ServiceOrder) -> ServiceOrder:
        async with self._lock:
            current = self._orders.get(order.id) if order.id is not None else None
            if current is None:
                raise NotFoundError(f"Service order not found with id: {order.id}")
            if current.version != order.version:
                raise ConcurrencyConflictError(order.id, order.version, current.version)
            stored = self._assign_line_ids(order).model_copy(update={"version": current.version + 1})
            self._orders[order.id] = stored
            logger.debug(f"Updated service order {order.id} to version {stored.version}")
            return stored

    async def find_by_id(self, order_id: int) -> Optional[ServiceOrder]:
        async with self._lock:
            return self._orders.get(order_id)

    async def find_all(self, page_request: PageRequest) -> Page[ServiceOrder]:
        return await self._page(lambda order: True, page_request)

    async def find_by_customer_id(self, customer_id: int, page_request: PageRequest) -> Page[ServiceOrder]:
        return await self._page(lambda order: order.customer_id == customer_id, page_request)

    async def find_by_status(
        self, status: Union[ServiceOrderStatus, str], page_request: PageRequest
    ) -> Page[ServiceOrder]:
        wanted = ServiceOrderStatus.of(status)
        return await self._page(lambda order: order.status is wanted, page_request)

    async def delete_by_id(self, order_id: int) -> None:
        async with self._lock:
            if self._orders.pop(order_id, None) is None:
                raise NotFoundError(f"Service order not found with id: {order_id}")
            logger.debug(f"Deleted service order {order_id}")

    async def _page(self, predicate: Callable[[ServiceOrder], bool], page_request: PageRequest) -> Page[ServiceOrder]:
        async with self._lock:
            matches: List[ServiceOrder] = [
                self._orders[order_id] for order_id in sorted(self._orders) if predicate(self._orders[order_id])
            ]
        start = page_request.offset
        return Page[ServiceOrder](
            content=matches[start:start + page_request.size],
            total_elements=len(matches),
            page_number=page_request.page,
            page_size=page_request.size,
        )
