"""
Shared fixtures: an in-memory gateway, a recording publisher, a controllable
clock and the use cases wired against them.
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from gateways.service_order_gateway import InMemoryServiceOrderGateway
from messaging.publisher import InMemoryEventPublisher
from models.requests import ServiceOrderItemRequest, ServiceOrderRequest, ServiceOrderResourceRequest
from models.service_order import ServiceOrder
from models.status import ServiceOrderStatus
from usecases import ServiceOrderUseCases


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 8, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def gateway() -> InMemoryServiceOrderGateway:
    return InMemoryServiceOrderGateway()


@pytest.fixture
def publisher() -> InMemoryEventPublisher:
    return InMemoryEventPublisher()


@pytest.fixture
def use_cases(gateway, publisher, clock) -> ServiceOrderUseCases:
    return ServiceOrderUseCases(gateway, publisher, clock)


def make_request(services=None, resources=None, **overrides) -> ServiceOrderRequest:
    fields = dict(
        customer_id=10,
        customer_name="Maria Souza",
        vehicle_id=20,
        vehicle_license_plate="ABC1D23",
        vehicle_model="Onix",
        vehicle_brand="Chevrolet",
        description="Brake noise on front wheels",
        services=services,
        resources=resources,
    )
    fields.update(overrides)
    return ServiceOrderRequest(**fields)


def priced_request() -> ServiceOrderRequest:
    return make_request(
        services=[ServiceOrderItemRequest(service_id=1, service_name="Brake pad replacement",
                                          quantity=1, price=Decimal("150"))],
        resources=[ServiceOrderResourceRequest(resource_id=7, resource_name="Brake pad",
                                               resource_type="PART", quantity=5, price=Decimal("45"))],
    )


def make_order(status: ServiceOrderStatus = ServiceOrderStatus.RECEIVED, **overrides) -> ServiceOrder:
    fields = dict(
        customer_id=10,
        vehicle_id=20,
        status=status,
        total_price=Decimal("0"),
        created_at=datetime(2024, 3, 1, 8, 0, 0),
        updated_at=datetime(2024, 3, 1, 8, 0, 0),
        services=[],
        resources=[],
    )
    fields.update(overrides)
    return ServiceOrder(**fields)


@pytest.fixture
def store(gateway):
    """Insert an order directly in the gateway, bypassing the use cases."""
    async def _store(status: ServiceOrderStatus = ServiceOrderStatus.RECEIVED, **overrides) -> ServiceOrder:
        return await gateway.insert(make_order(status, **overrides))
    return _store
