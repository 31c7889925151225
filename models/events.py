from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.service_order import ServiceOrder


class ServiceOrderEventType(str, Enum):
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_WAITING_APPROVAL = "ORDER_WAITING_APPROVAL"
    ORDER_APPROVED = "ORDER_APPROVED"
    ORDER_REJECTED = "ORDER_REJECTED"
    ORDER_FINISHED = "ORDER_FINISHED"
    ORDER_DELIVERED = "ORDER_DELIVERED"
    ORDER_CANCELLED = "ORDER_CANCELLED"


class ServiceOrderEvent(BaseModel):
    """Lifecycle milestone published to the Saga participants."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_type: ServiceOrderEventType
    order_id: int
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    vehicle_id: Optional[int] = None
    vehicle_license_plate: Optional[str] = None
    status: Optional[str] = None
    description: Optional[str] = None
    reason: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_order(
        cls,
        event_type: ServiceOrderEventType,
        order: ServiceOrder,
        reason: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> "ServiceOrderEvent":
        return cls(
            event_type=event_type,
            order_id=order.id,
            customer_id=order.customer_id,
            customer_name=order.customer_name,
            vehicle_id=order.vehicle_id,
            vehicle_license_plate=order.vehicle_license_plate,
            status=order.status.value if order.status is not None else None,
            description=order.description,
            reason=reason,
            timestamp=timestamp or order.updated_at or datetime.now(),
        )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class BillingItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: str  # SERVICE or RESOURCE
    item_code: str
    description: Optional[str] = None
    quantity: int
    unit_price: str


class BillingOrderEvent(BaseModel):
    """ORDER_CREATED payload in the shape the billing service expects to open a budget."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_type: str = ServiceOrderEventType.ORDER_CREATED.value
    order_id: int
    service_order_id: str
    customer_id: str
    vehicle_id: str
    customer_name: Optional[str] = None
    vehicle_license_plate: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    total_price: str = "0"
    items: List[BillingItem] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)

    @classmethod
    def from_order(cls, order: ServiceOrder, timestamp: Optional[datetime] = None) -> "BillingOrderEvent":
        items = [
            BillingItem(
                type="SERVICE",
                item_code=str(service.service_id),
                description=service.service_description,
                quantity=service.quantity,
                unit_price=str(service.price if service.price is not None else 0),
            )
            for service in order.services or []
        ]
        items.extend(
            BillingItem(
                type="RESOURCE",
                item_code=str(resource.resource_id),
                description=resource.resource_description,
                quantity=resource.quantity,
                unit_price=str(resource.price if resource.price is not None else 0),
            )
            for resource in order.resources or []
        )
        return cls(
            order_id=order.id,
            service_order_id=str(order.id),
            customer_id=str(order.customer_id),
            vehicle_id=str(order.vehicle_id),
            customer_name=order.customer_name,
            vehicle_license_plate=order.vehicle_license_plate,
            description=order.description,
            status=order.status.value if order.status is not None else None,
            total_price=str(order.total_price if order.total_price is not None else 0),
            items=items,
            timestamp=timestamp or order.updated_at or datetime.now(),
        )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
