from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from models.status import ServiceOrderStatus
from utils.exceptions import InvalidDataError


def _default_line_total(value: Optional[Decimal], info: ValidationInfo) -> Optional[Decimal]:
    # total_price falls back to price x quantity, computed on the coerced fields
    if value is None:
        price = info.data.get("price")
        quantity = info.data.get("quantity")
        if price is not None and quantity is not None:
            return price * quantity
    return value


class ServiceOrderItem(BaseModel):
    """A labour/service line of a service order."""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    service_id: Optional[int] = None
    service_name: Optional[str] = None
    service_description: Optional[str] = None
    quantity: Optional[int] = None
    price: Optional[Decimal] = None
    total_price: Optional[Decimal] = Field(None, validate_default=True)

    @field_validator("total_price")
    @classmethod
    def _default_total(cls, value: Optional[Decimal], info: ValidationInfo) -> Optional[Decimal]:
        return _default_line_total(value, info)

    @model_validator(mode="after")
    def _check_invariants(self) -> "ServiceOrderItem":
        if self.service_id is None:
            raise InvalidDataError("Invalid ServiceOrderItem: serviceId must not be null")
        if self.quantity is None or self.quantity <= 0:
            raise InvalidDataError("Invalid ServiceOrderItem: quantity must be greater than zero")
        if self.price is None:
            raise InvalidDataError("Invalid ServiceOrderItem: price must not be null")
        if self.total_price is None:
            raise InvalidDataError("Invalid ServiceOrderItem: totalPrice must not be null")
        return self

    def with_id(self, item_id: int) -> "ServiceOrderItem":
        return self.model_copy(update={"id": item_id})


class ServiceOrderResource(BaseModel):
    """A part or supply line of a service order."""
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    resource_id: Optional[int] = None
    resource_name: Optional[str] = None
    resource_description: Optional[str] = None
    resource_type: Optional[str] = None  # e.g. PART, SUPPLY
    quantity: Optional[int] = None
    price: Optional[Decimal] = None
    total_price: Optional[Decimal] = Field(None, validate_default=True)

    @field_validator("total_price")
    @classmethod
    def _default_total(cls, value: Optional[Decimal], info: ValidationInfo) -> Optional[Decimal]:
        return _default_line_total(value, info)

    @model_validator(mode="after")
    def _check_invariants(self) -> "ServiceOrderResource":
        if self.resource_id is None:
            raise InvalidDataError("Invalid ServiceOrderResource: resourceId must not be null")
        if self.quantity is None or self.quantity <= 0:
            raise InvalidDataError("Invalid ServiceOrderResource: quantity must be greater than zero")
        if self.price is None:
            raise InvalidDataError("Invalid ServiceOrderResource: price must not be null")
        if self.total_price is None:
            raise InvalidDataError("Invalid ServiceOrderResource: totalPrice must not be null")
        return self

    def with_id(self, resource_id: int) -> "ServiceOrderResource":
        return self.model_copy(update={"id": resource_id})


class ServiceOrder(BaseModel):
    """
    The service order aggregate: one repair job for one customer/vehicle.

    Instances are immutable; every change produces a new value. `version` is
    the optimistic-concurrency token checked by the gateway on update.
    """
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    vehicle_id: Optional[int] = None
    vehicle_license_plate: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_brand: Optional[str] = None
    description: Optional[str] = None
    status: ServiceOrderStatus = ServiceOrderStatus.RECEIVED
    total_price: Decimal = Decimal("0")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    services: Optional[List[ServiceOrderItem]] = None
    resources: Optional[List[ServiceOrderResource]] = None
    version: int = 0

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> ServiceOrderStatus:
        return ServiceOrderStatus.of(value)

    @model_validator(mode="after")
    def _check_invariants(self) -> "ServiceOrder":
        if self.customer_id is None:
            raise InvalidDataError("Invalid ServiceOrder: customerId must not be null")
        if self.vehicle_id is None:
            raise InvalidDataError("Invalid ServiceOrder: vehicleId must not be null")
        if self.services is None:
            raise InvalidDataError("Invalid ServiceOrder: services list must not be null")
        if self.resources is None:
            raise InvalidDataError("Invalid ServiceOrder: resources list must not be null")
        return self

    @property
    def has_line_items(self) -> bool:
        return bool(self.services) or bool(self.resources)

    def with_id(self, order_id: int) -> "ServiceOrder":
        return self.model_copy(update={"id": order_id})

    def apply_status(self, new_status: ServiceOrderStatus, now: datetime) -> "ServiceOrder":
        """
        Return a copy in `new_status` with the workflow timestamps adjusted:
        updated_at is always `now`; approved_at, finished_at and delivered_at
        are set on entering IN_EXECUTION, FINISHED and DELIVERED respectively,
        only when not already set. Transition legality is checked by the caller.
        """
        if new_status is None:
            raise InvalidDataError("New status must not be null")

        approved_at = self.approved_at
        finished_at = self.finished_at
        delivered_at = self.delivered_at

        if new_status.is_in_execution and approved_at is None:
            approved_at = now
        if new_status.is_finished and finished_at is None:
            finished_at = now
        if new_status.is_delivered and delivered_at is None:
            delivered_at = now

        return self.model_copy(update={
            "status": new_status,
            "updated_at": now,
            "approved_at": approved_at,
            "finished_at": finished_at,
            "delivered_at": delivered_at,
        })


class ExecutionTimeStatistics(BaseModel):
    total_orders: int = 0
    avg_execution_time_hours: Decimal = Decimal("0")
    min_execution_time_hours: Decimal = Decimal("0")
    max_execution_time_hours: Decimal = Decimal("0")
    orders_in_progress: int = 0
    orders_finished: int = 0
    orders_delivered: int = 0


class ServiceOrderStatusView(BaseModel):
    id: int
    status: ServiceOrderStatus
    updated_at: Optional[datetime] = None
    allowed_transitions: List[ServiceOrderStatus] = Field(default_factory=list)

    @classmethod
    def from_order(cls, order: ServiceOrder) -> "ServiceOrderStatusView":
        return cls(
            id=order.id,
            status=order.status,
            updated_at=order.updated_at,
            allowed_transitions=sorted(order.status.allowed_targets(), key=lambda s: s.value),
        )
