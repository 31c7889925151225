from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ServiceOrderItemRequest(BaseModel):
    service_id: int = Field(..., description="ID of the catalogue service")
    service_name: Optional[str] = None
    service_description: Optional[str] = None
    quantity: int = Field(..., ge=1, description="Quantity, must be at least 1")
    price: Optional[Decimal] = Field(None, ge=0, description="Unit price; treated as zero when omitted")


class ServiceOrderResourceRequest(BaseModel):
    resource_id: int = Field(..., description="ID of the part or supply")
    resource_name: Optional[str] = None
    resource_description: Optional[str] = None
    resource_type: Optional[str] = Field(None, description="Resource category, e.g. PART or SUPPLY")
    quantity: int = Field(..., ge=1, description="Quantity, must be at least 1")
    price: Optional[Decimal] = Field(None, ge=0, description="Unit price; treated as zero when omitted")


class ServiceOrderRequest(BaseModel):
    customer_id: Optional[int] = Field(None, description="Required on creation")
    customer_name: Optional[str] = None
    vehicle_id: Optional[int] = Field(None, description="Required on creation")
    vehicle_license_plate: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_brand: Optional[str] = None
    description: Optional[str] = None
    services: Optional[List[ServiceOrderItemRequest]] = None
    resources: Optional[List[ServiceOrderResourceRequest]] = None


class ServiceOrderStatusUpdateRequest(BaseModel):
    status: str = Field(..., description="Target status literal, e.g. IN_EXECUTION")


class ServiceOrderApprovalRequest(BaseModel):
    approved: bool
