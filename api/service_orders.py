from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel

from models.page import Page, PageRequest
from models.requests import (
    ServiceOrderApprovalRequest,
    ServiceOrderRequest,
    ServiceOrderStatusUpdateRequest,
)
from models.service_order import ExecutionTimeStatistics, ServiceOrder, ServiceOrderStatusView
from usecases import ServiceOrderUseCases

router = APIRouter()


class ErrorResponse(BaseModel):
    detail: str


def get_use_cases(request: Request) -> ServiceOrderUseCases:
    return request.app.state.use_cases


def page_request(
    page: int = Query(0, ge=0, description="Zero-based page index"),
    size: int = Query(15, ge=1, description="Page size"),
) -> PageRequest:
    return PageRequest(page=page, size=size)


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid data or status"},
    404: {"model": ErrorResponse, "description": "Service order not found"},
    409: {"model": ErrorResponse, "description": "Service order modified concurrently"},
}


@router.get("", response_model=Page[ServiceOrder])
async def list_service_orders(
    pagination: PageRequest = Depends(page_request),
    use_cases: ServiceOrderUseCases = Depends(get_use_cases),
):
    return await use_cases.find.find_all(pagination)


@router.get("/stats/execution-time", response_model=ExecutionTimeStatistics)
async def get_execution_time_statistics(use_cases: ServiceOrderUseCases = Depends(get_use_cases)):
    return await use_cases.execution_time.execute()


@router.get("/customer/{customer_id}", response_model=Page[ServiceOrder])
async def list_service_orders_by_customer(
    customer_id: int,
    pagination: PageRequest = Depends(page_request),
    use_cases: ServiceOrderUseCases = Depends(get_use_cases),
):
    return await use_cases.find.find_by_customer_id(customer_id, pagination)


@router.get("/status/{order_status}", response_model=Page[ServiceOrder], responses=ERROR_RESPONSES)
async def list_service_orders_by_status(
    order_status: str,
    pagination: PageRequest = Depends(page_request),
    use_cases: ServiceOrderUseCases = Depends(get_use_cases),
):
    return await use_cases.find.find_by_status(order_status, pagination)


@router.post("", response_model=ServiceOrder, status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_service_order(
    order_request: ServiceOrderRequest,
    use_cases: ServiceOrderUseCases = Depends(get_use_cases),
):
    """Creates a service order; a fully priced quote goes straight to WAITING_APPROVAL."""
    return await use_cases.create.execute(order_request)


@router.get("/{order_id}", response_model=ServiceOrder, responses=ERROR_RESPONSES)
async def get_service_order(order_id: int, use_cases: ServiceOrderUseCases = Depends(get_use_cases)):
    return await use_cases.find.find_by_id(order_id)


@router.put("/{order_id}", response_model=ServiceOrder, responses=ERROR_RESPONSES)
async def update_service_order(
    order_id: int,
    order_request: ServiceOrderRequest,
    use_cases: ServiceOrderUseCases = Depends(get_use_cases),
):
    return await use_cases.update.execute(order_id, order_request)


@router.put("/{order_id}/status", response_model=ServiceOrder, responses=ERROR_RESPONSES)
async def update_service_order_status(
    order_id: int,
    status_request: ServiceOrderStatusUpdateRequest,
    use_cases: ServiceOrderUseCases = Depends(get_use_cases),
):
    return await use_cases.update_status.execute(order_id, status_request)


@router.put("/{order_id}/approve", response_model=ServiceOrder, responses=ERROR_RESPONSES)
async def process_service_order_approval(
    order_id: int,
    approval: ServiceOrderApprovalRequest,
    use_cases: ServiceOrderUseCases = Depends(get_use_cases),
):
    """Customer decision on a quote in WAITING_APPROVAL."""
    return await use_cases.process_approval.execute(order_id, approval.approved)


@router.get("/{order_id}/status", response_model=ServiceOrderStatusView, responses=ERROR_RESPONSES)
async def get_service_order_status(order_id: int, use_cases: ServiceOrderUseCases = Depends(get_use_cases)):
    order = await use_cases.find.find_by_id(order_id)
    return ServiceOrderStatusView.from_order(order)


@router.delete("/{order_id}", response_model=ServiceOrder, responses=ERROR_RESPONSES)
async def cancel_service_order(
    order_id: int,
    reason: Optional[str] = Query(None, max_length=500),
    use_cases: ServiceOrderUseCases = Depends(get_use_cases),
):
    """Cancels the order (status CANCELLED); the record is kept."""
    return await use_cases.cancel.execute(order_id, reason)
