from datetime import datetime

from gateways.service_order_gateway import ServiceOrderGateway
from messaging.publisher import ServiceOrderEventPublisher
from usecases.service_orders import (
    CancelServiceOrderUseCase,
    Clock,
    CreateServiceOrderUseCase,
    FindServiceOrderUseCase,
    ProcessApprovalUseCase,
    UpdateServiceOrderStatusUseCase,
    UpdateServiceOrderUseCase,
)
from usecases.statistics import GetServiceOrderExecutionTimeUseCase


class ServiceOrderUseCases:
    """The use cases wired against one gateway and one publisher."""

    def __init__(self, gateway: ServiceOrderGateway, publisher: ServiceOrderEventPublisher,
                 clock: Clock = datetime.now):
        self.gateway = gateway
        self.publisher = publisher
        self.find = FindServiceOrderUseCase(gateway)
        self.create = CreateServiceOrderUseCase(gateway, publisher, clock)
        self.update = UpdateServiceOrderUseCase(gateway, clock)
        self.update_status = UpdateServiceOrderStatusUseCase(gateway, publisher, clock)
        self.process_approval = ProcessApprovalUseCase(gateway, publisher, clock)
        self.cancel = CancelServiceOrderUseCase(gateway, publisher, clock)
        self.execution_time = GetServiceOrderExecutionTimeUseCase(gateway)


__all__ = [
    "CancelServiceOrderUseCase",
    "CreateServiceOrderUseCase",
    "FindServiceOrderUseCase",
    "GetServiceOrderExecutionTimeUseCase",
    "ProcessApprovalUseCase",
    "ServiceOrderUseCases",
    "UpdateServiceOrderStatusUseCase",
    "UpdateServiceOrderUseCase",
]
