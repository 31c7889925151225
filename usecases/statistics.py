import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from gateways.service_order_gateway import ServiceOrderGateway
from models.page import PageRequest
from models.service_order import ExecutionTimeStatistics, ServiceOrder

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
SCAN_PAGE_SIZE = 500


def execution_hours(order: ServiceOrder) -> Optional[Decimal]:
    """Hours from approval to finish (whole minutes / 60, half-up to 2 places).

    None when the order is not FINISHED/DELIVERED or lacks either timestamp.
    """
    if not (order.status.is_finished or order.status.is_delivered):
        return None
    if order.approved_at is None or order.finished_at is None:
        return None
    minutes = int((order.finished_at - order.approved_at).total_seconds() / 60)
    return (Decimal(minutes) / Decimal(60)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class GetServiceOrderExecutionTimeUseCase:
    """Execution-time distribution over every stored order.

    This is a full scan of the order collection; cost grows linearly with
    the number of stored orders.
    """

    def __init__(self, gateway: ServiceOrderGateway, page_size: int = SCAN_PAGE_SIZE):
        self._gateway = gateway
        self._page_size = page_size

    async def _all_orders(self) -> List[ServiceOrder]:
        orders: List[ServiceOrder] = []
        page_index = 0
        while True:
            page = await self._gateway.find_all(PageRequest(page=page_index, size=self._page_size))
            orders.extend(page.content)
            if not page.content or len(orders) >= page.total_elements:
                return orders
            page_index += 1

    async def execute(self) -> ExecutionTimeStatistics:
        orders = await self._all_orders()

        in_progress = sum(1 for o in orders if o.status.is_in_execution)
        finished = sum(1 for o in orders if o.status.is_finished)
        delivered = sum(1 for o in orders if o.status.is_delivered)

        durations = [hours for hours in map(execution_hours, orders) if hours is not None]

        if durations:
            avg = (sum(durations, Decimal("0")) / len(durations)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
            shortest, longest = min(durations), max(durations)
        else:
            avg = shortest = longest = Decimal("0")

        logger.info(f"Execution time statistics computed over {len(orders)} orders ({len(durations)} with durations)")
        return ExecutionTimeStatistics(
            total_orders=len(orders),
            avg_execution_time_hours=avg,
            min_execution_time_hours=shortest,
            max_execution_time_hours=longest,
            orders_in_progress=in_progress,
            orders_finished=finished,
            orders_delivered=delivered,
        )
