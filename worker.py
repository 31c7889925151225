import logging

from temporalio.client import Client
from temporalio.worker import Worker

from activities.service_order_activities import ServiceOrderActivities
from workflows.service_order_saga_workflow import ServiceOrderSagaWorkflow

logger = logging.getLogger(__name__)


def create_worker(client: Client, activities: ServiceOrderActivities, task_queue: str) -> Worker:
    """
    Build the worker that hosts the saga workflow and the inbound-event
    activities. It runs inside the API process so the activities share the
    API's gateway.
    """
    logger.info(f"Creating service order worker for task queue: {task_queue}")
    worker = Worker(
        client,
        task_queue=task_queue,
        workflows=[ServiceOrderSagaWorkflow],
        activities=activities.all(),
        max_concurrent_activities=50,
    )
    logger.info(f"Service order worker created with {len(activities.all())} activities")
    return worker
