import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from activities.service_order_activities import ServiceOrderActivities
from api.service_orders import router as service_orders_router
from gateways.service_order_gateway import InMemoryServiceOrderGateway, ServiceOrderGateway
from messaging.publisher import InMemoryEventPublisher, ServiceOrderEventPublisher, TemporalEventPublisher
from usecases import ServiceOrderUseCases
from utils.config import Settings, get_settings
from utils.exceptions import ConcurrencyConflictError, InvalidDataError, NotFoundError
from utils.temporal import get_temporal_client
from worker import create_worker

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )


def log_worker_exit(task: asyncio.Task) -> None:
    """Done callback of the in-process worker task."""
    if task.cancelled():
        logger.warning("Service order worker task was cancelled")
    elif task.exception() is not None:
        logger.error(f"Service order worker stopped with an error: {task.exception()!r}")
    else:
        logger.info("Service order worker stopped")


def worker_state(worker_task: Optional[asyncio.Task]) -> str:
    if worker_task is None:
        return "disabled"
    return "stopped" if worker_task.done() else "running"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(InvalidDataError)
    async def invalid_data_handler(request: Request, exc: InvalidDataError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConcurrencyConflictError)
    async def conflict_handler(request: Request, exc: ConcurrencyConflictError):
        logger.warning(f"Concurrent modification on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=409, content={"detail": str(exc)})


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[ServiceOrderGateway] = None,
    publisher: Optional[ServiceOrderEventPublisher] = None,
) -> FastAPI:
    """
    Build the service order API.

    With an explicit publisher, or with Temporal disabled, events go to that
    publisher (in-memory by default). Otherwise the startup hook connects to
    Temporal, switches to the Temporal publisher and runs the saga worker in
    this process.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    app = FastAPI(title=settings.APP_NAME)

    app.state.settings = settings
    app.state.gateway = gateway or InMemoryServiceOrderGateway()
    app.state.use_cases = ServiceOrderUseCases(app.state.gateway, publisher or InMemoryEventPublisher())
    app.state.temporal_client = None
    app.state.worker = None
    app.state.worker_task = None

    app.include_router(service_orders_router, prefix="/service-orders", tags=["service-orders"])
    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        if publisher is not None or not settings.TEMPORAL_ENABLED:
            logger.info("Temporal disabled, publishing service order events in memory")
            return
        try:
            client = await get_temporal_client(settings)
        except Exception as e:
            logger.error(f"Failed to connect to Temporal: {e}. Publishing service order events in memory")
            return

        app.state.temporal_client = client
        app.state.use_cases = ServiceOrderUseCases(
            app.state.gateway,
            TemporalEventPublisher(client, settings.SERVICE_ORDER_TASK_QUEUE, settings.BILLING_TASK_QUEUE),
        )
        activities = ServiceOrderActivities(app.state.use_cases.update_status, app.state.use_cases.cancel)
        app.state.worker = create_worker(client, activities, settings.SERVICE_ORDER_TASK_QUEUE)
        app.state.worker_task = asyncio.create_task(app.state.worker.run())
        app.state.worker_task.add_done_callback(log_worker_exit)
        logger.info("Service order worker started")

    @app.on_event("shutdown")
    async def shutdown_event():
        worker_task = app.state.worker_task
        if app.state.worker is not None and worker_task is not None and not worker_task.done():
            logger.info("Shutting down service order worker...")
            await app.state.worker.shutdown()
        if worker_task is not None:
            # failures were already logged by log_worker_exit
            await asyncio.gather(worker_task, return_exceptions=True)
        app.state.worker = None

    @app.get("/health")
    async def health():
        worker = worker_state(app.state.worker_task)
        return {
            "status": "degraded" if worker == "stopped" else "ok",
            "temporal": "connected" if app.state.temporal_client is not None else "disabled",
            "worker": worker,
        }

    return app


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.API_HOST, port=settings.API_PORT)
