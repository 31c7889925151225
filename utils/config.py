"""Runtime settings loaded from environment variables."""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv, find_dotenv


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings:
    """Service order settings.

    Defaults target a local Temporal dev server. The billing task queue is
    optional; when empty, ORDER_CREATED is not forwarded to billing.
    """

    APP_NAME: str = "Service Order Service"

    TEMPORAL_ENABLED: bool
    TEMPORAL_HOST: str
    TEMPORAL_PORT: str
    TEMPORAL_NAMESPACE: str
    SERVICE_ORDER_TASK_QUEUE: str
    BILLING_TASK_QUEUE: Optional[str]

    API_HOST: str
    API_PORT: int
    LOG_LEVEL: str

    def __init__(self) -> None:
        load_dotenv(find_dotenv(), override=False)
        self.TEMPORAL_ENABLED = _get_bool("TEMPORAL_ENABLED", "true")
        self.TEMPORAL_HOST = os.getenv("TEMPORAL_HOST", "localhost")
        self.TEMPORAL_PORT = os.getenv("TEMPORAL_PORT", "7233")
        self.TEMPORAL_NAMESPACE = os.getenv("TEMPORAL_NAMESPACE", "default")
        self.SERVICE_ORDER_TASK_QUEUE = os.getenv("SERVICE_ORDER_TASK_QUEUE", "service-order-task-queue")
        self.BILLING_TASK_QUEUE = os.getenv("BILLING_TASK_QUEUE", "").strip() or None

        self.API_HOST = os.getenv("API_HOST", "localhost")
        self.API_PORT = int(os.getenv("API_PORT", "8000"))
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def temporal_address(self) -> str:
        return f"{self.TEMPORAL_HOST}:{self.TEMPORAL_PORT}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
