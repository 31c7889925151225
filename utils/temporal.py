import logging

from temporalio.client import Client

from utils.config import Settings

logger = logging.getLogger(__name__)


async def get_temporal_client(settings: Settings) -> Client:
    """
    Connect to the Temporal server described by the settings.
    """
    logger.info(f"Connecting to Temporal at {settings.temporal_address} (namespace '{settings.TEMPORAL_NAMESPACE}')...")
    client = await Client.connect(settings.temporal_address, namespace=settings.TEMPORAL_NAMESPACE)
    logger.info(f"Connected to Temporal namespace: {settings.TEMPORAL_NAMESPACE}")
    return client
