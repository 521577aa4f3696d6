"""
Purpose: Builds the one StockManager shared by the whole application, usually called during startup.

Contents:
setup_stock_manager: wires a ProductServiceClient (remote stock) and a JsonFileStorage (durable snapshot)
into StockManager.create(), then calls init() so the persisted snapshot is restored and the
stale-entry cleanup task starts on the running loop.
"""

import logging
from typing import Optional

from app.core.config import Settings, get_settings
from app.integrations.base import KeyValueStorage, ProductSource
from app.integrations.stock_manager import StockManager
from app.integrations.storage import JsonFileStorage
from app.services.product_service import ProductServiceClient

logger = logging.getLogger(__name__)


async def setup_stock_manager(
    settings: Optional[Settings] = None,
    source: Optional[ProductSource] = None,
    storage: Optional[KeyValueStorage] = None,
) -> StockManager:
    """
    Initialize and configure the stock manager
    """
    settings = settings or get_settings()
    source = source or ProductServiceClient(
        base_url=settings.PRODUCT_API_URL,
        timeout=settings.PRODUCT_API_TIMEOUT,
    )
    storage = storage or JsonFileStorage(settings.STOCK_STORAGE_DIR)

    manager = StockManager.create(source, storage, settings=settings)
    restored = manager.init()
    logger.info(f"StockManager ready ({restored} cached entries restored)")
    return manager
