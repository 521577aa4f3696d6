import asyncio
import logging
from typing import Dict, Optional

from app.integrations.base import ProductSource, SyncStatus
from app.integrations.notification_bus import NotificationBus
from app.integrations.stock_cache import StockCache

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 60.0


class StockWatch:
    """Handle for a running poll loop on one product; cancel() when the view closes."""

    def __init__(self, product_id: str, task: asyncio.Task):
        self.product_id = product_id
        self._task = task

    @property
    def active(self) -> bool:
        return not self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()
            logger.debug(f"Stopped stock polling for product {self.product_id}")

    async def wait(self) -> None:
        """Wait for the poll loop to finish after cancel()."""
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class ReconciliationClient:
    """Pulls authoritative stock from the product service into the cache and bus."""

    def __init__(self, source: ProductSource, cache: StockCache, bus: NotificationBus):
        self.source = source
        self.cache = cache
        self.bus = bus
        self._status: Dict[str, SyncStatus] = {}

    def status(self, product_id: str) -> Optional[SyncStatus]:
        return self._status.get(product_id)

    async def sync_one(self, product_id: str) -> Optional[int]:
        """
        Fetch one product and overwrite the cached stock with the server value.

        Subscribers are notified on every successful fetch, even if the value is
        unchanged. Returns None when the fetch fails; None means "could not
        confirm", the cached value is left as it was.
        """
        self._status[product_id] = SyncStatus.PENDING
        try:
            product = await self.source.fetch_product_by_id(product_id)
        except Exception as e:
            self._status[product_id] = SyncStatus.ERROR
            logger.warning(f"Could not refresh stock for product {product_id}: {e}")
            return None

        quantity = max(0, int(product.stock))
        self.cache.set(product_id, quantity)
        self.bus.publish(product_id, quantity)
        self._status[product_id] = SyncStatus.SYNCED
        logger.debug(f"Stock for product {product_id} synced from server: {quantity}")
        return quantity

    def watch(self, product_id: str, interval_seconds: float = DEFAULT_POLL_INTERVAL) -> StockWatch:
        """Sync now and then every interval until the returned handle is cancelled."""
        task = asyncio.get_running_loop().create_task(
            self._poll(product_id, interval_seconds),
            name=f"stock-watch-{product_id}",
        )
        logger.debug(f"Started stock polling for product {product_id} every {interval_seconds}s")
        return StockWatch(product_id, task)

    async def _poll(self, product_id: str, interval_seconds: float) -> None:
        while True:
            # sync_one never raises for fetch failures; a failed tick waits for the next one
            await self.sync_one(product_id)
            await asyncio.sleep(interval_seconds)
