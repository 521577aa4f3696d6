import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Union

from app.integrations.events import LineItem
from app.integrations.notification_bus import NotificationBus
from app.integrations.reconciliation import ReconciliationClient
from app.integrations.stock_cache import StockCache

logger = logging.getLogger(__name__)

DEFAULT_RECONCILE_DELAY = 0.5


class PendingReconciliation:
    """Handle for the deferred post-order re-read of a batch of products."""

    def __init__(self, product_ids: List[str], task: asyncio.Task):
        self.product_ids = product_ids
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class ReservationAccountant:
    """
    Optimistic stock decrements at order placement.

    reserve() lowers the believed stock for every line item straight away and
    tells subscribers, then schedules a re-read of each product from the server
    so the optimistic numbers get corrected once the order has gone through.
    """

    def __init__(
        self,
        cache: StockCache,
        bus: NotificationBus,
        reconciler: ReconciliationClient,
        reconcile_delay: float = DEFAULT_RECONCILE_DELAY,
    ):
        self.cache = cache
        self.bus = bus
        self.reconciler = reconciler
        self.reconcile_delay = reconcile_delay
        self.pending: List[PendingReconciliation] = []
        self.last_pending: Optional[PendingReconciliation] = None

    def reserve(self, line_items: Iterable[Union[LineItem, dict]]) -> Dict[str, int]:
        """
        Apply the decrements and return the new believed stock per product id.

        Callers holding their own product objects update them from the returned
        mapping (or from the bus notification); nothing passed in is mutated.
        Products with no cached stock and no product_stock are left out of the
        mapping and only re-read from the server.
        """
        items = [item if isinstance(item, LineItem) else LineItem(**item) for item in line_items]
        updated: Dict[str, int] = {}
        to_reconcile: List[str] = []

        for item in items:
            if item.product_id not in to_reconcile:
                to_reconcile.append(item.product_id)

            believed = self.cache.get(item.product_id)
            if believed is None:
                believed = item.product_stock
            if believed is None:
                # Unknown stock is not zero; leave it to the server re-read
                logger.info(f"No known stock for product {item.product_id}; waiting for reconciliation")
                continue

            new_quantity = max(0, believed - item.quantity)
            if item.quantity > believed:
                logger.info(
                    f"Order for product {item.product_id} exceeds believed stock "
                    f"({item.quantity} > {believed}); clamping to 0"
                )

            self.cache.set(item.product_id, new_quantity)
            self.bus.publish(item.product_id, new_quantity)
            updated[item.product_id] = new_quantity

        if updated:
            logger.info(f"Optimistically decremented stock for {len(updated)} product(s): {updated}")
        if to_reconcile:
            self._schedule_reconciliation(to_reconcile)
        return updated

    def cancel_pending(self) -> int:
        cancelled = 0
        for handle in self.pending:
            if not handle.done:
                handle.cancel()
                cancelled += 1
        self.pending.clear()
        return cancelled

    def _schedule_reconciliation(self, product_ids: List[str]) -> Optional[PendingReconciliation]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                f"No running event loop; skipping post-order reconciliation for {product_ids}"
            )
            self.last_pending = None
            return None

        task = loop.create_task(self._reconcile_later(product_ids))
        handle = PendingReconciliation(product_ids, task)
        self.pending = [h for h in self.pending if not h.done]
        self.pending.append(handle)
        self.last_pending = handle
        return handle

    async def _reconcile_later(self, product_ids: List[str]) -> None:
        await asyncio.sleep(self.reconcile_delay)
        for product_id in product_ids:
            await self.reconciler.sync_one(product_id)
