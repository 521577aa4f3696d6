import asyncio
import logging
from typing import Callable, Dict, Iterable, List, Optional, Union

from app.core.config import Settings, get_settings
from app.core.exceptions import InvalidStockQuantityError
from app.integrations.base import KeyValueStorage, ProductSource
from app.integrations.events import LineItem
from app.integrations.notification_bus import NotificationBus, StockCallback
from app.integrations.reconciliation import ReconciliationClient, StockWatch
from app.integrations.reservation import ReservationAccountant
from app.integrations.stock_cache import StockCache

logger = logging.getLogger(__name__)


class StockManager:
    """
    Session-wide view of product stock shared by every page/view.

    One instance is created at application wiring time (see setup_stock_manager)
    and handed to whoever needs it; tests build their own. Lifecycle is
    create() -> init() -> ... -> dispose().
    """

    def __init__(
        self,
        cache: StockCache,
        bus: NotificationBus,
        reconciler: ReconciliationClient,
        accountant: ReservationAccountant,
        poll_interval: float = 60.0,
        cleanup_interval: float = 300.0,
    ):
        self.cache = cache
        self.bus = bus
        self.reconciler = reconciler
        self.accountant = accountant
        self.poll_interval = poll_interval
        self.cleanup_interval = cleanup_interval
        self._watches: List[StockWatch] = []
        self._cleanup_task: Optional[asyncio.Task] = None
        self._initialized = False

    @classmethod
    def create(
        cls,
        source: ProductSource,
        storage: KeyValueStorage,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> "StockManager":
        settings = settings or get_settings()
        cache = StockCache(
            storage,
            storage_key=settings.STOCK_STORAGE_KEY,
            freshness_ms=settings.stock_freshness_ms,
            clock=clock,
        )
        bus = NotificationBus()
        reconciler = ReconciliationClient(source, cache, bus)
        accountant = ReservationAccountant(
            cache, bus, reconciler,
            reconcile_delay=settings.STOCK_RECONCILE_DELAY_SECONDS,
        )
        return cls(
            cache, bus, reconciler, accountant,
            poll_interval=settings.STOCK_POLL_INTERVAL_SECONDS,
            cleanup_interval=settings.STOCK_CLEANUP_INTERVAL_SECONDS,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def init(self) -> int:
        """Load the persisted snapshot and start periodic stale-entry cleanup."""
        if self._initialized:
            return len(self.cache)
        restored = self.cache.restore()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.info("No running event loop; stale stock cleanup will not be scheduled")
        else:
            self._cleanup_task = loop.create_task(self._cleanup_loop(), name="stock-cache-cleanup")
        self._initialized = True
        return restored

    async def dispose(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        for watch in self._watches:
            watch.cancel()
        for watch in self._watches:
            await watch.wait()
        self._watches.clear()

        cancelled = self.accountant.cancel_pending()
        self.bus.clear()
        self._initialized = False
        logger.info(f"StockManager disposed ({cancelled} pending reconciliation(s) cancelled)")

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.cache.evict_stale()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def get_cached_stock(self, product_id: str) -> Optional[int]:
        return self.cache.get(product_id)

    async def get_stock(self, product_id: str, force_refresh: bool = False) -> Optional[int]:
        """Cached stock, or a fresh server read when forced or nothing is cached."""
        if not force_refresh:
            cached = self.cache.get(product_id)
            if cached is not None:
                return cached
        fetched = await self.reconciler.sync_one(product_id)
        if fetched is None:
            return self.cache.get(product_id)
        return fetched

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def subscribe(self, callback: StockCallback) -> Callable[[], None]:
        return self.bus.subscribe(callback)

    def update_stock_and_notify(self, product_id: str, new_quantity: int) -> int:
        """Push an authoritative change (e.g. an admin edit) to the cache and every view."""
        if isinstance(new_quantity, bool) or not isinstance(new_quantity, int) or new_quantity < 0:
            raise InvalidStockQuantityError(
                f"Stock for product {product_id} must be a non-negative integer, got {new_quantity!r}"
            )
        self.cache.set(product_id, new_quantity)
        self.bus.publish(product_id, new_quantity)
        logger.info(f"Stock for product {product_id} set to {new_quantity}")
        return new_quantity

    def decrement_stock_after_order(self, line_items: Iterable[Union[LineItem, dict]]) -> Dict[str, int]:
        return self.accountant.reserve(line_items)

    async def sync_with_server(self, product_id: str) -> Optional[int]:
        return await self.reconciler.sync_one(product_id)

    async def refresh_all_products(self, product_ids: Optional[Iterable[str]] = None) -> Dict[str, Optional[int]]:
        """Reconcile every cached product plus any visible ones the caller passes in."""
        targets = self.cache.product_ids()
        for product_id in product_ids or []:
            if product_id not in targets:
                targets.append(product_id)

        results: Dict[str, Optional[int]] = {}
        for product_id in targets:
            results[product_id] = await self.reconciler.sync_one(product_id)

        failed = [pid for pid, qty in results.items() if qty is None]
        logger.info(f"Refreshed stock for {len(results) - len(failed)}/{len(results)} products")
        if failed:
            logger.warning(f"Stock refresh failed for: {', '.join(failed)}")
        return results

    def watch_product(self, product_id: str, interval_seconds: Optional[float] = None) -> StockWatch:
        """Poll one product while its detail view is open; cancel the handle on close."""
        watch = self.reconciler.watch(product_id, interval_seconds or self.poll_interval)
        self._watches = [w for w in self._watches if w.active]
        self._watches.append(watch)
        return watch

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Stock cache cleared")

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    def debug(self) -> dict:
        now = self.cache.now()
        entries = {}
        for product_id in self.cache.product_ids():
            entry = self.cache.entry(product_id)
            status = self.reconciler.status(product_id)
            entries[product_id] = {
                "quantity": entry.quantity,
                "observed_at": entry.observed_at,
                "age_ms": now - entry.observed_at,
                "sync_status": status.value if status else None,
            }
        state = {
            "entries": entries,
            "subscribers": self.bus.subscriber_count,
            "watching": [w.product_id for w in self._watches if w.active],
            "pending_reconciliations": sum(1 for h in self.accountant.pending if not h.done),
            "initialized": self._initialized,
        }
        logger.debug(f"StockManager state: {state}")
        return state
