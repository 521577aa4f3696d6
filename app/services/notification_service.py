"""Recent stock-change notifications for a banner-style view."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from app.integrations.notification_bus import NotificationBus

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 5.0


@dataclass
class StockNotification:
    product_id: str
    new_quantity: int
    timestamp: float


class StockNotificationFeed:
    """
    Keeps the latest stock notification per product while it is fresh.

    A newer change for the same product replaces the older notification;
    notifications expire after ``ttl_seconds`` or when dismissed.
    """

    def __init__(
        self,
        bus: NotificationBus,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        self._clock = clock or time.monotonic
        self.ttl_seconds = ttl_seconds
        self._notifications: Dict[str, StockNotification] = {}
        self._unsubscribe = bus.subscribe(self._on_stock_change)

    def _on_stock_change(self, product_id: str, new_quantity: int) -> None:
        # Re-inserting moves the product to the end so the list stays newest-last
        self._notifications.pop(product_id, None)
        self._notifications[product_id] = StockNotification(product_id, new_quantity, self._clock())

    def active(self) -> List[StockNotification]:
        now = self._clock()
        expired = [pid for pid, n in self._notifications.items() if now - n.timestamp >= self.ttl_seconds]
        for product_id in expired:
            del self._notifications[product_id]
        return list(self._notifications.values())

    def dismiss(self, product_id: str) -> bool:
        return self._notifications.pop(product_id, None) is not None

    def close(self) -> None:
        self._unsubscribe()
        self._notifications.clear()
        logger.debug("Stock notification feed closed")
