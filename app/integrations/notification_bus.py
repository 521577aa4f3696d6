import logging
from typing import Callable, Dict

logger = logging.getLogger(__name__)

StockCallback = Callable[[str, int], None]


class NotificationBus:
    """
    Publish/subscribe hub for stock changes.

    Callbacks are keyed by identity, so subscribing the same function twice
    still yields a single invocation per publish. Everything runs on the event
    loop thread; publish iterates a copy so callbacks may (un)subscribe freely.
    """

    def __init__(self):
        self._subscribers: Dict[StockCallback, None] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: StockCallback) -> Callable[[], None]:
        self._subscribers[callback] = None
        logger.debug(f"Stock subscriber added. Total subscribers: {len(self._subscribers)}")

        def unsubscribe() -> None:
            self.unsubscribe(callback)

        return unsubscribe

    def unsubscribe(self, callback: StockCallback) -> None:
        if callback in self._subscribers:
            del self._subscribers[callback]
            logger.debug(f"Stock subscriber removed. Total subscribers: {len(self._subscribers)}")

    def publish(self, product_id: str, new_quantity: int) -> int:
        """Invoke every subscriber, returning how many completed without raising."""
        delivered = 0
        for callback in list(self._subscribers):
            # Removed by an earlier callback during this publish
            if callback not in self._subscribers:
                continue
            try:
                callback(product_id, new_quantity)
                delivered += 1
            except Exception:
                logger.exception(f"Stock subscriber failed for product {product_id}")
        return delivered

    def clear(self) -> None:
        self._subscribers.clear()
