import json
import logging
import time
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from app.core.exceptions import StockStorageError
from app.integrations.base import KeyValueStorage
from app.integrations.events import StockEntry

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "stock-cache"
DEFAULT_FRESHNESS_MS = 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class StockCache:
    """
    Last known stock per product for this session, with a best-effort durable snapshot.

    Writes here never notify anyone; telling the UI about a change is layered on
    top (see StockManager.update_stock_and_notify). Storage failures are logged
    and absorbed so the in-memory cache keeps working.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        storage_key: str = DEFAULT_STORAGE_KEY,
        freshness_ms: int = DEFAULT_FRESHNESS_MS,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.storage = storage
        self.storage_key = storage_key
        self.freshness_ms = freshness_ms
        self._clock = clock or now_ms
        self._entries: Dict[str, StockEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, product_id: str) -> bool:
        return product_id in self._entries

    def now(self) -> int:
        return self._clock()

    def get(self, product_id: str) -> Optional[int]:
        entry = self._entries.get(product_id)
        return entry.quantity if entry is not None else None

    def entry(self, product_id: str) -> Optional[StockEntry]:
        entry = self._entries.get(product_id)
        return entry.model_copy() if entry is not None else None

    def product_ids(self) -> List[str]:
        return list(self._entries)

    def set(self, product_id: str, quantity: int) -> StockEntry:
        entry = StockEntry(
            product_id=product_id,
            quantity=max(0, int(quantity)),
            observed_at=self._clock(),
        )
        self._entries[product_id] = entry
        self._persist()
        return entry

    def restore(self) -> int:
        """Load the persisted snapshot, skipping entries past the freshness window."""
        try:
            raw = self.storage.get(self.storage_key)
        except StockStorageError as e:
            logger.warning(f"Stock snapshot unavailable, starting empty: {e}")
            return 0
        if not raw:
            return 0

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning(f"Ignoring malformed stock snapshot under '{self.storage_key}'")
            return 0
        if not isinstance(data, dict):
            logger.warning(f"Ignoring stock snapshot with unexpected shape: {type(data).__name__}")
            return 0

        now = self._clock()
        loaded = 0
        for product_id, value in data.items():
            try:
                entry = StockEntry(product_id=product_id, **value)
            except (TypeError, ValidationError):
                logger.debug(f"Skipping unreadable snapshot entry for product {product_id}")
                continue
            if now - entry.observed_at > self.freshness_ms:
                continue
            self._entries[product_id] = entry
            loaded += 1

        logger.info(f"Restored {loaded} stock entries from snapshot")
        return loaded

    def evict_stale(self, max_age_ms: Optional[int] = None) -> List[str]:
        max_age = self.freshness_ms if max_age_ms is None else max_age_ms
        now = self._clock()
        stale = [
            product_id for product_id, entry in self._entries.items()
            if now - entry.observed_at > max_age
        ]
        for product_id in stale:
            del self._entries[product_id]

        if stale:
            logger.info(f"Evicted {len(stale)} stale stock entries")
            self._persist()
        return stale

    def clear(self) -> None:
        self._entries.clear()
        try:
            self.storage.remove(self.storage_key)
        except StockStorageError as e:
            logger.warning(f"Could not delete stock snapshot: {e}")

    def snapshot(self) -> Dict[str, dict]:
        return {
            product_id: {"quantity": entry.quantity, "observed_at": entry.observed_at}
            for product_id, entry in self._entries.items()
        }

    def _persist(self) -> None:
        try:
            self.storage.set(self.storage_key, json.dumps(self.snapshot()))
        except StockStorageError as e:
            logger.warning(f"Stock snapshot not persisted, continuing in memory: {e}")
