from app.core.exceptions import ProductAPIError, ProductNotFoundError, StockStorageError
from app.integrations.base import KeyValueStorage, ProductSource
from app.integrations.events import ProductRecord

from typing import Dict, Optional


class MockProductSource(ProductSource):
    def __init__(self, stock_levels: Dict[str, int] = None):
        self.stock_levels: Dict[str, int] = dict(stock_levels or {})  # product_id -> quantity
        self.fetch_calls: list = []  # Track calls for testing
        self.should_fail = False  # Toggle to test error scenarios

    async def fetch_product_by_id(self, product_id: str) -> ProductRecord:
        self.fetch_calls.append(product_id)
        if self.should_fail:
            raise ProductAPIError("Network error: connection refused")
        if product_id not in self.stock_levels:
            raise ProductNotFoundError(f"Product {product_id} not found")
        return ProductRecord(id=product_id, stock=self.stock_levels[product_id], name=f"Product {product_id}")

    def clear_history(self):
        """Clear test history"""
        self.fetch_calls = []


class FailingStorage(KeyValueStorage):
    """Storage that behaves like a disabled or full browser store."""

    def __init__(self):
        self.attempts = 0

    def get(self, key: str) -> Optional[str]:
        self.attempts += 1
        raise StockStorageError("storage disabled")

    def set(self, key: str, value: str) -> None:
        self.attempts += 1
        raise StockStorageError("quota exceeded")

    def remove(self, key: str) -> None:
        self.attempts += 1
        raise StockStorageError("storage disabled")


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms
