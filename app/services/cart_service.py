"""
Advisory stock checks for cart changes.

Before the cart grows, the requested total is compared with freshly fetched
stock. Adding an item and changing a quantity follow the same policy: always
force a server read first, fall back to the last known value (or the product's
own stock field) when that read fails. The server still has the final say when
the order is created.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from app.integrations.events import ProductRecord
from app.integrations.stock_manager import StockManager

logger = logging.getLogger(__name__)


@dataclass
class StockCheckResult:
    allowed: bool
    available: int
    clamped_quantity: int
    message: Optional[str] = None


class CartStockGuard:

    def __init__(self, stock_manager: StockManager):
        self.stock_manager = stock_manager

    async def available_stock(self, product: ProductRecord) -> int:
        stock = await self.stock_manager.get_stock(product.id, force_refresh=True)
        if stock is None:
            logger.info(f"Could not verify stock for product {product.id}; using product record value")
            return max(0, product.stock)
        return stock

    async def check_add(self, product: ProductRecord, quantity: int = 1, in_cart: int = 0) -> StockCheckResult:
        """Check adding ``quantity`` on top of ``in_cart`` units already in the cart."""
        available = await self.available_stock(product)
        return self._evaluate(product, in_cart + quantity, available)

    async def check_update(self, product: ProductRecord, new_quantity: int) -> StockCheckResult:
        """Check setting the cart line to ``new_quantity``; zero or less means removal."""
        if new_quantity <= 0:
            return StockCheckResult(allowed=True, available=max(0, product.stock), clamped_quantity=0)
        available = await self.available_stock(product)
        return self._evaluate(product, new_quantity, available)

    def _evaluate(self, product: ProductRecord, requested: int, available: int) -> StockCheckResult:
        if requested <= available:
            return StockCheckResult(allowed=True, available=available, clamped_quantity=requested)

        label = product.name or product.id
        if available == 0:
            message = f"{label} is out of stock"
        else:
            message = f"Only {available} of {label} left in stock"
        logger.info(f"Cart request for product {product.id} refused: requested {requested}, available {available}")
        return StockCheckResult(
            allowed=False,
            available=available,
            clamped_quantity=available,
            message=message,
        )
