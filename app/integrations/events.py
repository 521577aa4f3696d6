"""
Purpose: Defines the data structures that flow through stock synchronisation.
Contents:
StockEntry: the last known inventory count for one product, as believed by this session, and when it was learned.
StockChangeEvent: a notification that a product's believed stock changed (from a fetch, an order, or an admin edit).
LineItem: one ordered product with the quantity requested and the stock shown on the already-loaded product record.
ProductRecord: the subset of a remote product that the stock layer cares about.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class StockEntry(BaseModel):
    product_id: str
    quantity: int = Field(ge=0)
    observed_at: int  # milliseconds since epoch


class StockChangeEvent(BaseModel):
    product_id: str
    new_quantity: int
    timestamp: datetime


class LineItem(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    # Stock carried on the product record already on screen, used when nothing is cached
    product_stock: Optional[int] = None


class ProductRecord(BaseModel):
    id: str
    stock: int
    name: Optional[str] = None
    price: Optional[float] = None
