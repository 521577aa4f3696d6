"""
Core module exports.
"""
from .exceptions import (
    BaseServiceError,
    ProductServiceError,
    ProductNotFoundError,
    ProductAPIError,
    StockServiceError,
    StockStorageError,
    InvalidStockQuantityError
)
