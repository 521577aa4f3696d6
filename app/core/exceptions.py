class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class ProductServiceError(BaseServiceError):
    """Base exception for remote product service errors."""
    pass

class ProductNotFoundError(ProductServiceError):
    """Raised when the product service has no product with the requested id."""
    pass

class ProductAPIError(ProductServiceError):
    """Raised when product API calls fail (network, timeout, bad response)."""
    pass

class StockServiceError(BaseServiceError):
    """Base exception for stock synchronisation errors."""
    pass

class StockStorageError(StockServiceError):
    """Raised when the durable stock snapshot cannot be read or written."""
    pass

class InvalidStockQuantityError(StockServiceError):
    """Raised when a caller pushes a negative or non-integer stock quantity."""
    pass
