from abc import ABC, abstractmethod
from typing import Optional
from enum import Enum

from app.integrations.events import ProductRecord


class SyncStatus(Enum):
    SYNCED = "synced"
    PENDING = "pending"
    ERROR = "error"


class ProductSource(ABC):
    """Authoritative source of product data (the remote catalog)."""

    @abstractmethod
    async def fetch_product_by_id(self, product_id: str) -> ProductRecord:
        """Fetch one product. Raises on network errors or unknown ids."""
        pass


class KeyValueStorage(ABC):
    """Synchronous durable string storage keyed by name."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        pass
