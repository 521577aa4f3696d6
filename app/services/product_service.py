"""
Purpose: Async client for the storefront's remote product service, used as the
authoritative source of stock.

Functionality: fetch_product_by_id() reads /api/Product/{id}, unwraps the
{success, message, data} envelope and maps the API product (productId,
stockQuantity, ...) onto a ProductRecord. Requests go through httpx with a
timeout; failures surface as ProductNotFoundError (404) or ProductAPIError
(anything else), the reconciliation layer decides what to do with them.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from app.core.config import get_settings
from app.core.exceptions import ProductAPIError, ProductNotFoundError
from app.integrations.base import ProductSource
from app.integrations.events import ProductRecord

logger = logging.getLogger(__name__)


class ProductServiceClient(ProductSource):

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """
        Args:
            base_url: Root URL of the product API, defaults to PRODUCT_API_URL
            timeout: Request timeout in seconds, defaults to PRODUCT_API_TIMEOUT
        """
        settings = get_settings()
        self.base_url = (base_url or settings.PRODUCT_API_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.PRODUCT_API_TIMEOUT
        logger.info(f"Initializing ProductServiceClient against {self.base_url}")

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
        }

    async def _make_request(self, method: str, endpoint: str, params: Optional[Dict] = None) -> Dict:
        """
        Make a request to the product API

        Raises:
            ProductNotFoundError: If the API answers 404
            ProductAPIError: If the request fails for any other reason
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"Making {method} request to {url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    params=params
                )
        except httpx.TimeoutException as e:
            logger.error(f"Timeout error: {str(e)}")
            raise ProductAPIError(f"Request timed out: {str(e)}")
        except httpx.RequestError as e:
            logger.error(f"Network error: {str(e)}")
            raise ProductAPIError(f"Network error: {str(e)}")

        if response.status_code == 404:
            raise ProductNotFoundError(f"Product not found: {url}")
        if response.status_code not in (200, 201, 202):
            logger.error(f"Product API error {response.status_code}: {response.text}")
            raise ProductAPIError(f"Request failed ({response.status_code}): {response.text}")

        try:
            return response.json()
        except ValueError as e:
            raise ProductAPIError(f"Invalid JSON from product API: {str(e)}")

    async def fetch_product_by_id(self, product_id: str) -> ProductRecord:
        payload = await self._make_request("GET", f"/api/Product/{product_id}")
        data = payload.get("data") if isinstance(payload, dict) else None
        if not data:
            raise ProductNotFoundError(f"Product {product_id} missing from response")
        return map_api_product(data)


def map_api_product(data: Dict[str, Any]) -> ProductRecord:
    """Map an API product onto the fields the stock layer uses."""
    try:
        return ProductRecord(
            id=str(data["productId"]),
            stock=int(data.get("stockQuantity") or 0),
            name=data.get("name"),
            price=data.get("price"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ProductAPIError(f"Unexpected product payload: {e}")
