# app/routes/stock.py
import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.core.exceptions import InvalidStockQuantityError
from app.dependencies import get_stock_manager
from app.integrations.events import LineItem
from app.integrations.stock_manager import StockManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stock", tags=["stock"])


# ── Request Models ───────────────────────────────


class StockUpdateRequest(BaseModel):
    quantity: int = Field(ge=0)


class OrderPlacedRequest(BaseModel):
    items: List[LineItem] = Field(min_length=1)


class RefreshRequest(BaseModel):
    product_ids: List[str] = []


# ── Endpoints ───────────────────────────────


@router.get("/debug")
async def stock_debug(manager: StockManager = Depends(get_stock_manager)):
    """Dump the current cache state for troubleshooting"""
    return manager.debug()


@router.get("/{product_id}")
async def get_stock(
    product_id: str,
    refresh: bool = False,
    manager: StockManager = Depends(get_stock_manager),
):
    quantity = await manager.get_stock(product_id, force_refresh=refresh)
    return {"product_id": product_id, "quantity": quantity}


@router.put("/{product_id}")
async def update_stock(
    product_id: str,
    payload: StockUpdateRequest,
    manager: StockManager = Depends(get_stock_manager),
):
    """Admin edit: push an authoritative quantity to every open view"""
    try:
        quantity = manager.update_stock_and_notify(product_id, payload.quantity)
    except InvalidStockQuantityError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"product_id": product_id, "quantity": quantity}


@router.post("/orders")
async def order_placed(
    payload: OrderPlacedRequest,
    manager: StockManager = Depends(get_stock_manager),
) -> Dict[str, Dict[str, int]]:
    """Apply optimistic decrements after an order has been placed"""
    updated = manager.decrement_stock_after_order(payload.items)
    return {"updated": updated}


@router.post("/{product_id}/sync")
async def sync_stock(
    product_id: str,
    manager: StockManager = Depends(get_stock_manager),
):
    quantity: Optional[int] = await manager.sync_with_server(product_id)
    return {"product_id": product_id, "quantity": quantity, "synced": quantity is not None}


@router.post("/refresh")
async def refresh_all(
    payload: Optional[RefreshRequest] = None,
    manager: StockManager = Depends(get_stock_manager),
):
    """Bulk reconciliation for the admin "refresh inventory" action"""
    product_ids = payload.product_ids if payload else []
    results = await manager.refresh_all_products(product_ids)
    return {
        "results": results,
        "refreshed": sum(1 for q in results.values() if q is not None),
        "failed": [pid for pid, q in results.items() if q is None],
    }


@router.delete("/cache")
async def clear_cache(manager: StockManager = Depends(get_stock_manager)):
    manager.clear_cache()
    return {"status": "cleared"}
