from fastapi import APIRouter, Depends

from app.dependencies import get_stock_manager
from app.integrations.stock_manager import StockManager

router = APIRouter(tags=["health"])

@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "Storefront Stock Sync"}

@router.get("/health/stock")
async def stock_health(manager: StockManager = Depends(get_stock_manager)):
    """Report cache size and live subscriber count"""
    state = manager.debug()
    return {
        "status": "healthy" if state["initialized"] else "starting",
        "cached_products": len(state["entries"]),
        "subscribers": state["subscribers"],
    }
