from fastapi import Request

from app.integrations.stock_manager import StockManager


def get_stock_manager(request: Request) -> StockManager:
    """Dependency returning the application's shared StockManager."""
    return request.app.state.stock_manager
