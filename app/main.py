# app/main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import get_settings
from app.core.logging_config import configure_logging
from app.integrations.setup import setup_stock_manager
from app.routes import health, stock, websockets as websocket_router
from app.scheduler import create_scheduler, start_scheduler, stop_scheduler
from app.services.websockets.manager import manager as websocket_manager


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    # Startup: one StockManager shared by every route and websocket client
    app.state.stock_manager = await setup_stock_manager(settings)
    websocket_manager.attach(app.state.stock_manager.bus)

    app.state.scheduler = create_scheduler(app.state.stock_manager, settings)
    await start_scheduler(app.state.scheduler)
    try:
        yield  # This is where the app runs
    finally:
        await stop_scheduler(app.state.scheduler)
        websocket_manager.detach()
        await app.state.stock_manager.dispose()


app = FastAPI(
    title="Storefront Stock Sync",
    lifespan=lifespan
)

app.include_router(stock.router)
app.include_router(websocket_router.router)  # WebSockets handle auth differently
app.include_router(health.router)
