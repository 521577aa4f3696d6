# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.integrations.notification_bus import NotificationBus
from app.integrations.reconciliation import ReconciliationClient
from app.integrations.stock_cache import StockCache
from app.integrations.stock_manager import StockManager
from app.integrations.storage import MemoryStorage
from tests.mocks.mock_product_source import FakeClock, MockProductSource


@pytest.fixture
def settings(tmp_path):
    """Provide test settings"""
    return Settings(
        PRODUCT_API_URL="http://products.test",
        STOCK_STORAGE_DIR=str(tmp_path / "stock"),
        STOCK_RECONCILE_DELAY_SECONDS=0.01,
        STOCK_POLL_INTERVAL_SECONDS=0.05,
        STOCK_CLEANUP_INTERVAL_SECONDS=3600,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def source():
    return MockProductSource({"P1": 10, "P2": 2, "P3": 4, "P4": 9})


@pytest.fixture
def cache(storage, clock):
    return StockCache(storage, clock=clock)


@pytest.fixture
def bus():
    return NotificationBus()


@pytest.fixture
def reconciler(source, cache, bus):
    return ReconciliationClient(source, cache, bus)


@pytest.fixture
async def stock_manager(source, storage, settings, clock):
    """A fresh StockManager per test, disposed afterwards"""
    manager = StockManager.create(source, storage, settings=settings, clock=clock)
    manager.init()
    yield manager
    await manager.dispose()


@pytest.fixture
def recorder():
    """Subscriber that records every (product_id, quantity) it receives"""
    calls = []

    def callback(product_id, quantity):
        calls.append((product_id, quantity))

    callback.calls = calls
    return callback


# --- FastAPI app fixtures ---

@pytest.fixture
def route_source():
    return MockProductSource({"P1": 10, "P2": 2, "P3": 4})


@pytest.fixture
def route_manager(route_source, settings):
    return StockManager.create(route_source, MemoryStorage(), settings=settings)


@pytest.fixture
def test_client(mocker, route_manager):
    """Run the app lifespan with the StockManager swapped for a test instance"""
    from app.main import app

    async def fake_setup(settings=None):
        route_manager.init()
        return route_manager

    mocker.patch("app.main.setup_stock_manager", side_effect=fake_setup)
    with TestClient(app) as client:
        yield client
