# tests/integration/test_stock_manager_integration.py
import asyncio
import pytest

from app.integrations.events import LineItem, ProductRecord
from app.integrations.stock_manager import StockManager
from app.services.cart_service import CartStockGuard
from app.services.notification_service import StockNotificationFeed


@pytest.fixture
async def mock_system(source, storage, settings, clock):
    """A manager with three 'views' attached: detail page, banner, admin table"""
    manager = StockManager.create(source, storage, settings=settings, clock=clock)
    manager.init()

    detail_view = {}
    admin_table = {"P1": 10, "P2": 2}

    def on_detail(product_id, quantity):
        if product_id == "P1":
            detail_view["stock"] = quantity

    def on_admin(product_id, quantity):
        if product_id in admin_table:
            admin_table[product_id] = quantity

    manager.subscribe(on_detail)
    manager.subscribe(on_admin)
    banner = StockNotificationFeed(manager.bus)

    yield manager, detail_view, admin_table, banner
    banner.close()
    await manager.dispose()


@pytest.mark.asyncio
async def test_order_propagates_to_every_view_then_reconciles(mock_system, source):
    manager, detail_view, admin_table, banner = mock_system
    guard = CartStockGuard(manager)
    product = ProductRecord(id="P1", stock=10, name="Phone")

    check = await guard.check_add(product, quantity=3)
    assert check.allowed

    # Someone else buys 2 between our check and the server-side order
    source.stock_levels["P1"] = 5
    manager.decrement_stock_after_order([LineItem(product_id="P1", quantity=3, product_stock=10)])

    assert detail_view["stock"] == 7
    assert admin_table["P1"] == 7
    assert [(n.product_id, n.new_quantity) for n in banner.active()] == [("P1", 7)]

    await manager.accountant.last_pending.wait()

    assert manager.get_cached_stock("P1") == 5
    assert detail_view["stock"] == 5
    assert admin_table["P1"] == 5


@pytest.mark.asyncio
async def test_admin_edit_reaches_customer_views(mock_system):
    manager, detail_view, admin_table, banner = mock_system

    manager.update_stock_and_notify("P1", 25)

    assert detail_view["stock"] == 25
    assert admin_table["P1"] == 25


@pytest.mark.asyncio
async def test_detail_page_polling_lifecycle(mock_system, source):
    manager, detail_view, admin_table, banner = mock_system

    watch = manager.watch_product("P1", interval_seconds=0.01)
    await asyncio.sleep(0.005)
    assert detail_view["stock"] == 10

    source.stock_levels["P1"] = 8
    await asyncio.sleep(0.03)
    assert detail_view["stock"] == 8

    watch.cancel()
    await watch.wait()
    source.stock_levels["P1"] = 1
    await asyncio.sleep(0.03)
    assert detail_view["stock"] == 8


@pytest.mark.asyncio
async def test_reload_keeps_optimistic_stock(mock_system, source, storage, settings, clock):
    manager, detail_view, admin_table, banner = mock_system
    source.should_fail = True
    manager.decrement_stock_after_order([LineItem(product_id="P2", quantity=1, product_stock=2)])
    await manager.accountant.last_pending.wait()

    reloaded = StockManager.create(source, storage, settings=settings, clock=clock)
    reloaded.init()

    assert reloaded.get_cached_stock("P2") == 1
    await reloaded.dispose()
