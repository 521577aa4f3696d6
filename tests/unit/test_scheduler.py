# tests/unit/test_scheduler.py
import pytest
from unittest.mock import AsyncMock

from app.scheduler import create_scheduler, refresh_inventory_task


def test_refresh_job_disabled_by_default(settings, mocker):
    scheduler = create_scheduler(mocker.MagicMock(), settings)
    assert scheduler.get_jobs() == []


def test_refresh_job_added_when_interval_set(settings, mocker):
    settings.STOCK_REFRESH_INTERVAL_MINUTES = 15
    manager = mocker.MagicMock()

    scheduler = create_scheduler(manager, settings)

    jobs = scheduler.get_jobs()
    assert [job.id for job in jobs] == ["refresh_inventory"]
    assert jobs[0].args == (manager,)


@pytest.mark.asyncio
async def test_refresh_inventory_task_calls_manager(mocker):
    manager = mocker.MagicMock()
    manager.refresh_all_products = AsyncMock(return_value={"P1": 3, "P2": None})

    await refresh_inventory_task(manager)

    manager.refresh_all_products.assert_awaited_once_with()


@pytest.mark.asyncio
async def test_refresh_inventory_task_logs_errors(mocker, caplog):
    manager = mocker.MagicMock()
    manager.refresh_all_products = AsyncMock(side_effect=RuntimeError("boom"))

    await refresh_inventory_task(manager)

    assert "Error in scheduled stock refresh" in caplog.text
