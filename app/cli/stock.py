# app/cli/stock.py
import asyncio
import json
import click

from app.core.config import get_settings
from app.core.logging_config import configure_logging
from app.integrations.setup import setup_stock_manager
from app.integrations.stock_cache import StockCache
from app.integrations.storage import JsonFileStorage


def _open_cache(settings) -> StockCache:
    cache = StockCache(
        JsonFileStorage(settings.STOCK_STORAGE_DIR),
        storage_key=settings.STOCK_STORAGE_KEY,
        freshness_ms=settings.stock_freshness_ms,
    )
    cache.restore()
    return cache


@click.group()
@click.option('--log-level', default=None, help='Override LOG_LEVEL')
def cli(log_level):
    """Inspect and maintain the persisted stock snapshot"""
    configure_logging(log_level)


@cli.command()
@click.option('--as-json', is_flag=True, help='Print the raw snapshot as JSON')
def show(as_json):
    """Show fresh entries in the persisted stock snapshot"""
    cache = _open_cache(get_settings())
    snapshot = cache.snapshot()

    if as_json:
        click.echo(json.dumps(snapshot, indent=2))
        return

    if not snapshot:
        click.echo("No cached stock entries")
        return

    now = cache.now()
    click.echo(f"{'Product':<20} {'Qty':>6} {'Age (s)':>10}")
    for product_id, value in sorted(snapshot.items()):
        age = (now - value["observed_at"]) // 1000
        click.echo(f"{product_id:<20} {value['quantity']:>6} {age:>10}")


@cli.command()
@click.argument('product_ids', nargs=-1, required=True)
def sync(product_ids):
    """Re-read stock for PRODUCT_IDS from the product service"""

    async def _sync():
        manager = await setup_stock_manager(get_settings())
        try:
            results = {}
            for product_id in product_ids:
                results[product_id] = await manager.sync_with_server(product_id)
            return results
        finally:
            await manager.dispose()

    results = asyncio.run(_sync())
    failed = 0
    for product_id, quantity in results.items():
        if quantity is None:
            failed += 1
            click.echo(f"{product_id}: could not confirm stock")
        else:
            click.echo(f"{product_id}: {quantity}")
    if failed:
        raise SystemExit(1)


@cli.command()
@click.confirmation_option(prompt='Delete the persisted stock snapshot?')
def clear():
    """Delete every cached entry and the persisted snapshot"""
    cache = _open_cache(get_settings())
    count = len(cache)
    cache.clear()
    click.echo(f"Cleared {count} cached stock entries")


if __name__ == "__main__":
    cli()
