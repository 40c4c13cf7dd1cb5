"""Entry points shared by the CLI, the API routes and the scheduler."""

import asyncio
import logging
from typing import Optional

from feedsync.config import Settings
from feedsync.feed.fetch_feed import fetch_feed
from feedsync.services.shopify_sync import ImportOptions, ImportSummary, import_feed
from feedsync.services.stock_sync import StockSummary, sync_stocks
from feedsync.shopify.catalog import DryRunCatalog, ShopifyCatalog
from feedsync.shopify.client import ShopifyClient
from feedsync.storegest.client import StoreGestClient

logger = logging.getLogger(__name__)


def build_catalog(settings: Settings, dry_run: bool = False) -> ShopifyCatalog:
    client = ShopifyClient.from_settings(settings)
    return DryRunCatalog(client) if dry_run else ShopifyCatalog(client)


async def run_import(source: str, settings: Settings, options: Optional[ImportOptions] = None) -> ImportSummary:
    options = options or ImportOptions()
    settings.require_shopify()

    # requests is blocking: keep it off the event loop
    items = await asyncio.to_thread(fetch_feed, source)
    catalog = build_catalog(settings, options.dry_run)
    return await import_feed(items, catalog, options)


async def run_stock_sync(
    settings: Settings,
    since_minutes: Optional[int] = None,
    full: bool = False,
    dry_run: bool = False,
) -> StockSummary:
    settings.require_shopify()
    settings.require_location()
    settings.require_storegest()

    if full:
        window = None
    else:
        window = (since_minutes if since_minutes is not None else settings.STOCK_SYNC_WINDOW_MINUTES) * 60

    catalog = build_catalog(settings, dry_run)
    source = StoreGestClient.from_settings(settings)
    return await sync_stocks(catalog, source, settings.SHOPIFY_LOCATION_ID, window)
