import logging
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from feedsync.feed.models import InventoryRow
from feedsync.services.shopify_sync import find_existing_variant
from feedsync.shopify.catalog import ShopifyCatalog
from feedsync.utils.text import normalize_sku

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 15 * 60


class InventorySource(Protocol):
    async def get_quantities(self, since: int | None = None) -> list[InventoryRow]:
        ...


@dataclass
class StockSummary:
    rows: int = 0
    ok: int = 0
    miss: int = 0
    err: int = 0

    def as_dict(self) -> dict:
        return {"rows": self.rows, "ok": self.ok, "miss": self.miss, "err": self.err}


def window_start(window_seconds: Optional[int], now: Optional[float] = None) -> Optional[int]:
    """Epoch seconds for the start of the window; None means every row."""
    if window_seconds is None:
        return None
    return int(now if now is not None else time.time()) - int(window_seconds)


async def sync_stocks(
    catalog: ShopifyCatalog,
    source: InventorySource,
    location_id: int,
    window_seconds: Optional[int] = DEFAULT_WINDOW_SECONDS,
) -> StockSummary:
    """
    Push absolute on-hand quantities from ``source`` to Shopify, matching
    rows to variants by SKU. ``window_seconds=None`` syncs every row.
    """
    if window_seconds is None:
        logger.info("Updating stock (FULL: every SKU)...")
    else:
        logger.info(f"Updating stock (last {window_seconds // 60} min)...")

    rows = await source.get_quantities(window_start(window_seconds))
    summary = StockSummary(rows=len(rows))
    logger.info(f"To process: {len(rows)} SKU")

    for row in rows:
        sku = normalize_sku(row.sku)
        if not sku:
            continue
        try:
            variant = await find_existing_variant(catalog, sku)
            if variant is None:
                summary.miss += 1
                logger.debug(f"! variant not found {sku}")
                continue
            inventory_item_id = variant.inventory_item_id or await catalog.get_inventory_item_id(variant.variant_id)
            if not inventory_item_id:
                summary.miss += 1
                logger.debug(f"! inventory_item_id missing {sku}")
                continue
            await catalog.set_inventory_level(inventory_item_id, location_id, max(0, row.quantity))
            summary.ok += 1
        except Exception as e:
            summary.err += 1
            logger.error(f"Stock update failed {sku}: {getattr(e, 'body', None) or e}")

    logger.info(
        f"✔ Stock → OK: {summary.ok}, Not found: {summary.miss}, Errors: {summary.err}"
        f"{' (DRY RUN)' if catalog.dry_run else ''}"
    )
    return summary
