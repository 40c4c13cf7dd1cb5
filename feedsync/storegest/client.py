import asyncio
import logging

import aiohttp

from feedsync.config import Settings
from feedsync.feed.models import InventoryRow
from feedsync.utils.text import normalize_sku, pick, to_number

logger = logging.getLogger(__name__)


def parse_row(raw: dict) -> InventoryRow:
    sku = normalize_sku(pick(raw.get("SKU"), raw.get("Sku"), raw.get("sku")))
    qty = to_number(pick(raw.get("Qta"), raw.get("qta"), raw.get("qty")), 0)
    return InventoryRow(sku=sku, quantity=max(0, int(qty)))


class StoreGestClient:
    """Quantity-on-hand source (StoreGest `qta` action)."""

    def __init__(self, base_url: str, domain: str, api_key: str, *, timeout: float = 180.0):
        self.base_url = base_url
        self.headers = {"domain": domain, "apikey": api_key}
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    @classmethod
    def from_settings(cls, settings: Settings) -> "StoreGestClient":
        settings.require_storegest()
        return cls(
            settings.STOREGEST_BASE_URL,
            settings.STOREGEST_DOMAIN,
            settings.STOREGEST_APIKEY,
            timeout=settings.STOREGEST_TIMEOUT,
        )

    async def get_quantities(self, since: int | None = None) -> list[InventoryRow]:
        """
        Rows changed since ``since`` (epoch seconds); every row when None.

        A failed call is logged and returns no rows.
        """
        form = {"act": "qta"}
        if since:
            form["time"] = str(since)
        try:
            async with aiohttp.ClientSession(headers=self.headers, timeout=self.timeout) as session:
                async with session.post(self.base_url, data=form) as resp:
                    if resp.status >= 400:
                        text = await resp.text()
                        logger.error(f"❌ StoreGest qta error {resp.status}: {text}")
                        return []
                    data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"❌ StoreGest qta error: {e}")
            return []
        return [parse_row(r) for r in (data or {}).get("data") or [] if isinstance(r, dict)]
