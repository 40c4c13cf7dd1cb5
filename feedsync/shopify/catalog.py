"""
Catalog operations used by the importer and the stock sync.

Lookups go through the Admin GraphQL API (search by SKU / tag), writes
through the REST endpoints. ``DryRunCatalog`` keeps every read live and
turns every write into a no-op that returns a placeholder.
"""

import json
import logging
from typing import Optional

from feedsync.feed.models import VariantRef
from feedsync.shopify.client import ShopifyClient
from feedsync.utils.text import gid_to_num

logger = logging.getLogger(__name__)

FIND_VARIANT_BY_SKU = """
query($q:String!){
  productVariants(first:1, query:$q){
    nodes{ id sku inventoryItem{ id } product{ id title } }
  }
}
"""

FIND_PRODUCT_BY_TAG = """
query($q:String!){
  products(first:1, query:$q){
    nodes{ id title handle }
  }
}
"""

DRY_RUN_ID = "0"


def _variant_ref(node: Optional[dict]) -> Optional[VariantRef]:
    if not node:
        return None
    return VariantRef(
        variant_id=gid_to_num(node["id"]),
        product_id=gid_to_num((node.get("product") or {}).get("id")),
        sku=node.get("sku"),
        inventory_item_id=gid_to_num((node.get("inventoryItem") or {}).get("id")),
    )


class ShopifyCatalog:
    dry_run = False

    def __init__(self, client: ShopifyClient):
        self.client = client

    # ---------------------------------------------------------------- reads

    async def _first_variant(self, search: str) -> Optional[VariantRef]:
        data = await self.client.graphql(FIND_VARIANT_BY_SKU, {"q": search})
        nodes = ((data.get("productVariants") or {}).get("nodes")) or []
        return _variant_ref(nodes[0] if nodes else None)

    async def find_variant_by_sku(self, sku: str) -> Optional[VariantRef]:
        return await self._first_variant(f"sku:{json.dumps(sku, ensure_ascii=False)}")

    async def find_variant_by_sku_loose(self, sku: str) -> Optional[VariantRef]:
        """Unquoted search, catches SKUs stored with odd quoting."""
        return await self._first_variant(f"sku:{sku}")

    async def find_product_by_tag(self, tag: str) -> Optional[str]:
        data = await self.client.graphql(FIND_PRODUCT_BY_TAG, {"q": f"tag:{json.dumps(tag, ensure_ascii=False)}"})
        nodes = ((data.get("products") or {}).get("nodes")) or []
        return gid_to_num(nodes[0]["id"]) if nodes else None

    async def get_product(self, product_id: str) -> dict:
        res = await self.client.get(f"products/{product_id}.json")
        return (res or {}).get("product") or {}

    async def get_inventory_item_id(self, variant_id: str) -> Optional[str]:
        res = await self.client.get(f"variants/{variant_id}.json")
        inventory_item_id = ((res or {}).get("variant") or {}).get("inventory_item_id")
        return str(inventory_item_id) if inventory_item_id else None

    # --------------------------------------------------------------- writes

    async def create_product(self, product: dict) -> dict:
        res = await self.client.post("products.json", {"product": product})
        return (res or {}).get("product") or {}

    async def update_product(self, product_id: str, patch: dict) -> dict:
        res = await self.client.put(
            f"products/{product_id}.json",
            {"product": {"id": int(product_id), **patch}},
        )
        return (res or {}).get("product") or {}

    async def create_variant(self, product_id: str, variant: dict) -> dict:
        res = await self.client.post(
            "variants.json",
            {"variant": {**variant, "product_id": int(product_id)}},
        )
        return (res or {}).get("variant") or {}

    async def update_variant(self, variant_id: str, patch: dict) -> dict:
        res = await self.client.put(
            f"variants/{variant_id}.json",
            {"variant": {"id": int(variant_id), **patch}},
        )
        return (res or {}).get("variant") or {}

    async def set_inventory_level(self, inventory_item_id: str, location_id: int, available: int) -> dict:
        payload = {
            "location_id": int(location_id),
            "inventory_item_id": int(inventory_item_id),
            "available": int(available),
        }
        return await self.client.post("inventory_levels/set.json", payload, idempotent=True) or {}


class DryRunCatalog(ShopifyCatalog):
    dry_run = True

    async def create_product(self, product: dict) -> dict:
        logger.info(f"[dry run] create product {product.get('handle')} ({len(product.get('variants') or [])} variants)")
        return {"id": DRY_RUN_ID, "title": product.get("title"), "_dry": True}

    async def update_product(self, product_id: str, patch: dict) -> dict:
        logger.info(f"[dry run] update product {product_id}")
        return {"id": product_id, "_dry": True}

    async def create_variant(self, product_id: str, variant: dict) -> dict:
        logger.info(f"[dry run] create variant {variant.get('sku')} under product {product_id}")
        return {"id": DRY_RUN_ID, "_dry": True}

    async def update_variant(self, variant_id: str, patch: dict) -> dict:
        logger.info(f"[dry run] update variant {variant_id}: {patch}")
        return {"id": variant_id, "_dry": True}

    async def set_inventory_level(self, inventory_item_id: str, location_id: int, available: int) -> dict:
        logger.info(f"[dry run] set inventory item {inventory_item_id} @ {location_id} -> {available}")
        return {"_dry": True}
