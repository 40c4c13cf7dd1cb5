"""
Shared test fixtures.

FakeCatalog is an in-memory Shopify store exposing the same coroutine
methods as ShopifyCatalog, so the services run unchanged against it.
"""

import itertools
from typing import Optional

import pytest

from feedsync.feed.models import InventoryRow, VariantRef
from feedsync.utils.text import normalize_sku


class FakeCatalog:
    dry_run = False

    def __init__(self):
        self.products: dict[str, dict] = {}
        self.calls: list[tuple] = []
        self.fail: dict[str, Exception] = {}
        self.levels: dict[str, int] = {}
        self._ids = itertools.count(1000)

    def _next_id(self) -> str:
        return str(next(self._ids))

    def _check(self, op: str, key=None):
        self.calls.append((op, key))
        exc = self.fail.get(op) or self.fail.get(f"{op}:{key}")
        if exc:
            raise exc

    def calls_to(self, op: str) -> list:
        return [key for name, key in self.calls if name == op]

    def _variants(self):
        for product in self.products.values():
            for variant in product["variants"]:
                yield product, variant

    def _ref(self, product, variant) -> VariantRef:
        return VariantRef(
            variant_id=variant["id"],
            product_id=product["id"],
            sku=variant.get("sku"),
            inventory_item_id=variant.get("inventory_item_id"),
        )

    # reads

    async def find_variant_by_sku(self, sku: str) -> Optional[VariantRef]:
        self._check("find_variant_by_sku", sku)
        for product, variant in self._variants():
            if variant.get("sku") == sku:
                return self._ref(product, variant)
        return None

    async def find_variant_by_sku_loose(self, sku: str) -> Optional[VariantRef]:
        self._check("find_variant_by_sku_loose", sku)
        for product, variant in self._variants():
            if normalize_sku(variant.get("sku")) == normalize_sku(sku):
                return self._ref(product, variant)
        return None

    async def find_product_by_tag(self, tag: str) -> Optional[str]:
        self._check("find_product_by_tag", tag)
        for product in self.products.values():
            if tag in [t.strip() for t in (product.get("tags") or "").split(",")]:
                return product["id"]
        return None

    async def get_product(self, product_id: str) -> dict:
        self._check("get_product", product_id)
        return self.products[product_id]

    async def get_inventory_item_id(self, variant_id: str) -> Optional[str]:
        self._check("get_inventory_item_id", variant_id)
        for _, variant in self._variants():
            if variant["id"] == variant_id:
                return variant.get("inventory_item_id")
        return None

    # writes

    def _new_variant(self, data: dict) -> dict:
        vid = self._next_id()
        return {"inventory_item_id": f"inv-{vid}", **data, "id": vid}

    async def create_product(self, product: dict) -> dict:
        self._check("create_product", product.get("handle"))
        pid = self._next_id()
        stored = {**product, "id": pid}
        stored["variants"] = [self._new_variant(v) for v in product.get("variants") or []]
        self.products[pid] = stored
        return stored

    async def update_product(self, product_id: str, patch: dict) -> dict:
        self._check("update_product", product_id)
        self.products[product_id].update(patch)
        return self.products[product_id]

    async def create_variant(self, product_id: str, variant: dict) -> dict:
        self._check("create_variant", variant.get("sku"))
        stored = self._new_variant(variant)
        self.products[product_id]["variants"].append(stored)
        return stored

    async def update_variant(self, variant_id: str, patch: dict) -> dict:
        self._check("update_variant", variant_id)
        for _, variant in self._variants():
            if variant["id"] == variant_id:
                variant.update(patch)
                return variant
        raise KeyError(variant_id)

    async def set_inventory_level(self, inventory_item_id: str, location_id: int, available: int) -> dict:
        self._check("set_inventory_level", inventory_item_id)
        self.levels[inventory_item_id] = available
        return {"inventory_level": {"available": available}}

    def add_product(self, product_id: str, tags: str = "", variants: list[dict] | None = None, **fields) -> dict:
        product = {
            "id": product_id,
            "title": "Existing",
            "body_html": "<p>old</p>",
            "vendor": "OldVendor",
            "product_type": "OldType",
            "tags": tags,
            "variants": [{"inventory_item_id": f"inv-{v['id']}", **v} for v in variants or []],
            **fields,
        }
        self.products[product_id] = product
        return product


class FakeInventorySource:
    def __init__(self, rows: list[InventoryRow]):
        self.rows = rows
        self.since_calls: list = []

    async def get_quantities(self, since=None):
        self.since_calls.append(since)
        return list(self.rows)


@pytest.fixture()
def catalog():
    return FakeCatalog()


def gm_item(item_id, **fields) -> dict:
    """Feed item with Google namespaced keys."""
    item = {"g:id": item_id}
    item.update({f"g:{k}": v for k, v in fields.items()})
    return item


@pytest.fixture()
def three_item_feed():
    return [
        gm_item("A1", item_group_id="G1", title="Maglia", brand="Acme", price="19.90 EUR"),
        gm_item("A2", item_group_id="G1", title="Maglia", brand="Acme", price="19.90 EUR"),
        gm_item("B1", item_group_id="G2", title="Pantalone", brand="Acme", price="EUR 39,00"),
    ]


@pytest.fixture()
def make_item():
    return gm_item


@pytest.fixture()
def fake_source():
    return FakeInventorySource
