import pytest

from feedsync.exceptions import ConfigurationError, ShopifyAPIError
from feedsync.feed.models import FeedGroup, MappedVariant
from feedsync.normalizer.grouping import GroupStrategy
from feedsync.normalizer.pipeline import map_group
from feedsync.services.shopify_sync import (
    ImportOptions,
    UpsertStatus,
    import_feed,
    merge_tags,
    upsert_product_from_group,
    variant_patch,
)


def test_merge_tags_keeps_existing_and_dedupes_anchor():
    merged = merge_tags("Foo, GMGroup:X", ["Bar", "GMGroup:X"])
    assert merged == ["Foo", "GMGroup:X", "Bar"]


def test_merge_tags_is_case_sensitive():
    assert merge_tags("foo", ["Foo"]) == ["foo", "Foo"]
    assert merge_tags(None, ["A"]) == ["A"]


def test_variant_patch_empty_when_aligned():
    variant = MappedVariant(sku="A1", price="19.90")
    existing = {"id": 1, "sku": "A1", "price": "19.9", "compare_at_price": None, "inventory_management": "shopify"}
    assert variant_patch(existing, variant) == {}


def test_variant_patch_lists_changed_fields():
    variant = MappedVariant(sku="A1", price="15.00", compare_at_price="20.00")
    existing = {"id": 1, "sku": "a1", "price": "19.90", "compare_at_price": None, "inventory_management": None}
    assert variant_patch(existing, variant) == {
        "price": "15.00",
        "compare_at_price": "20.00",
        "inventory_management": "shopify",
        "sku": "A1",
    }


def test_variant_patch_only_management_flag():
    variant = MappedVariant(sku="A1", price="10.00")
    existing = {"id": 1, "sku": "A1", "price": "10.00", "inventory_management": "not_managed"}
    assert variant_patch(existing, variant) == {"inventory_management": "shopify"}


def test_variant_patch_clears_stale_compare_at():
    variant = MappedVariant(sku="A1", price="10.00")
    existing = {"id": 1, "sku": "A1", "price": "10.00", "compare_at_price": "12.00", "inventory_management": "shopify"}
    assert variant_patch(existing, variant) == {"compare_at_price": None}


@pytest.mark.asyncio
async def test_end_to_end_item_group_id_on_empty_catalog(catalog, three_item_feed):
    summary = await import_feed(three_item_feed, catalog, ImportOptions(group=GroupStrategy.ITEM_GROUP_ID))

    assert summary.created == 2
    assert summary.updated == summary.errors == summary.skipped == 0
    products = list(catalog.products.values())
    assert len(products) == 2
    assert [v["sku"] for v in products[0]["variants"]] == ["A1", "A2"]
    assert [v["sku"] for v in products[1]["variants"]] == ["B1"]
    assert products[0]["tags"] == "Brand:Acme, GMGroup:G1"
    assert products[1]["variants"][0]["price"] == "39.00"


@pytest.mark.asyncio
async def test_second_run_is_idempotent(catalog, three_item_feed):
    options = ImportOptions(group=GroupStrategy.ITEM_GROUP_ID)
    await import_feed(three_item_feed, catalog, options)
    catalog.calls.clear()

    summary = await import_feed(three_item_feed, catalog, options)

    assert summary.created == 0
    assert summary.updated == 2
    assert len(catalog.products) == 2
    assert all(r.variant_mutations == 0 for r in summary.results.values())
    assert catalog.calls_to("create_product") == []
    assert catalog.calls_to("create_variant") == []
    assert catalog.calls_to("update_variant") == []
    tags = [t.strip() for t in catalog.products["1000"]["tags"].split(",")]
    assert tags.count("GMGroup:G1") == 1


@pytest.mark.asyncio
async def test_matches_by_group_tag_when_no_sku_found(catalog, make_item):
    catalog.add_product("77", tags="Manual, GMGroup:G1", variants=[{"id": "1", "sku": "OLD", "price": "1.00"}])
    mapped = map_group(FeedGroup(group_id="G1", variants=[make_item("NEW1", price="5 EUR")]))

    res = await upsert_product_from_group(catalog, mapped)

    assert res.status is UpsertStatus.UPDATED
    assert res.product_id == "77"
    assert res.variants_created == 1
    assert catalog.calls_to("find_product_by_tag") == ["GMGroup:G1"]
    assert [v["sku"] for v in catalog.products["77"]["variants"]] == ["OLD", "NEW1"]
    assert catalog.products["77"]["tags"] == "Manual, GMGroup:G1"


@pytest.mark.asyncio
async def test_loose_lookup_used_after_exact_miss(catalog, make_item):
    catalog.add_product("55", variants=[{"id": "9", "sku": " ab-12 ", "price": "5.00", "inventory_management": "shopify"}])
    mapped = map_group(FeedGroup(group_id="G", variants=[make_item("AB-12", price="5 EUR")]))

    res = await upsert_product_from_group(catalog, mapped)

    assert res.product_id == "55"
    assert catalog.calls_to("find_variant_by_sku") == ["AB-12"]
    assert catalog.calls_to("find_variant_by_sku_loose") == ["AB-12"]
    # matched under the normalized key, sku realigned
    assert catalog.calls_to("update_variant") == ["9"]
    assert catalog.products["55"]["variants"][0]["sku"] == "AB-12"
    assert res.variants_created == 0


@pytest.mark.asyncio
async def test_update_keeps_prior_values_for_empty_mapped_fields(catalog, make_item):
    catalog.add_product("10", variants=[{"id": "1", "sku": "A1", "price": "5.00", "inventory_management": "shopify"}])
    mapped = map_group(FeedGroup(group_id="G", variants=[make_item("A1", price="6 EUR")]))

    res = await upsert_product_from_group(catalog, mapped)

    product = catalog.products["10"]
    assert product["title"] == "G"
    assert product["vendor"] == "OldVendor"
    assert product["product_type"] == "OldType"
    assert product["body_html"] == "<p>old</p>"
    assert product["variants"][0]["price"] == "6.00"
    assert res.variants_updated == 1


@pytest.mark.asyncio
async def test_stops_at_first_sku_hit(catalog, make_item):
    catalog.add_product("10", variants=[{"id": "1", "sku": "A2", "price": "5.00", "inventory_management": "shopify"}])
    mapped = map_group(FeedGroup(group_id="G", variants=[
        make_item("A1", price="5 EUR"), make_item("A2", price="5 EUR"), make_item("A3", price="5 EUR"),
    ]))

    await upsert_product_from_group(catalog, mapped)

    assert catalog.calls_to("find_variant_by_sku") == ["A1", "A2"]
    assert catalog.calls_to("find_product_by_tag") == []


@pytest.mark.asyncio
async def test_group_without_skus_is_skipped(catalog):
    summary = await import_feed([{"g:title": "no id"}], catalog)
    assert summary.skipped == 1
    assert catalog.calls == []


@pytest.mark.asyncio
async def test_failure_is_isolated_per_group(catalog, three_item_feed):
    catalog.fail["create_product:gm-g1"] = ShopifyAPIError("boom", status=422)

    summary = await import_feed(three_item_feed, catalog, ImportOptions(group=GroupStrategy.ITEM_GROUP_ID))

    assert summary.errors == 1
    assert summary.created == 1
    assert summary.results["G1"].status is UpsertStatus.FAILED
    assert [p["handle"] for p in catalog.products.values()] == ["gm-g2"]


@pytest.mark.asyncio
async def test_variant_failure_leaves_parent_update_in_place(catalog, make_item):
    catalog.add_product("10", tags="GMGroup:G", variants=[])
    catalog.fail["create_variant:B"] = ShopifyAPIError("bad variant")
    items = [make_item("A", item_group_id="G", price="1 EUR"), make_item("B", item_group_id="G", price="1 EUR")]

    summary = await import_feed(items, catalog)

    assert summary.errors == 1
    assert catalog.calls_to("update_product") == ["10"]
    assert [v["sku"] for v in catalog.products["10"]["variants"]] == ["A"]


def test_invalid_regex_rejected_before_any_call():
    with pytest.raises(ConfigurationError):
        ImportOptions(group=GroupStrategy.REGEX, id_regex="([")
