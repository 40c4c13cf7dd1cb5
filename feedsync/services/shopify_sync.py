import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from feedsync.exceptions import ConfigurationError
from feedsync.feed.models import (
    INVENTORY_MANAGEMENT,
    FieldMap,
    FlatItem,
    MappedProduct,
    MappedVariant,
    VariantRef,
)
from feedsync.normalizer.grouping import GroupingConfig, GroupStrategy, group_items
from feedsync.normalizer.pipeline import group_tag, map_group
from feedsync.shopify.catalog import ShopifyCatalog
from feedsync.utils.text import normalize_sku, same_price

logger = logging.getLogger(__name__)


class UpsertStatus(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED_NO_SKU = "skipped-no-sku"
    FAILED = "failed"


@dataclass
class UpsertResult:
    status: UpsertStatus
    product_id: Optional[str] = None
    variants_created: int = 0
    variants_updated: int = 0

    @property
    def variant_mutations(self) -> int:
        return self.variants_created + self.variants_updated


class ImportOptions(BaseModel):
    group: GroupStrategy = GroupStrategy.AUTO
    id_separator: str = "-"
    id_parts: int = 2
    id_regex: Optional[str] = None
    field_map: FieldMap = Field(default_factory=FieldMap)
    dry_run: bool = False

    @field_validator("id_regex")
    @classmethod
    def _check_regex(cls, value: Optional[str]) -> Optional[str]:
        if value:
            try:
                re.compile(value)
            except re.error as exc:
                raise ConfigurationError(f"Invalid id regex {value!r}: {exc}") from exc
        return value

    def grouping_config(self) -> GroupingConfig:
        return GroupingConfig(
            strategy=self.group,
            id_separator=self.id_separator,
            id_parts=self.id_parts,
            id_regex=self.id_regex,
            field_map=self.field_map,
        )


@dataclass
class ImportSummary:
    items: int = 0
    groups: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    results: dict[str, UpsertResult] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "items": self.items,
            "groups": self.groups,
            "created": self.created,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": self.errors,
        }


async def find_existing_variant(catalog: ShopifyCatalog, sku: str) -> Optional[VariantRef]:
    """Exact SKU search first, then the unquoted one."""
    found = await catalog.find_variant_by_sku(sku)
    if found is None:
        found = await catalog.find_variant_by_sku_loose(sku)
    return found


def merge_tags(existing: str | Iterable[str] | None, new: Iterable[str]) -> list[str]:
    """Case-sensitive union, existing tags first. Manually added tags survive."""
    if isinstance(existing, str):
        existing = existing.split(",")
    merged: list[str] = []
    for tag in [*(existing or []), *new]:
        tag = (tag or "").strip()
        if tag and tag not in merged:
            merged.append(tag)
    return merged


def variant_patch(existing: dict, variant: MappedVariant) -> dict:
    """Fields of ``existing`` that differ from the mapped variant."""
    patch = {}
    if not same_price(existing.get("price"), variant.price):
        patch["price"] = variant.price
    if not same_price(existing.get("compare_at_price"), variant.compare_at_price):
        patch["compare_at_price"] = variant.compare_at_price
    if existing.get("inventory_management") != INVENTORY_MANAGEMENT:
        patch["inventory_management"] = INVENTORY_MANAGEMENT
    if existing.get("sku") != variant.sku:
        patch["sku"] = variant.sku
    return patch


async def _find_target_product(catalog: ShopifyCatalog, mapped: MappedProduct) -> Optional[str]:
    for sku in mapped.skus:
        found = await find_existing_variant(catalog, sku)
        if found is not None:
            logger.debug(f"   SKU {sku} found → product {found.product_id}")
            return found.product_id
    return await catalog.find_product_by_tag(group_tag(mapped.group_id))


async def upsert_product_from_group(catalog: ShopifyCatalog, mapped: MappedProduct) -> UpsertResult:
    skus = mapped.skus
    logger.debug(
        f"→ {mapped.title} | group={mapped.group_id} | SKU: "
        f"{', '.join(skus[:6])}{'…' if len(skus) > 6 else ''}"
    )
    if not skus:
        return UpsertResult(UpsertStatus.SKIPPED_NO_SKU)

    product_id = await _find_target_product(catalog, mapped)

    if not product_id:
        logger.debug("   new product → create_product()")
        created = await catalog.create_product(mapped.to_shopify())
        return UpsertResult(UpsertStatus.CREATED, product_id=str(created.get("id") or ""))

    logger.debug(f"   existing → product {product_id}")
    product = await catalog.get_product(product_id)

    await catalog.update_product(product_id, {
        "title": mapped.title or product.get("title"),
        "body_html": mapped.body_html or product.get("body_html"),
        "vendor": mapped.vendor or product.get("vendor"),
        "product_type": mapped.product_type or product.get("product_type"),
        "tags": ", ".join(merge_tags(product.get("tags"), mapped.tags)),
    })

    existing_by_sku = {
        normalize_sku(v.get("sku")): v for v in product.get("variants") or []
    }
    result = UpsertResult(UpsertStatus.UPDATED, product_id=product_id)

    for variant in mapped.variants:
        existing = existing_by_sku.get(normalize_sku(variant.sku))
        if existing is None:
            logger.debug(f"   + create variant SKU {variant.sku}")
            created = await catalog.create_variant(product_id, variant.to_shopify())
            existing_by_sku[normalize_sku(variant.sku)] = {**variant.to_shopify(), "id": created.get("id")}
            result.variants_created += 1
            continue

        patch = variant_patch(existing, variant)
        if patch:
            logger.debug(f"   ~ update variant SKU {variant.sku} {patch}")
            await catalog.update_variant(str(existing["id"]), patch)
            result.variants_updated += 1

    return result


async def import_feed(
    items: list[FlatItem],
    catalog: ShopifyCatalog,
    options: ImportOptions | None = None,
) -> ImportSummary:
    options = options or ImportOptions()
    config = options.grouping_config()
    groups = group_items(items, config)
    summary = ImportSummary(items=len(items), groups=len(groups))
    logger.info(f"Feed: {len(items)} items → {len(groups)} groups (group=\"{config.strategy.value}\")")

    for group in groups:
        try:
            mapped = map_group(group, options.field_map)
            res = await upsert_product_from_group(catalog, mapped)
        except Exception as e:
            summary.errors += 1
            summary.results[group.group_id] = UpsertResult(UpsertStatus.FAILED)
            logger.error(f"Group import failed {group.group_id}: {getattr(e, 'body', None) or e}")
            continue

        summary.results[group.group_id] = res
        if res.status is UpsertStatus.CREATED:
            summary.created += 1
        elif res.status is UpsertStatus.UPDATED:
            summary.updated += 1
        else:
            summary.skipped += 1

    logger.info(
        f"✔ Done. Created: {summary.created}, Updated: {summary.updated}, "
        f"Skipped: {summary.skipped}, Errors: {summary.errors}"
        f"{' (DRY RUN)' if catalog.dry_run else ''}"
    )
    return summary
