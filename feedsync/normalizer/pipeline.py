"""
Group mapper: one FeedGroup -> one MappedProduct.

Parent-level fields come from the first item of the group. Variants
without a usable SKU are dropped here, so nothing downstream ever sees
an empty natural key.
"""

import logging
import re
from typing import Any, Iterable, Optional

from feedsync.feed.models import (
    FeedGroup,
    FieldMap,
    FlatItem,
    ImageRef,
    MappedProduct,
    MappedVariant,
    OptionAxis,
)
from feedsync.normalizer.resolver import resolve, resolve_text
from feedsync.utils.text import format_price, normalize_sku, parse_price, slugify

logger = logging.getLogger(__name__)

HANDLE_PREFIX = "gm-"
GROUP_TAG_PREFIX = "GMGroup:"
DEFAULT_OPTION_VALUE = "Default"

# (axis name, logical field, default keys)
OPTION_AXES = (
    ("Colore", "color", ["g:color"]),
    ("Taglia", "size", ["g:size"]),
)

_IMAGE_SPLIT_RE = re.compile(r"[|;,]+|\s+(?=https?://)", re.IGNORECASE)
_ABSOLUTE_URL_RE = re.compile(r"^https?://\S+$", re.IGNORECASE)
_PLACEHOLDER_RE = re.compile(r"\$\{(\w+)\}")


def group_tag(group_id: str) -> str:
    return f"{GROUP_TAG_PREFIX}{group_id}"


def product_handle(group_id: str) -> str:
    return f"{HANDLE_PREFIX}{slugify(group_id)}"


def split_images(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [url for v in value for url in split_images(v)]
    if isinstance(value, dict):
        return []
    parts = (p.strip() for p in _IMAGE_SPLIT_RE.split(str(value)))
    return [p for p in parts if p and _ABSOLUTE_URL_RE.match(p)]


def apply_tag_templates(templates: Iterable[str], values: dict[str, str]) -> list[str]:
    rendered = (
        _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1)) or "", t)
        for t in templates or []
    )
    return [t.strip() for t in rendered if t.strip()]


def _dedupe(values: Iterable[str]) -> list[str]:
    seen = set()
    out = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


def map_variant(
    item: FlatItem,
    axes: list[tuple[str, str, list[str]]],
    field_map: Optional[FieldMap] = None,
) -> Optional[MappedVariant]:
    sku = normalize_sku(resolve_text(item, "sku", ["g:sku", "g:mpn", "g:id"], field_map))
    if not sku:
        return None

    price = parse_price(resolve_text(item, "price", ["g:sale_price", "g:price"], field_map)).value
    compare = parse_price(resolve_text(item, "compare_at_price", ["g:price"], field_map)).value

    # a compare-at below the selling price would read "was cheaper than now"
    compare_at = None
    if compare and (not price or price < compare):
        compare_at = compare

    options = {}
    for position, (_, name, keys) in enumerate(axes, start=1):
        options[f"option{position}"] = resolve_text(item, name, keys, field_map) or DEFAULT_OPTION_VALUE

    return MappedVariant(
        sku=sku,
        price=format_price(price) or "0.00",
        compare_at_price=format_price(compare_at),
        barcode=resolve_text(item, "barcode", ["g:gtin", "g:mpn"], field_map),
        **options,
    )


def map_group(group: FeedGroup, field_map: Optional[FieldMap] = None) -> MappedProduct:
    field_map = field_map or FieldMap()
    group_id = group.group_id
    first = group.variants[0] if group.variants else {}

    vendor = resolve_text(first, "brand", ["g:brand"], field_map) or ""
    mpn = resolve_text(first, "mpn", ["g:mpn"], field_map)
    title = resolve_text(first, "title", ["g:title"], field_map) or f"{vendor} {mpn or group_id}".strip()
    description = resolve_text(first, "description", ["g:description"], field_map) or ""
    category = resolve_text(first, "category", ["g:google_product_category"], field_map) or ""
    category2 = resolve_text(first, "category2", [], field_map) or ""
    category3 = resolve_text(first, "category3", [], field_map) or ""
    type_ = resolve_text(first, "type", ["g:product_highlight", "g:product_type"], field_map) or ""
    product_type = type_ or category

    images = split_images(resolve(first, "image", ["g:image_link"], field_map))
    images += split_images(resolve(first, "additional_images", ["g:additional_image_link"], field_map))

    axes = [
        axis for axis in OPTION_AXES
        if any(resolve_text(v, axis[1], axis[2], field_map) for v in group.variants)
    ]

    variants = []
    for item in group.variants:
        variant = map_variant(item, axes, field_map)
        if variant is None:
            logger.debug("Dropping item without SKU in group %s", group_id)
            continue
        variants.append(variant)

    tags = _dedupe([
        vendor and f"Brand:{vendor}",
        product_type and f"GoogleCat:{product_type}",
        group_tag(group_id),
        *apply_tag_templates(field_map.tags, {
            "brand": vendor,
            "category": category,
            "category2": category2,
            "category3": category3,
            "type": type_,
        }),
    ])

    return MappedProduct(
        group_id=group_id,
        title=title,
        body_html=description,
        vendor=vendor,
        product_type=product_type,
        images=[ImageRef(src=src) for src in images],
        options=[OptionAxis(name=axis[0]) for axis in axes],
        variants=variants,
        tags=tags,
        handle=product_handle(group_id),
    )
