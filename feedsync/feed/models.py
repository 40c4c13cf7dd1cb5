from typing import Any, List, Optional

from pydantic import BaseModel, Field

# FlatItem: one parsed feed record, raw keys as they appear in the feed ("g:id", "title", ...)
FlatItem = dict[str, Any]

INVENTORY_MANAGEMENT = "shopify"
INVENTORY_POLICY = "deny"


class FieldMap(BaseModel):
    """Custom mapping loaded from --map=map.json."""

    fields: dict[str, List[str]] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def from_json(cls, data: dict) -> "FieldMap":
        data = dict(data or {})
        tags = data.pop("tags", None) or []
        fields = {}
        for name, keys in data.items():
            if isinstance(keys, str):
                keys = [keys]
            fields[name] = [str(k) for k in keys or []]
        return cls(fields=fields, tags=[str(t) for t in tags])

    def keys_for(self, name: str) -> Optional[List[str]]:
        return self.fields.get(name) or None


class FeedGroup(BaseModel):
    group_id: str
    variants: List[FlatItem]


class ImageRef(BaseModel):
    src: str


class OptionAxis(BaseModel):
    name: str


class MappedVariant(BaseModel):
    sku: str
    price: str
    compare_at_price: Optional[str] = None
    barcode: Optional[str] = None
    option1: Optional[str] = None
    option2: Optional[str] = None
    inventory_management: str = INVENTORY_MANAGEMENT
    inventory_policy: str = INVENTORY_POLICY

    def to_shopify(self) -> dict:
        return self.model_dump(exclude_none=True)


class MappedProduct(BaseModel):
    group_id: str
    title: str
    body_html: str = ""
    vendor: str = ""
    product_type: str = ""
    images: List[ImageRef] = Field(default_factory=list)
    options: List[OptionAxis] = Field(default_factory=list)
    variants: List[MappedVariant] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    handle: str
    status: str = "active"

    @property
    def tags_line(self) -> str:
        return ", ".join(self.tags)

    @property
    def skus(self) -> List[str]:
        return [v.sku for v in self.variants if v.sku]

    def to_shopify(self) -> dict:
        payload = {
            "title": self.title,
            "body_html": self.body_html,
            "vendor": self.vendor,
            "product_type": self.product_type,
            "images": [img.model_dump() for img in self.images],
            "variants": [v.to_shopify() for v in self.variants],
            "tags": self.tags_line,
            "handle": self.handle,
            "status": self.status,
        }
        if self.options:
            payload["options"] = [o.model_dump() for o in self.options]
        return payload


class InventoryRow(BaseModel):
    sku: str
    quantity: int = 0


class VariantRef(BaseModel):
    """Result of a SKU lookup against the catalog."""

    variant_id: str
    product_id: str
    sku: Optional[str] = None
    inventory_item_id: Optional[str] = None
