import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from feedsync.exceptions import ConfigurationError
from feedsync.feed.models import FeedGroup, FieldMap, FlatItem
from feedsync.normalizer.resolver import resolve_text
from feedsync.utils.text import normalize_text

logger = logging.getLogger(__name__)

PARENT_KEYS = ("g:parent_sku", "g:parent", "g:item_group")


class GroupStrategy(str, Enum):
    AUTO = "auto"
    ITEM_GROUP_ID = "item_group_id"
    MPN = "mpn"
    PARENT = "parent"
    TITLEBRAND = "titlebrand"
    IDPREFIX = "idprefix"
    REGEX = "regex"


@dataclass
class GroupingConfig:
    strategy: GroupStrategy = GroupStrategy.AUTO
    id_separator: str = "-"
    id_parts: int = 2
    id_regex: Optional[str] = None
    field_map: FieldMap = field(default_factory=FieldMap)
    _pattern: Optional[re.Pattern] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        self.strategy = GroupStrategy(self.strategy)
        if self.id_regex:
            try:
                self._pattern = re.compile(self.id_regex)
            except re.error as exc:
                raise ConfigurationError(f"Invalid id regex {self.id_regex!r}: {exc}") from exc

    @property
    def pattern(self) -> Optional[re.Pattern]:
        return self._pattern


def base_from_id(item_id: str, config: GroupingConfig) -> str:
    """
    Parent key from the item id: first capture group of ``id_regex`` if it
    matches, else the first ``id_parts`` segments split on ``id_separator``,
    else the id itself.
    """
    sid = str(item_id or "")
    if config.pattern is not None:
        m = config.pattern.search(sid)
        if m and m.groups() and m.group(1):
            return m.group(1)
    if config.id_parts > 0 and config.id_separator:
        parts = sid.split(config.id_separator)
        if len(parts) >= config.id_parts:
            return config.id_separator.join(parts[: config.id_parts])
    return sid


def compute_group_key(item: FlatItem, config: GroupingConfig) -> Optional[str]:
    fm = config.field_map
    mapped = resolve_text(item, "group", [], fm)
    if mapped:
        return mapped

    item_id = resolve_text(item, "id", ["g:id"], fm) or ""
    strategy = config.strategy

    if strategy is GroupStrategy.ITEM_GROUP_ID:
        return resolve_text(item, "item_group_id", ["g:item_group_id"], fm)
    if strategy is GroupStrategy.MPN:
        return resolve_text(item, "mpn", ["g:mpn"], fm)
    if strategy is GroupStrategy.PARENT:
        return resolve_text(item, "parent", PARENT_KEYS, fm)
    if strategy is GroupStrategy.TITLEBRAND:
        title = resolve_text(item, "title", ["g:title"], fm) or ""
        brand = resolve_text(item, "brand", ["g:brand"], fm) or ""
        return f"{normalize_text(title)}|{normalize_text(brand)}"
    if strategy in (GroupStrategy.IDPREFIX, GroupStrategy.REGEX):
        return base_from_id(item_id, config)

    return (
        resolve_text(item, "item_group_id", ["g:item_group_id"], fm)
        or resolve_text(item, "parent", PARENT_KEYS, fm)
        or resolve_text(item, "mpn", ["g:mpn"], fm)
        or base_from_id(item_id, config)
    )


def group_items(items: Iterable[FlatItem], config: GroupingConfig) -> list[FeedGroup]:
    """Partition items by group key, keeping first-seen order for groups and members."""
    groups: dict[str, list[FlatItem]] = {}
    for item in items:
        key = compute_group_key(item, config)
        if not key:
            # last resort: the item is its own group
            key = resolve_text(item, "id", ["g:id"], config.field_map) or ""
        groups.setdefault(key, []).append(item)
    return [FeedGroup(group_id=key, variants=variants) for key, variants in groups.items()]
