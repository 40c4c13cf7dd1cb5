"""
Field resolution for flat feed items.

Every logical field ("title", "price", "group", ...) is read through
``resolve``: the custom FieldMap entry for that field, when present,
replaces the default candidate keys. Candidates are tried in order and
the first non-blank value wins.

A key written as ``g:<name>`` is a namespaced lookup and checks
``g:<name>``, ``<name>`` and ``item_<name>`` in that order, so feeds
with or without the Google namespace map the same way. Plain keys also
try their lower- and upper-case spellings.
"""

from typing import Any, Iterable, Optional

from feedsync.feed.models import FieldMap, FlatItem
from feedsync.utils.text import is_blank

NAMESPACE_MARKER = "g:"


def namespaced(item: FlatItem, name: str) -> Any:
    for key in (f"{NAMESPACE_MARKER}{name}", name, f"item_{name}"):
        value = item.get(key)
        if value is not None:
            return value
    return None


def get_by_key(item: FlatItem, key: str) -> Any:
    if not key:
        return None
    if key.startswith(NAMESPACE_MARKER):
        return namespaced(item, key[len(NAMESPACE_MARKER):])
    for candidate in (key, key.lower(), key.upper()):
        value = item.get(candidate)
        if value is not None:
            return value
    return None


def resolve(
    item: FlatItem,
    name: str,
    default_keys: Iterable[str] = (),
    field_map: Optional[FieldMap] = None,
) -> Any:
    keys = (field_map.keys_for(name) if field_map else None) or list(default_keys)
    for key in keys:
        value = get_by_key(item, key)
        if not is_blank(value):
            return value
    return None


def as_text(value: Any) -> Optional[str]:
    """Flatten a resolved value to a string (first non-blank entry for repeated fields)."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        for v in value:
            if not is_blank(v):
                return as_text(v)
        return None
    if isinstance(value, dict):
        return None
    text = str(value).strip()
    return text or None


def resolve_text(
    item: FlatItem,
    name: str,
    default_keys: Iterable[str] = (),
    field_map: Optional[FieldMap] = None,
) -> Optional[str]:
    return as_text(resolve(item, name, default_keys, field_map))
