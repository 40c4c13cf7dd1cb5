import json
import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path

import requests

from feedsync.exceptions import EmptyFeedError, FeedFormatError
from feedsync.feed.models import FieldMap, FlatItem

logger = logging.getLogger(__name__)

FEED_TIMEOUT = 120
_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

# namespace uri -> key prefix
NAMESPACES = {
    "http://base.google.com/ns/1.0": "g:",
    "http://base.google.com/cns/1.0": "c:",
}
ATOM_NS = "http://www.w3.org/2005/Atom"


def load_feed_text(source: str) -> str:
    """Read a feed from a local path or an http(s) URL."""
    if _URL_RE.match(source):
        resp = requests.get(source, timeout=FEED_TIMEOUT)
        resp.raise_for_status()
        return resp.text
    return Path(source).read_text(encoding="utf-8")


def load_field_map(path: str | None) -> FieldMap:
    if not path:
        return FieldMap()
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    logger.info(f"Mapping file: {path}")
    return FieldMap.from_json(data)


def _key(tag: str) -> str:
    if tag.startswith("{"):
        uri, local = tag[1:].split("}", 1)
        return f"{NAMESPACES.get(uri, '')}{local}"
    return tag


def _element_value(el: ET.Element):
    children = list(el)
    if not children:
        return (el.text or "").strip()
    return _element_to_dict(el)


def _element_to_dict(el: ET.Element) -> FlatItem:
    out: FlatItem = {}
    for child in el:
        key = _key(child.tag)
        value = _element_value(child)
        if key in out:
            if not isinstance(out[key], list):
                out[key] = [out[key]]
            out[key].append(value)
        else:
            out[key] = value
    # Atom <link href="..."/>
    if "link" in out and out["link"] == "":
        href = el.find(f"{{{ATOM_NS}}}link")
        if href is not None and href.get("href"):
            out["link"] = href.get("href")
    return out


def _xml_items(text: str) -> list[FlatItem]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise FeedFormatError(f"Feed is not valid XML: {e}") from e

    if _key(root.tag) == "item":
        elements = [root]
    else:
        elements = root.findall("./channel/item") or root.findall("./item")
        if not elements:
            elements = root.findall(f"./{{{ATOM_NS}}}entry") or root.findall(".//item")
    return [_element_to_dict(el) for el in elements]


def _json_items(text: str) -> list[FlatItem]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise FeedFormatError(f"Feed is not valid JSON: {e}") from e
    if isinstance(data, dict):
        data = data.get("items") or data.get("item") or []
    return [item for item in data if isinstance(item, dict)]


def parse_feed(text: str) -> list[FlatItem]:
    """
    Turn feed text into flat items. JSON (list, or object with "items")
    and RSS / Atom XML are accepted. Google namespaced elements keep a
    "g:" prefix; repeated elements become lists.
    """
    stripped = (text or "").lstrip("\ufeff").strip()
    items = _json_items(stripped) if stripped[:1] in ("[", "{") else _xml_items(stripped)
    if not items:
        raise EmptyFeedError("No <item> found in feed")
    return items


def fetch_feed(source: str) -> list[FlatItem]:
    return parse_feed(load_feed_text(source))
