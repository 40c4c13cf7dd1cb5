import re
import unicodedata
from decimal import Decimal, InvalidOperation
from typing import Any, NamedTuple, Optional

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_NON_WORD_RE = re.compile(r"[^\w]+")
_WHITESPACE_RE = re.compile(r"\s+")
_NOT_NUMERIC_RE = re.compile(r"[^\d. -]")
_PREFIX_CURRENCY_RE = re.compile(r"^([A-Z]{3})\s*([\d.]+)", re.IGNORECASE)
_SUFFIX_CURRENCY_RE = re.compile(r"^([\d.]+)\s*([A-Z]{3})", re.IGNORECASE)


class ParsedPrice(NamedTuple):
    value: Optional[Decimal]
    currency: Optional[str]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)):
        return all(is_blank(v) for v in value)
    return str(value).strip() == ""


def pick(*values: Any) -> Any:
    """First value that is not None and not blank."""
    for v in values:
        if not is_blank(v):
            return v
    return None


def strip_accents(s: str) -> str:
    decomposed = unicodedata.normalize("NFD", s)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def slugify(value: Any) -> str:
    s = strip_accents(str(value or "").lower())
    return _NON_ALNUM_RE.sub("-", s).strip("-")


def normalize_text(value: Any) -> str:
    """Lower-case, accent-free, non-word runs collapsed to one space."""
    s = strip_accents(str(value or "").lower())
    return _NON_WORD_RE.sub(" ", s).strip()


def normalize_sku(value: Any) -> str:
    if value is None:
        return ""
    return _WHITESPACE_RE.sub("", str(value).strip()).upper()


def _to_decimal(s: str) -> Optional[Decimal]:
    try:
        d = Decimal(s)
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def to_number(value: Any, default=None):
    """
    Lenient numeric coercion: decimal comma accepted, stray characters dropped.
    Returns ``default`` when nothing numeric is left.
    """
    s = str(value if value is not None else "").replace(",", ".", 1)
    s = _NOT_NUMERIC_RE.sub("", s).strip().replace(" ", "")
    if not s:
        return default
    d = _to_decimal(s)
    return default if d is None else d


def parse_price(raw: Any) -> ParsedPrice:
    """
    Parse feed prices such as "EUR 19,90", "19.90 EUR" or "19.90".

    Unparsable input gives ParsedPrice(None, None), never an exception.
    """
    if is_blank(raw):
        return ParsedPrice(None, None)
    s = str(raw).replace(",", ".", 1).strip()

    m = _PREFIX_CURRENCY_RE.match(s)
    if m:
        return ParsedPrice(_to_decimal(m.group(2)), m.group(1).upper())
    m = _SUFFIX_CURRENCY_RE.match(s)
    if m:
        return ParsedPrice(_to_decimal(m.group(1)), m.group(2).upper())
    return ParsedPrice(to_number(s, None), None)


def format_price(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return f"{value.quantize(Decimal('0.01'))}"


def same_price(a: Any, b: Any) -> bool:
    """Compare two price strings numerically, so "19.9" matches "19.90"."""
    sa = "" if is_blank(a) else str(a).strip()
    sb = "" if is_blank(b) else str(b).strip()
    da, db = _to_decimal(sa), _to_decimal(sb)
    if da is not None and db is not None:
        return da == db
    return sa == sb


def gid_to_num(gid: Any) -> Optional[str]:
    """gid://shopify/ProductVariant/123 -> "123"."""
    if gid is None:
        return None
    return str(gid).rsplit("/", 1)[-1]
