# core/normalize.py
import math
import re

from .logger import get_logger
from .models import (
    CATEGORY_KEYWORDS,
    DEFAULT_CATEGORY,
    RawFields,
    ScrapedItem,
    SiteProfile,
)

logger = get_logger(__name__)

_PRICE_NOISE_RE = re.compile(r"[$€£¥₹,\s]")
_NUMBER_RE = re.compile(r"(\d+\.?\d*)")
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")
_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)


def parse_price(text: str | None) -> float:
    """
    Turn price text like "$1,299.99" into 1299.99.

    Anything without a number in it ("Price not available", "") is 0.
    """
    if not text:
        return 0.0
    cleaned = _PRICE_NOISE_RE.sub("", text)
    m = _NUMBER_RE.search(cleaned)
    if not m:
        return 0.0
    try:
        value = float(m.group(1))
    except ValueError:
        logger.debug("Unparseable price text %r", text)
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def absolutize_url(value: str | None, origin: str) -> str:
    """
    Resolve a link or image reference found on the upstream page.

    "https://..." is kept, "//host/x" becomes "https://host/x", other
    schemes (javascript:, data:) are dropped, any other value is treated
    as a path on ``origin``.
    """
    if not value:
        return ""
    value = value.strip()
    if not value:
        return ""
    if value.startswith("//"):
        return f"https:{value}"
    if _HTTP_RE.match(value):
        return value
    if _SCHEME_RE.match(value):
        logger.debug("Dropping non-http URL %r", value[:80])
        return ""
    if not value.startswith("/"):
        value = "/" + value
    return f"{origin.rstrip('/')}{value}"


def categorize(
    name: str,
    groups: tuple[tuple[str, tuple[str, ...]], ...] = CATEGORY_KEYWORDS,
    default: str = DEFAULT_CATEGORY,
) -> str:
    """
    Guess a registry category from an item name.

    This is a keyword heuristic and will misfile items; the import review
    lets the operator correct it before anything is saved.
    """
    lower = (name or "").lower()
    for category, keywords in groups:
        if any(k in lower for k in keywords):
            return category
    return default


def is_duplicate(item: ScrapedItem, accepted: list[ScrapedItem]) -> bool:
    for existing in accepted:
        if existing.name == item.name:
            return True
        if item.link and existing.link == item.link:
            return True
    return False


def append_unique(accepted: list[ScrapedItem], item: ScrapedItem) -> bool:
    """Append ``item`` unless an earlier item has its name or link. First seen wins."""
    if is_duplicate(item, accepted):
        logger.debug("Skipping duplicate item: %s (%s)", item.name, item.link)
        return False
    accepted.append(item)
    return True


def build_item(raw: RawFields, profile: SiteProfile) -> ScrapedItem | None:
    name = raw.name.strip()
    if not name:
        return None
    return ScrapedItem(
        name=name,
        price=parse_price(raw.price_text),
        retailer=profile.retailer,
        link=absolutize_url(raw.link, profile.origin),
        image=absolutize_url(raw.image, profile.origin),
        category=categorize(name, profile.category_keywords, profile.default_category),
    )
