# core/extract.py
"""
Item extraction from a fetched wishlist page.

The page structure is undocumented and changes without notice, so every
lookup here is a cascade taken from the SiteProfile: selectors are tried in
order and the first one that yields something is used. Missing fields are
left empty rather than guessed.
"""
from typing import Any

from bs4 import BeautifulSoup
from bs4.element import Tag

from .logger import get_logger
from .models import RawFields, ScrapeResult, ScrapedItem, SiteProfile
from .normalize import append_unique, build_item

logger = get_logger(__name__)


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _text_or_empty(tag: Tag | None) -> str:
    if tag is None:
        return ""
    return " ".join(tag.get_text(" ", strip=True).split())


def _attr_or_empty(tag: Tag | None, attr: str) -> str:
    if tag is None:
        return ""
    val = tag.get(attr)
    return val.strip() if isinstance(val, str) else ""


def find_item_cards(soup: BeautifulSoup, profile: SiteProfile) -> tuple[str | None, list[Tag]]:
    """Return the first structural selector with matches and its elements."""
    for sel in profile.item_selectors:
        cards = soup.select(sel)
        logger.debug("Trying selector %r: found %d elements", sel, len(cards))
        if cards:
            return sel, cards
    return None, []


def _first_text_or_title(card: Tag, selectors: tuple[str, ...]) -> str:
    for sel in selectors:
        found = card.select_one(sel)
        if found is None:
            continue
        value = _text_or_empty(found) or _attr_or_empty(found, "title")
        if value:
            return value
    return ""


def _first_text(card: Tag, selectors: tuple[str, ...]) -> str:
    for sel in selectors:
        value = _text_or_empty(card.select_one(sel))
        if value:
            return value
    return ""


def _first_attr(card: Tag, pairs) -> str:
    for sel, attr in pairs:
        value = _attr_or_empty(card.select_one(sel), attr)
        if value:
            return value
    return ""


def extract_fields(card: Tag, profile: SiteProfile) -> RawFields:
    """Read the raw name, price, link and image of one item card."""
    name = _first_text_or_title(card, profile.name_selectors)
    if not name:
        return RawFields()

    raw = RawFields(
        name=name,
        price_text=_first_text(card, profile.price_selectors),
        link=_first_attr(card, [(sel, "href") for sel in profile.link_selectors]),
        image=_first_attr(card, profile.image_selectors),
    )
    missing = [f for f in ("price_text", "link", "image") if not getattr(raw, f)]
    if missing:
        logger.debug("Item %r missing fields: %s", name, ", ".join(missing))
    return raw


def extract_fallback_fields(card: Tag) -> RawFields:
    """Fixed field rule for the legacy list layout."""
    return RawFields(
        name=_text_or_empty(card.select_one("h3")) or _text_or_empty(card.select_one(".a-size-base")),
        price_text=(
            _text_or_empty(card.select_one(".a-price .a-offscreen"))
            or _text_or_empty(card.select_one(".a-price"))
        ),
        link=_attr_or_empty(card.select_one("h3 a"), "href"),
        image=_attr_or_empty(card.select_one("img"), "src"),
    )


def _collect(cards: list[Tag], read, profile: SiteProfile) -> list[ScrapedItem]:
    items: list[ScrapedItem] = []
    for card in cards:
        try:
            item = build_item(read(card), profile)
        except Exception as exc:
            logger.warning("Failed to parse an item block: %s", exc)
            continue
        if item is None:
            continue
        if append_unique(items, item):
            logger.debug("Found item %d: %s - $%.2f", len(items), item.name, item.price)
    return items


def detect_more_pages(soup: BeautifulSoup, profile: SiteProfile, item_count: int) -> bool:
    """
    Advisory only: look for pagination or "show more" controls when the
    item count looks short. Further pages are never fetched.
    """
    if item_count >= profile.coverage_threshold:
        return False
    for sel in profile.pagination_selectors:
        if soup.select_one(sel) is not None:
            logger.info("Found pagination indicator: %s", sel)
            return True
    return False


def extract_items(
    html: str,
    profile: SiteProfile,
    wishlist_id: str = "",
    source_url: str = "",
) -> ScrapeResult:
    soup = parse_document(html)
    result = ScrapeResult(wishlist_id=wishlist_id, source_url=source_url)

    selector, cards = find_item_cards(soup, profile)
    if selector is not None:
        result.matched_selector = selector
        result.structural_matches = len(cards)
        result.items = _collect(cards, lambda c: extract_fields(c, profile), profile)
        logger.info(
            "Selector %r matched %d elements, %d items extracted.",
            selector,
            len(cards),
            len(result.items),
        )
    else:
        fallback_cards = soup.select(profile.fallback_selector)
        logger.debug(
            "No structural selector matched; fallback %r found %d elements.",
            profile.fallback_selector,
            len(fallback_cards),
        )
        result.items = _collect(fallback_cards, extract_fallback_fields, profile)
        result.used_fallback = bool(result.items)

    result.has_more_pages = detect_more_pages(soup, profile, len(result.items))
    if result.has_more_pages:
        logger.warning(
            "Wishlist %s may have more items on additional pages; only the first page was imported.",
            wishlist_id or source_url,
        )
    return result


def selector_report(soup: BeautifulSoup, profile: SiteProfile) -> dict[str, Any]:
    """Match counts for every configured selector, for adapting a profile."""
    element_counts: dict[str, int] = {sel: len(soup.select(sel)) for sel in profile.item_selectors}
    element_counts[profile.fallback_selector] = len(soup.select(profile.fallback_selector))
    element_counts["all_divs"] = len(soup.find_all("div"))
    element_counts["all_links"] = len(soup.find_all("a"))
    element_counts["all_images"] = len(soup.find_all("img"))

    field_counts = {
        "name": {sel: len(soup.select(sel)) for sel in profile.name_selectors},
        "price": {sel: len(soup.select(sel)) for sel in profile.price_selectors},
        "link": {sel: len(soup.select(sel)) for sel in profile.link_selectors},
        "image": {f"{sel}@{attr}": len(soup.select(f"{sel}[{attr}]")) for sel, attr in profile.image_selectors},
        "pagination": {sel: len(soup.select(sel)) for sel in profile.pagination_selectors},
    }

    return {
        "elementCounts": element_counts,
        "fieldCounts": field_counts,
        "titleCheck": _text_or_empty(soup.title),
        "sampleSelectors": {
            "h3_texts": [_text_or_empty(t) for t in soup.select("h3")[:5]],
            "link_hrefs": [_attr_or_empty(a, "href") for a in soup.select('a[href*="/dp/"]')[:5]],
            "prices": [_text_or_empty(p) for p in soup.select(".a-price")[:5]],
        },
    }
