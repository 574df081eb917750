import datetime
import logging
import os
import re
from pathlib import Path
from typing import Any

import requests

from core.errors import AllSourcesUnreachable, InvalidWishlistUrl
from core.extract import extract_items, parse_document, selector_report
from core.logger import get_logger
from core.models import ScrapeResult, SiteProfile

logger = get_logger(__name__)

BASE_URL = "https://www.amazon.com"
DEBUG_DIR = Path(os.getenv("DEBUG_DIR", "data/debug_dumps"))

# Upper bound for a single candidate fetch, in seconds
AMAZON_FETCH_TIMEOUT = float(os.getenv("AMAZON_FETCH_TIMEOUT", "30"))

UNREACHABLE_HINT = "Make sure the wishlist is public."

AMAZON = SiteProfile(
    key="amazon",
    version="2024.09",
    retailer="Amazon",
    origin=BASE_URL,
    id_patterns=(
        r"/hz/wishlist/ls/([A-Z0-9]+)",
        r"/gp/registry/wishlist/([A-Z0-9]+)",
        r"/gp/registry/list/([A-Z0-9]+)",
        r"wishlist/([A-Z0-9]+)",
    ),
    url_templates=(
        BASE_URL + "/hz/wishlist/ls/{id}?viewType=list",
        BASE_URL + "/hz/wishlist/ls/{id}",
        BASE_URL + "/gp/registry/wishlist/{id}",
        BASE_URL + "/hz/wishlist/ls/{id}?type=wishlist",
    ),
    headers={
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
        ),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.5",
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    },
    item_selectors=(
        "[data-itemid]",
        '[id^="item_"]',
        ".g-item-sortable",
        "[data-id]",
        ".a-fixed-left-grid-col.a-col-right",
    ),
    name_selectors=(
        '[data-cy="item-title"]',
        "h3 a",
        ".a-size-base-plus",
        ".a-size-base",
        ".s-size-mini .a-color-base",
        "a[title]",
    ),
    price_selectors=(
        '[data-cy="item-price"]',
        ".a-price-whole",
        ".a-price .a-offscreen",
        ".a-price-range .a-offscreen",
        ".a-price-fractional",
    ),
    link_selectors=(
        '[data-cy="item-title"]',
        "h3 a",
        'a[href*="/dp/"]',
        'a[href*="/gp/product/"]',
    ),
    image_selectors=(
        ("img", "src"),
        ("img", "data-src"),
        ("img", "data-lazy"),
        (".s-image", "src"),
    ),
    fallback_selector="li.awl-item-wrapper",
    pagination_selectors=(
        ".a-pagination",
        '[data-cy="pagination"]',
        'a[aria-label*="Next"]',
        'button[aria-label*="more"]',
        '.a-button[data-action="a-show-more"]',
    ),
    coverage_threshold=20,
    block_markers=(
        "robot check",
        "enter the characters you see below",
        "/errors/validatecaptcha",
        "to discuss automated access to amazon data",
        "type the characters you see in this image",
    ),
)


class AmazonError(Exception):
    """A single candidate fetch returned something unusable."""


def _sanitize(name: str) -> str:
    """Normalize arbitrary wishlist IDs to be filesystem-safe."""
    return "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in name)


def _dump_html(wishlist_id: str, html: str) -> None:
    """Write HTML to a timestamped file when DEBUG logging is enabled."""
    if not logger.isEnabledFor(logging.DEBUG):
        return

    timestamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d_%H%M%S")
    path = DEBUG_DIR / f"amazon_{_sanitize(wishlist_id or 'unknown')}_{timestamp}.html"
    try:
        DEBUG_DIR.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
        logger.debug("Dumped Amazon HTML to %s", path)
    except OSError as exc:
        logger.debug("Failed to dump Amazon HTML to %s: %s", path, exc)


def extract_wishlist_id(url: str, profile: SiteProfile = AMAZON) -> str:
    """
    Pull the wishlist ID out of a user supplied URL.

    Examples of accepted inputs:
      - https://www.amazon.com/hz/wishlist/ls/XXXXXXXXXXXX
      - https://www.amazon.com/gp/registry/wishlist/XXXXXXXXXXXX
      - https://www.amazon.com/gp/registry/list/XXXXXXXXXXXX
    """
    if not url or not url.strip():
        raise InvalidWishlistUrl("Wishlist URL is required")
    for pattern in profile.id_patterns:
        m = re.search(pattern, url, re.IGNORECASE)
        if m:
            return m.group(1)
    raise InvalidWishlistUrl(f"Invalid {profile.retailer} wishlist URL")


def candidate_urls(wishlist_id: str, profile: SiteProfile = AMAZON) -> list[str]:
    """Fetch URLs for a wishlist ID, most likely to work first."""
    return [t.format(id=wishlist_id) for t in profile.url_templates]


def resolve_wishlist_url(url: str, profile: SiteProfile = AMAZON) -> tuple[str, list[str]]:
    wishlist_id = extract_wishlist_id(url, profile)
    return wishlist_id, candidate_urls(wishlist_id, profile)


def looks_like_captcha_or_block(html: str, profile: SiteProfile = AMAZON) -> bool:
    """Heuristically detect Robot Check / CAPTCHA / blocked pages."""
    lower = html.lower()
    return any(marker in lower for marker in profile.block_markers)


def fetch_page_raw(
    session: requests.Session,
    url: str,
    profile: SiteProfile = AMAZON,
    timeout: float = AMAZON_FETCH_TIMEOUT,
) -> str:
    """Fetch a single wishlist page, raising on anything that is not a usable page."""
    logger.debug("Fetching Amazon page: %s", url)
    resp = session.get(url, headers=profile.headers, timeout=timeout)
    resp.raise_for_status()
    text = resp.text
    if looks_like_captcha_or_block(text, profile):
        raise AmazonError("CAPTCHA/robot check page")
    return text


def fetch_first(
    urls: list[str],
    session: requests.Session | None = None,
    profile: SiteProfile = AMAZON,
    timeout: float = AMAZON_FETCH_TIMEOUT,
) -> tuple[str, str]:
    """
    Try each candidate URL once, in order, and return (html, url) for the
    first one that works. Raises AllSourcesUnreachable when none does.
    """
    own_session = session is None
    if own_session:
        session = requests.Session()

    attempts: list[tuple[str, str]] = []
    try:
        for url in urls:
            logger.info("Trying URL: %s", url)
            try:
                html = fetch_page_raw(session, url, profile, timeout)
            except (requests.RequestException, AmazonError) as exc:
                logger.warning("Failed to fetch from %s: %s", url, exc)
                attempts.append((url, str(exc)))
                continue
            logger.info("Successfully fetched wishlist from: %s", url)
            return html, url
    finally:
        if own_session:
            session.close()

    raise AllSourcesUnreachable(
        f"Could not fetch wishlist from any URL format (requests failed or were blocked). {UNREACHABLE_HINT}",
        attempts,
    )


def scrape_wishlist(
    url: str,
    session: requests.Session | None = None,
    profile: SiteProfile = AMAZON,
) -> ScrapeResult:
    """
    Scrape the first page of a public Amazon wishlist.

    Nothing is persisted; the caller decides which items to import.
    """
    wishlist_id, urls = resolve_wishlist_url(url, profile)
    logger.info("Trying %d URL formats for wishlist %s", len(urls), wishlist_id)

    html, source_url = fetch_first(urls, session, profile)
    result = extract_items(html, profile, wishlist_id=wishlist_id, source_url=source_url)

    if result.suspicious:
        logger.warning(
            "No item elements found for wishlist %s at %s; markup may have changed. Body preview: %s",
            wishlist_id,
            source_url,
            html[:1000],
        )
        _dump_html(wishlist_id, html)
    elif not result.items:
        logger.warning(
            "Selector %r matched %d elements on wishlist %s but none had a name.",
            result.matched_selector,
            result.structural_matches,
            wishlist_id,
        )

    logger.info("Extracted %d Amazon items for wishlist %s.", len(result.items), wishlist_id)
    return result


def debug_wishlist(
    url: str,
    session: requests.Session | None = None,
    profile: SiteProfile = AMAZON,
) -> dict[str, Any]:
    """Selector match counts and samples for the canonical list view."""
    wishlist_id, urls = resolve_wishlist_url(url, profile)
    html, test_url = fetch_first(urls[:1], session, profile)
    soup = parse_document(html)

    report = {
        "url": test_url,
        "wishlistId": wishlist_id,
        "profileVersion": profile.version,
        "totalHTML": len(html),
        "hasItems": "item" in html or "wishlist" in html,
    }
    report.update(selector_report(soup, profile))
    return report
