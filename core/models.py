# core/models.py
from dataclasses import dataclass, field

CATEGORIES = ("Safety", "Travel", "Furniture", "Clothing", "Feeding", "Bedding")
DEFAULT_CATEGORY = "Safety"

# Ordered: the first group whose keyword appears in an item name wins.
CATEGORY_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Safety", ("car seat", "safety", "monitor")),
    ("Travel", ("stroller", "carrier", "travel")),
    ("Furniture", ("crib", "chair", "table")),
    ("Clothing", ("onesie", "clothes", "outfit")),
    ("Feeding", ("bottle", "feeding", "food")),
    ("Bedding", ("blanket", "swaddle", "bedding")),
)


@dataclass
class ScrapedItem:
    """
    A wishlist entry ready to be offered for import into the registry.
    Prices are plain decimals (0 when the page showed none).
    """
    name: str
    price: float = 0.0
    retailer: str = ""
    link: str = ""
    image: str = ""
    category: str = DEFAULT_CATEGORY


@dataclass
class RawFields:
    """Unnormalized strings read from one item card."""
    name: str = ""
    price_text: str = ""
    link: str = ""
    image: str = ""


@dataclass
class ScrapeResult:
    wishlist_id: str
    source_url: str
    items: list[ScrapedItem] = field(default_factory=list)
    matched_selector: str | None = None
    structural_matches: int = 0
    used_fallback: bool = False
    has_more_pages: bool = False

    @property
    def message(self) -> str:
        return f"Successfully scraped {len(self.items)} items from wishlist"

    @property
    def suspicious(self) -> bool:
        """No items and not a single structural match: the markup probably changed."""
        return not self.items and self.matched_selector is None


@dataclass(frozen=True)
class SiteProfile:
    """
    Scraping policy for one upstream site.

    Every ordered tuple here is a cascade: entries are tried in order and
    the first one that produces something wins. Bump ``version`` whenever
    the selectors are adapted to new upstream markup.
    """
    key: str
    version: str
    retailer: str
    origin: str
    id_patterns: tuple[str, ...]
    url_templates: tuple[str, ...]
    headers: dict[str, str]
    item_selectors: tuple[str, ...]
    name_selectors: tuple[str, ...]
    price_selectors: tuple[str, ...]
    link_selectors: tuple[str, ...]
    image_selectors: tuple[tuple[str, str], ...]
    fallback_selector: str
    pagination_selectors: tuple[str, ...]
    coverage_threshold: int = 20
    category_keywords: tuple[tuple[str, tuple[str, ...]], ...] = CATEGORY_KEYWORDS
    default_category: str = DEFAULT_CATEGORY
    block_markers: tuple[str, ...] = ()
