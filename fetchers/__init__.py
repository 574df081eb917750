# fetchers/__init__.py
from . import amazon

SCRAPERS = {
    "amazon": amazon.scrape_wishlist,
}

DEBUGGERS = {
    "amazon": amazon.debug_wishlist,
}
