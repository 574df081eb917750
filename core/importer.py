# core/importer.py
"""
Review and import of scraped wishlist items.

Scraped items are only proposals: the operator can fix prices and
categories and drop items before the remaining ones are sent to the
registry store as a single batch.

Known gap: a failed batch is reported as ImportBatchFailure but is not
rolled back. Depending on the store, some of the items in the batch may
already have been saved, so the registry should be checked before
resubmitting.
"""
import math
from dataclasses import dataclass, replace
from typing import Callable, List

from . import storage
from .errors import ImportBatchFailure, NothingSelected
from .logger import get_logger
from .models import CATEGORIES, ScrapedItem

logger = get_logger(__name__)


@dataclass
class ImportCandidate:
    item: ScrapedItem
    included: bool = True


class ImportReview:
    """Scraped items with per-item edits and inclusion flags. All included by default."""

    def __init__(self, items: List[ScrapedItem]):
        self.candidates = [ImportCandidate(replace(it)) for it in items]

    def __len__(self) -> int:
        return len(self.candidates)

    def set_price(self, index: int, price) -> None:
        try:
            value = float(price)
        except (TypeError, ValueError):
            value = 0.0
        if not math.isfinite(value) or value < 0:
            value = 0.0
        self.candidates[index].item.price = value

    def set_category(self, index: int, category: str) -> None:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown category {category!r}; expected one of {', '.join(CATEGORIES)}")
        self.candidates[index].item.category = category

    def toggle(self, index: int) -> None:
        c = self.candidates[index]
        c.included = not c.included

    def toggle_all(self) -> None:
        everything_on = all(c.included for c in self.candidates)
        for c in self.candidates:
            c.included = not everything_on

    def selected(self) -> List[ScrapedItem]:
        return [c.item for c in self.candidates if c.included]


def submit(
    review: ImportReview,
    insert: Callable[[List[ScrapedItem]], List[str]] | None = None,
) -> List[str]:
    """Send the included items to the registry store. Returns store-assigned ids."""
    items = review.selected()
    if not items:
        raise NothingSelected("Please select at least one item to import")

    insert = insert or storage.insert_items
    logger.info("Starting import of %d items", len(items))
    try:
        ids = insert(items)
    except Exception as exc:
        logger.error("Import of %d items failed: %s", len(items), exc)
        raise ImportBatchFailure(
            "Some items may have failed to import.", exc
        ) from exc
    logger.info("Successfully imported %d items", len(ids))
    return ids
