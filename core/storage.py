# core/storage.py
"""
Registry item store.

Only what the import path needs: create the table, insert a batch of
unclaimed items, and read them back.
"""
import datetime
import os
import sqlite3
import uuid
from typing import Any, Dict, List

import pytz

from .errors import ImportBatchFailure
from .logger import get_logger
from .models import CATEGORIES, ScrapedItem

logger = get_logger(__name__)

DB_PATH = os.getenv("DB_PATH", "data/registry.sqlite3")

_CATEGORY_CHECK = ", ".join(f"'{c}'" for c in CATEGORIES)


def _connect():
    os.makedirs(os.path.dirname(DB_PATH) or ".", exist_ok=True)
    return sqlite3.connect(DB_PATH)


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


def ensure_db():
    with _connect() as con:
        cur = con.cursor()
        cur.execute(
            f"""
            CREATE TABLE IF NOT EXISTS wishlist_items (
                id TEXT PRIMARY KEY,
                created_at TEXT NOT NULL,
                name TEXT NOT NULL,
                price REAL NOT NULL CHECK (price >= 0),
                category TEXT NOT NULL CHECK (category IN ({_CATEGORY_CHECK})),
                retailer TEXT NOT NULL,
                link TEXT NOT NULL,
                image TEXT,
                claimed INTEGER NOT NULL DEFAULT 0,
                claimed_by TEXT,
                claimed_at TEXT,
                claim_message TEXT
            )
        """
        )
        con.commit()


def insert_items(items: List[ScrapedItem]) -> List[str]:
    """
    Insert items as new, unclaimed registry entries in one transaction.
    Returns the assigned ids in input order.
    """
    ensure_db()
    ts = now_utc_iso()
    ids = [str(uuid.uuid4()) for _ in items]
    try:
        with _connect() as con:
            cur = con.cursor()
            for item_id, it in zip(ids, items):
                cur.execute(
                    """
                    INSERT INTO wishlist_items (
                        id, created_at, name, price, category, retailer,
                        link, image, claimed
                    )
                    VALUES (?,?,?,?,?,?,?,?,0)
                """,
                    (
                        item_id,
                        ts,
                        it.name,
                        it.price,
                        it.category,
                        it.retailer,
                        it.link,
                        it.image or None,
                    ),
                )
            con.commit()
    except sqlite3.Error as exc:
        logger.error("Batch insert of %d items failed: %s", len(items), exc)
        raise ImportBatchFailure(f"Registry store rejected the batch: {exc}", exc) from exc

    logger.info("Inserted %d items into registry.", len(ids))
    return ids


def get_items() -> List[Dict[str, Any]]:
    ensure_db()
    with _connect() as con:
        con.row_factory = sqlite3.Row
        cur = con.cursor()
        cur.execute("SELECT * FROM wishlist_items ORDER BY created_at, rowid")
        rows = cur.fetchall()

    out: List[Dict[str, Any]] = []
    for row in rows:
        d = dict(row)
        d["claimed"] = bool(d["claimed"])
        out.append(d)
    return out
