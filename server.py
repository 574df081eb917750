"""
Wishlist import service.

Endpoints:
    POST /api/scrape-wishlist - scrape a public wishlist page for review
    POST /api/debug-wishlist  - selector match counts for adapting the scraper
    POST /api/import-items    - save the reviewed items to the registry
    GET  /health
"""
import os
from dataclasses import asdict
from typing import Any, Dict, List

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core import importer
from core.errors import (
    ImportBatchFailure,
    InvalidWishlistUrl,
    NothingSelected,
    WishlistImportError,
)
from core.logger import get_logger
from core.models import DEFAULT_CATEGORY, ScrapedItem
from fetchers import DEBUGGERS, SCRAPERS

logger = get_logger(__name__)

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3001"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]


class ScrapeRequest(BaseModel):
    wishlistUrl: str | None = None
    platform: str = "amazon"


class ImportItem(BaseModel):
    name: str
    price: float = 0.0
    category: str = DEFAULT_CATEGORY
    retailer: str = ""
    link: str = ""
    image: str = ""
    include: bool = True


class ImportRequest(BaseModel):
    items: List[ImportItem] = []


app = FastAPI(
    title="Wishlist Import",
    description="Imports public wishlist items into the gift registry",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _client_error(message: str, kind: str = "invalid_request") -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message, "kind": kind})


def _server_error(message: str, exc: Exception, details: str | None = None) -> JSONResponse:
    kind = exc.kind if isinstance(exc, WishlistImportError) else "internal"
    return JSONResponse(
        status_code=500,
        content={"error": message, "details": str(exc) if details is None else details, "kind": kind},
    )


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{field or 'body'}: {err.get('msg', 'invalid value')}")
    logger.info("Rejected malformed request to %s: %s", request.url.path, "; ".join(problems))
    if any(p.startswith("wishlistUrl") for p in problems):
        return _client_error("Invalid wishlist URL", InvalidWishlistUrl.kind)
    return _client_error("Invalid request body: " + "; ".join(problems))


def _check_request(body: ScrapeRequest, registry: Dict[str, Any]):
    if body.wishlistUrl is None or not body.wishlistUrl.strip():
        return None, _client_error("Wishlist URL is required", InvalidWishlistUrl.kind)
    handler = registry.get(body.platform.strip().lower())
    if handler is None:
        return None, _client_error(f"Unsupported platform '{body.platform}'")
    return handler, None


@app.get("/health")
def health() -> Dict[str, Any]:
    return {"status": "healthy", "platforms": sorted(SCRAPERS)}


@app.post("/api/scrape-wishlist")
def scrape_wishlist(body: ScrapeRequest):
    scraper, error = _check_request(body, SCRAPERS)
    if error is not None:
        return error

    try:
        result = scraper(body.wishlistUrl.strip())
    except InvalidWishlistUrl as exc:
        return _client_error(str(exc), exc.kind)
    except Exception as exc:
        logger.exception("Error scraping wishlist %s: %s", body.wishlistUrl, exc)
        return _server_error("Failed to scrape wishlist", exc)

    return {
        "success": True,
        "items": [asdict(it) for it in result.items],
        "message": result.message,
        "hasMorePages": result.has_more_pages,
        "wishlistId": result.wishlist_id,
        "sourceUrl": result.source_url,
    }


@app.post("/api/debug-wishlist")
def debug_wishlist(body: ScrapeRequest):
    debugger, error = _check_request(body, DEBUGGERS)
    if error is not None:
        return error

    try:
        return debugger(body.wishlistUrl.strip())
    except InvalidWishlistUrl as exc:
        return _client_error(str(exc), exc.kind)
    except Exception as exc:
        logger.exception("Debug of wishlist %s failed: %s", body.wishlistUrl, exc)
        return _server_error("Debug failed", exc)


@app.post("/api/import-items")
def import_items(body: ImportRequest):
    if any(not it.name.strip() for it in body.items):
        return _client_error("Every item needs a name")

    review = importer.ImportReview(
        [
            ScrapedItem(name=it.name.strip(), retailer=it.retailer, link=it.link, image=it.image)
            for it in body.items
        ]
    )
    try:
        for i, it in enumerate(body.items):
            review.set_price(i, it.price)
            review.set_category(i, it.category)
            if not it.include:
                review.toggle(i)
    except ValueError as exc:
        return _client_error(str(exc))

    try:
        ids = importer.submit(review)
    except NothingSelected as exc:
        return _client_error(str(exc), exc.kind)
    except ImportBatchFailure as exc:
        return _server_error(str(exc), exc, str(exc.cause or ""))

    return {
        "success": True,
        "ids": ids,
        "message": f"Successfully imported {len(ids)} items",
    }


if __name__ == "__main__":
    logger.info("Starting wishlist import service on %s:%d", HOST, PORT)
    uvicorn.run(app, host=HOST, port=PORT)
