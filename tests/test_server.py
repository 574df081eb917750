import pytest
import requests
from fastapi.testclient import TestClient

import server
from core import storage
from core.errors import AllSourcesUnreachable
from core.models import ScrapeResult, ScrapedItem
from tests.conftest import WISHLIST_ID, WISHLIST_URL, FakeResponse, grid_card, wishlist_page


@pytest.fixture
def client() -> TestClient:
    return TestClient(server.app)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["platforms"] == ["amazon"]


def test_scrape_requires_url(client):
    resp = client.post("/api/scrape-wishlist", json={})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Wishlist URL is required"


def test_scrape_rejects_unknown_url(client, fake_session_factory):
    session = fake_session_factory({})
    resp = client.post("/api/scrape-wishlist", json={"wishlistUrl": "https://example.com/list/1"})

    assert resp.status_code == 400
    body = resp.json()
    assert body == {"error": "Invalid Amazon wishlist URL", "kind": "invalid_url"}
    assert session.calls == []


def test_scrape_rejects_unknown_platform(client):
    resp = client.post("/api/scrape-wishlist", json={"wishlistUrl": WISHLIST_URL, "platform": "etsy"})
    assert resp.status_code == 400
    assert "etsy" in resp.json()["error"]


def test_scrape_success(client, fake_session_factory):
    page = wishlist_page([grid_card(1), grid_card(2, name="Baby Bathtub")])
    fake_session_factory(
        {f"https://www.amazon.com/hz/wishlist/ls/{WISHLIST_ID}?viewType=list": FakeResponse(200, page)}
    )

    resp = client.post("/api/scrape-wishlist", json={"wishlistUrl": WISHLIST_URL})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Successfully scraped 2 items from wishlist"
    assert body["hasMorePages"] is False
    assert body["wishlistId"] == WISHLIST_ID
    assert body["items"][1] == {
        "name": "Baby Bathtub",
        "price": 2.99,
        "retailer": "Amazon",
        "link": "https://www.amazon.com/dp/B0000000002?coliid=I2",
        "image": "https://m.media-amazon.com/images/I/2.jpg",
        "category": "Safety",
    }


def test_scrape_empty_result_is_still_success(client, monkeypatch):
    monkeypatch.setitem(
        server.SCRAPERS,
        "amazon",
        lambda url: ScrapeResult(wishlist_id="X", source_url="https://www.amazon.com/hz/wishlist/ls/X"),
    )
    resp = client.post("/api/scrape-wishlist", json={"wishlistUrl": WISHLIST_URL})
    assert resp.status_code == 200
    assert resp.json()["items"] == []


def test_scrape_unreachable(client, fake_session_factory):
    fake_session_factory({})
    resp = client.post("/api/scrape-wishlist", json={"wishlistUrl": WISHLIST_URL})

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Failed to scrape wishlist"
    assert body["kind"] == AllSourcesUnreachable.kind
    assert "Make sure the wishlist is public." in body["details"]


def test_scrape_unexpected_error(client, monkeypatch):
    def explode(url):
        raise RuntimeError("parser blew up")

    monkeypatch.setitem(server.SCRAPERS, "amazon", explode)
    resp = client.post("/api/scrape-wishlist", json={"wishlistUrl": WISHLIST_URL})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to scrape wishlist", "details": "parser blew up", "kind": "internal"}


def test_debug_endpoint(client, fake_session_factory):
    page = wishlist_page([grid_card(1)])
    fake_session_factory(
        {f"https://www.amazon.com/hz/wishlist/ls/{WISHLIST_ID}?viewType=list": FakeResponse(200, page)}
    )
    resp = client.post("/api/debug-wishlist", json={"wishlistUrl": WISHLIST_URL})

    assert resp.status_code == 200
    body = resp.json()
    assert body["elementCounts"][".g-item-sortable"] == 1
    assert body["sampleSelectors"]["h3_texts"] == ["Baby Gift Number 1"]


def test_debug_endpoint_validation_and_failure(client, fake_session_factory):
    fake_session_factory({})
    assert client.post("/api/debug-wishlist", json={"wishlistUrl": "https://example.com"}).status_code == 400

    resp = client.post("/api/debug-wishlist", json={"wishlistUrl": WISHLIST_URL})
    assert resp.status_code == 500
    assert resp.json()["error"] == "Debug failed"


def _payload():
    return {
        "items": [
            {
                "name": "Travel Crib",
                "price": 120,
                "category": "Furniture",
                "retailer": "Amazon",
                "link": "https://www.amazon.com/dp/CRIB",
                "image": "https://m.media-amazon.com/images/I/c.jpg",
            },
            {"name": "Socks", "price": 8.5, "category": "Clothing", "retailer": "Amazon", "include": False},
            {"name": "Bibs", "price": -1, "category": "Feeding", "retailer": "Amazon"},
        ]
    }


def test_import_items(client, registry_db):
    resp = client.post("/api/import-items", json=_payload())

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert len(body["ids"]) == 2
    rows = storage.get_items()
    assert [(r["name"], r["price"], r["category"]) for r in rows] == [
        ("Travel Crib", 120.0, "Furniture"),
        ("Bibs", 0.0, "Feeding"),
    ]
    assert rows[1]["image"] is None


def test_import_nothing_selected(client, registry_db):
    payload = {"items": [{"name": "Socks", "include": False}]}
    resp = client.post("/api/import-items", json=payload)
    assert resp.status_code == 400
    assert resp.json()["kind"] == "nothing_selected"

    assert client.post("/api/import-items", json={"items": []}).status_code == 400


def test_import_bad_category(client, registry_db):
    payload = {"items": [{"name": "Rattle", "category": "Toys"}]}
    resp = client.post("/api/import-items", json=payload)
    assert resp.status_code == 400
    assert storage.get_items() == []


def test_import_store_failure(client, monkeypatch):
    def offline(items):
        raise requests.ConnectionError("store offline")

    monkeypatch.setattr(storage, "insert_items", offline)
    resp = client.post("/api/import-items", json=_payload())

    assert resp.status_code == 500
    body = resp.json()
    assert body["kind"] == "import_failed"
    assert "may have failed" in body["error"]
    assert body["details"] == "store offline"


@pytest.mark.parametrize("path", ["/api/scrape-wishlist", "/api/debug-wishlist"])
def test_null_url_is_a_client_error(client, fake_session_factory, path):
    session = fake_session_factory({})
    resp = client.post(path, json={"wishlistUrl": None})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Wishlist URL is required", "kind": "invalid_url"}
    assert session.calls == []


@pytest.mark.parametrize("path", ["/api/scrape-wishlist", "/api/debug-wishlist"])
@pytest.mark.parametrize("value", [12345, ["https://www.amazon.com/hz/wishlist/ls/X"], {"url": "x"}])
def test_non_string_url_is_a_client_error(client, fake_session_factory, path, value):
    session = fake_session_factory({})
    resp = client.post(path, json={"wishlistUrl": value})

    assert resp.status_code == 400
    body = resp.json()
    assert body["kind"] == "invalid_url"
    assert "error" in body
    assert session.calls == []


def test_malformed_import_body_is_a_client_error(client):
    resp = client.post("/api/import-items", json={"items": [{"price": 3}]})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Invalid request body")
