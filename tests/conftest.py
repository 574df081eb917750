from pathlib import Path

import pytest
import requests

from core import storage

WISHLIST_ID = "3EXAMPLE1LIST"
WISHLIST_URL = f"https://www.amazon.com/hz/wishlist/ls/{WISHLIST_ID}?ref_=wl_share"


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = ""):
        self.status_code = status_code
        self.text = text

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """
    Stands in for requests.Session. ``routes`` maps URL -> FakeResponse or
    an exception instance to raise; unknown URLs raise ConnectionError.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "timeout": timeout})
        outcome = self.routes.get(url)
        if outcome is None:
            raise requests.ConnectionError(f"connection refused: {url}")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


def grid_card(i: int, name: str | None = None, link: str | None = None) -> str:
    """A desktop-layout card that only matches the .g-item-sortable selector."""
    name = name or f"Baby Gift Number {i}"
    link = link if link is not None else f"/dp/B00000000{i:02d}?coliid=I{i}"
    return f"""
    <li class="a-spacing-none g-item-sortable">
      <div class="a-fixed-left-grid">
        <img src="//m.media-amazon.com/images/I/{i}.jpg" alt="">
        <h3 class="a-size-base"><a class="a-link-normal" href="{link}">{name}</a></h3>
        <span class="a-price"><span class="a-offscreen">${i}.99</span></span>
      </div>
    </li>
    """


def wishlist_page(cards: list[str], extra: str = "") -> str:
    return f"""
    <html>
      <head><title>Amazon.com: Baby Registry Wish List</title></head>
      <body>
        <div id="wishlist-page">
          <ul id="g-items">{''.join(cards)}</ul>
          {extra}
        </div>
      </body>
    </html>
    """


@pytest.fixture
def fake_session_factory(monkeypatch: pytest.MonkeyPatch):
    """Route every requests.Session() created by the fetcher to a FakeSession."""

    def install(routes) -> FakeSession:
        session = FakeSession(routes)
        monkeypatch.setattr(requests, "Session", lambda: session)
        return session

    return install


@pytest.fixture
def registry_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    db_path = tmp_path / "registry.sqlite3"
    monkeypatch.setattr(storage, "DB_PATH", str(db_path))
    storage.ensure_db()
    return db_path
