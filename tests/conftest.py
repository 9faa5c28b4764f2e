import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Iterable, Optional

import pytest
from bs4 import BeautifulSoup

from samehadaku.config import BASE_URL
from samehadaku.document_source import NavigationError, WaitPolicy

EMPTY_PAGE = "<html><body><div class='notfound'>Tidak ada hasil</div></body></html>"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeSession:
    def __init__(self, source: "FakeDocumentSource"):
        self.source = source

    async def render(self, url: str, wait_policy: WaitPolicy, timeout: Optional[float] = None) -> BeautifulSoup:
        self.source.fetches.append(url)
        # Yield to the loop like a real browser round trip
        await asyncio.sleep(0)
        if url in self.source.failures:
            raise NavigationError(url, "timeout")
        html = self.source.pages.get(url, EMPTY_PAGE)
        return BeautifulSoup(html, "html.parser")


class FakeDocumentSource:
    """Serves fixture HTML per URL; unknown URLs render an empty page."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, failures: Iterable[str] = ()):
        self.pages = dict(pages or {})
        self.failures = set(failures)
        self.fetches = []
        self.sessions_opened = 0
        self.sessions_closed = 0

    @asynccontextmanager
    async def session(self):
        self.sessions_opened += 1
        try:
            yield FakeSession(self)
        finally:
            self.sessions_closed += 1

    def count(self, url: str) -> int:
        return self.fetches.count(url)


def listing_card(i: int, genres=("action", "slice-of-life")) -> str:
    classes = " ".join(["animpost"] + [f"genre-{g}" for g in genres])
    return (
        f'<article class="{classes}"><div class="animposx">'
        f'<a href="{BASE_URL}/anime/show-{i}/" title="Show {i}">'
        f'<img src="https://img.example/{i}.jpg"/>'
        f'<div class="type">TV</div><div class="score"> 8.{i % 10}</div>'
        f'<div class="status">Ongoing</div>'
        f'</a></div></article>'
    )


def listing_page(
    items: int = 3,
    next_url: Optional[str] = None,
    prev_url: Optional[str] = None,
    page_numbers: Iterable[int] = (),
    number_href: str = BASE_URL + "/anime/page/{page}/",
) -> str:
    cards = "".join(listing_card(i) for i in range(1, items + 1))
    links = "".join(
        f'<a class="page-numbers" href="{number_href.replace("{page}", str(p))}">{p}</a>'
        for p in page_numbers
    )
    if prev_url:
        links = f'<a class="prev page-numbers" href="{prev_url}">Prev</a>' + links
    if next_url:
        links += f'<a class="next page-numbers" href="{next_url}">Next</a>'
    return f'<html><body><div class="relat">{cards}</div><div class="pagination">{links}</div></body></html>'


def collection_pages(url_template: str, last_page: int, holes: Iterable[int] = (), items: int = 3) -> Dict[str, str]:
    """Pages 1..last_page of a collection, minus the hole pages."""
    holes = set(holes)
    return {
        url_template.replace("{page}", str(p)): listing_page(items)
        for p in range(1, last_page + 1)
        if p not in holes
    }


@pytest.fixture
def clock():
    return FakeClock()
