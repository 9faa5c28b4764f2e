"""
Record extraction from rendered Samehadaku pages.

Every page archetype (recent list, anime listing, batch archive, genre filter,
detail page, episode page) has its own extraction function, selected through
the EXTRACTORS table. Extraction never raises for malformed markup: a card
missing its title or its id is skipped, optional fields fall back to empty
values.
"""

import logging
import re
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional

from bs4 import BeautifulSoup, Tag

from samehadaku.config import BASE_URL
from samehadaku.models import (
    AnimeDetail,
    BatchItem,
    DownloadGroup,
    DownloadLink,
    EpisodeDetail,
    EpisodeLink,
    GenreTag,
    HomeFeed,
    ListingItem,
    PageSignal,
    Score,
    StreamLink,
)
from samehadaku.utils import (
    anime_href,
    batch_href,
    episode_href,
    genre_href,
    parse_int,
    slug_from_url,
    strip_non_numeric,
    title_case_slug,
)

logger = logging.getLogger(__name__)

RECENT_ITEM_SELECTOR = ".post-show ul li"
LISTING_ITEM_SELECTOR = "article.animpost, .animpost"
CONTENT_SELECTOR = ".post-show ul li, article.animpost"

NEXT_PAGE_SELECTOR = (
    '.next.page-numbers, .hpage a[rel="next"], .arrow_pag .fa-caret-right, '
    'a.arrow_pag:not(.prev)'
)
PREV_PAGE_SELECTOR = '.prev.page-numbers, .hpage a[rel="prev"], .arrow_pag .fa-caret-left'
PAGE_NUMBER_SELECTOR = '.page-numbers:not(.next):not(.prev), .hpage a, .pagination a'

IGNORED_EMBED_HOSTS = ("facebook", "twitter", "disqus")
TOP_TEN_LIMIT = 10


class Archetype(str, Enum):
    """Page layouts the extractor understands."""
    RECENT = "recent"
    LISTING = "listing"
    BATCH = "batch"
    GENRES = "genres"
    DETAIL = "detail"
    EPISODE = "episode"


class Extraction(NamedTuple):
    records: list
    signal: PageSignal


# ---------------------------------------------------------------------------
# Small markup helpers
# ---------------------------------------------------------------------------

def _text(el: Optional[Tag]) -> str:
    """Whitespace-normalized text content of el ("" for None)."""
    if el is None:
        return ""
    return " ".join(el.get_text(" ").split())


def _attr(el: Optional[Tag], name: str) -> str:
    if el is None:
        return ""
    value = el.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def _first(*candidates: str) -> str:
    """First non-empty candidate."""
    for candidate in candidates:
        if candidate:
            return candidate
    return ""


def _select_first(root: Tag, *selectors: str) -> Optional[Tag]:
    """First element matching the selectors, tried in priority order."""
    for selector in selectors:
        el = root.select_one(selector)
        if el is not None:
            return el
    return None


def _released_on(el: Tag, selector: str) -> str:
    for span in el.select(selector):
        text = _text(span)
        if "Released on" in text:
            return re.sub(r".*Released on.*?:\s*", "", text).strip()
    return ""


def _genre_tags_from_classes(el: Tag, base_url: str) -> List[GenreTag]:
    """Genre markers carried as classes (genre-slice-of-life) on a card."""
    tags = []
    for genre_id in re.findall(r"(?:^|\s)genre-([a-z0-9-]+)", _attr(el, "class")):
        tags.append(GenreTag(
            title=title_case_slug(genre_id),
            genre_id=genre_id,
            href=genre_href(genre_id),
            samehadaku_url=f"{base_url}/genre/{genre_id}/",
        ))
    return tags


def _canonical_url(document: BeautifulSoup, fallback: Optional[str]) -> str:
    canonical = document.select_one('link[rel="canonical"]')
    og_url = document.select_one('meta[property="og:url"]')
    return _first(_attr(canonical, "href"), _attr(og_url, "content"), fallback or "")


def _safely(item_fn: Callable, elements, *args) -> list:
    """Run item_fn on every element, dropping cards that yield nothing or break."""
    records = []
    for el in elements:
        try:
            record = item_fn(el, *args)
        except (AttributeError, TypeError, ValueError) as e:
            logger.debug("Skipping malformed card: %s", e)
            continue
        if record is not None:
            records.append(record)
    return records


# ---------------------------------------------------------------------------
# Listing cards
# ---------------------------------------------------------------------------

def _recent_item(el: Tag, base_url: str) -> Optional[ListingItem]:
    title_el = _select_first(el, ".entry-title a", ".dtla h2 a", "h2 a", "a")
    samehadaku_url = _attr(title_el, "href")
    anime_id = slug_from_url(samehadaku_url)
    title = _first(
        _text(title_el),
        _attr(title_el, "title"),
        _text(el.select_one("h2")),
    )
    if not title or not anime_id:
        return None

    thumb_el = _select_first(el, ".thumb img", "img")
    return ListingItem(
        title=title,
        anime_id=anime_id,
        samehadaku_url=samehadaku_url,
        href=anime_href(anime_id),
        poster=_attr(thumb_el, "src"),
        episodes=strip_non_numeric(_text(el.select_one("author[itemprop='name']"))),
        released_on=_released_on(el, ".dtla span, span"),
    )


def _listing_item(el: Tag, base_url: str) -> Optional[ListingItem]:
    link_el = _select_first(el, ".animposx > a", "a[title]", "a")
    samehadaku_url = _attr(link_el, "href")
    anime_id = slug_from_url(samehadaku_url)
    # Listing cards keep the title in the link's title attribute
    title = _first(
        _attr(link_el, "title"),
        _text(link_el),
        _text(_select_first(el, ".title h2", "h2", ".tt")),
    )
    if not title or not anime_id:
        return None

    return ListingItem(
        title=title,
        anime_id=anime_id,
        samehadaku_url=samehadaku_url,
        href=anime_href(anime_id),
        poster=_attr(el.select_one("img"), "src"),
        type=_text(el.select_one(".type")),
        score=strip_non_numeric(_text(el.select_one(".score")), keep="."),
        status=_text(el.select_one(".status")) or "Unknown",
        genre_list=_genre_tags_from_classes(el, base_url),
    )


def _batch_item(el: Tag, base_url: str) -> Optional[BatchItem]:
    link_el = el.select_one("a")
    img_el = el.select_one("img")
    samehadaku_url = _attr(link_el, "href")
    batch_id = slug_from_url(samehadaku_url)
    title = _first(
        _text(_select_first(el, ".tt", ".title", "h2")),
        _attr(link_el, "title"),
        _attr(img_el, "alt"),
        _text(link_el),
    )
    if not title or not batch_id:
        return None
    return BatchItem(
        title=title,
        batch_id=batch_id,
        samehadaku_url=samehadaku_url,
        href=batch_href(batch_id),
        poster=_attr(img_el, "src"),
    )


def _home_batch_item(el: Tag, base_url: str) -> Optional[BatchItem]:
    link_el = el.select_one("a")
    img_el = el.select_one("img")
    samehadaku_url = _attr(link_el, "href")
    if "/batch/" not in samehadaku_url:
        return None
    batch_id = slug_from_url(samehadaku_url)
    title = _first(_attr(link_el, "title"), _attr(img_el, "alt"), _text(link_el))
    if not title or not batch_id:
        return None
    return BatchItem(
        title=title,
        batch_id=batch_id,
        samehadaku_url=samehadaku_url,
        href=batch_href(batch_id),
        poster=_attr(img_el, "src"),
    )


def _movie_item(el: Tag, base_url: str) -> Optional[ListingItem]:
    link_el = el.select_one("a")
    img_el = el.select_one("img")
    samehadaku_url = _attr(link_el, "href")
    anime_id = slug_from_url(samehadaku_url)
    title = _first(
        _attr(link_el, "title"),
        _attr(img_el, "alt"),
        _attr(img_el, "title"),
        _text(link_el),
    )
    if not title or not anime_id:
        return None
    return ListingItem(
        title=title,
        anime_id=anime_id,
        samehadaku_url=samehadaku_url,
        href=anime_href(anime_id),
        poster=_attr(img_el, "src"),
    )


def _top_ten_item(el: Tag, rank: int) -> Optional[ListingItem]:
    link_el = el.select_one("a")
    img_el = el.select_one("img")
    samehadaku_url = _attr(link_el, "href")
    anime_id = slug_from_url(samehadaku_url)
    title = _first(
        _text(el.select_one(".judul")),
        _attr(link_el, "title"),
        _attr(img_el, "title"),
    )
    if not title or not anime_id:
        return None
    return ListingItem(
        title=title,
        anime_id=anime_id,
        samehadaku_url=samehadaku_url,
        href=anime_href(anime_id),
        poster=_attr(img_el, "src"),
        score=strip_non_numeric(_text(el.select_one(".score, .rating")), keep="."),
        rank=rank,
    )


def _genre_filter_item(el: Tag, base_url: str) -> Optional[GenreTag]:
    title = _text(el)
    genre_id = re.sub(r"\s+", "-", title.lower())
    if not title or not genre_id:
        return None
    return GenreTag(
        title=title,
        genre_id=genre_id,
        href=genre_href(genre_id),
        samehadaku_url=f"{base_url}/genre/{genre_id}/",
    )


# ---------------------------------------------------------------------------
# Pagination signal
# ---------------------------------------------------------------------------

def page_signal(document: BeautifulSoup) -> PageSignal:
    """Read next/prev markers and page-number hints from pagination controls."""
    has_next = bool(
        document.select_one('link[rel="next"]') or document.select_one(NEXT_PAGE_SELECTOR)
    )
    has_prev = bool(
        document.select_one('link[rel="prev"]') or document.select_one(PREV_PAGE_SELECTOR)
    )

    hints = set()
    for el in document.select(PAGE_NUMBER_SELECTOR):
        text = _text(el).replace(",", "").replace(".", "")
        if text.isdigit():
            hints.add(int(text))
        match = re.search(r"/page/(\d+)", _attr(el, "href"))
        if match:
            hints.add(int(match.group(1)))

    # "Page 3 of 120"
    for span in document.select(".pagination span"):
        match = re.search(r"Page\s+\d+\s+of\s+([\d,.]+)", _text(span))
        if match:
            total = match.group(1).replace(",", "").replace(".", "")
            if total.isdigit():
                hints.add(int(total))

    hints.discard(0)
    return PageSignal(has_next=has_next, has_prev=has_prev, page_hints=frozenset(hints))


def has_listing_content(document: BeautifulSoup) -> bool:
    """True when the page carries at least one listing card."""
    return document.select_one(CONTENT_SELECTOR) is not None


# ---------------------------------------------------------------------------
# Archetype extractors
# ---------------------------------------------------------------------------

def _extract_recent(document: BeautifulSoup, url: Optional[str], base_url: str) -> list:
    return _safely(_recent_item, document.select(RECENT_ITEM_SELECTOR), base_url)


def _extract_listing(document: BeautifulSoup, url: Optional[str], base_url: str) -> list:
    return _safely(_listing_item, document.select(LISTING_ITEM_SELECTOR), base_url)


def _extract_batch(document: BeautifulSoup, url: Optional[str], base_url: str) -> list:
    return _safely(_batch_item, document.select("article.animpost"), base_url)


def _extract_genres(document: BeautifulSoup, url: Optional[str], base_url: str) -> list:
    seen = set()
    genres = []
    for tag in _safely(_genre_filter_item, document.select(".filter_act.genres label"), base_url):
        if tag.genre_id not in seen:
            seen.add(tag.genre_id)
            genres.append(tag)
    return genres


def _detail_info(document: BeautifulSoup) -> Dict[str, str]:
    """Label/value pairs of the info block (<span><b>Status</b> Ongoing</span>)."""
    info = {}
    for span in document.select(".spe span"):
        label_el = span.select_one("b")
        if label_el is None:
            continue
        label = _text(label_el).rstrip(":").strip().lower()
        links = span.select("a")
        if links:
            value = ", ".join(t for t in (_text(a) for a in links) if t)
        else:
            value = _text(span).replace(_text(label_el), "", 1).strip().lstrip(":").strip()
        if label and value:
            info[label] = value
    return info


def _lookup(info: Dict[str, str], *labels: str) -> str:
    return _first(*(info.get(label, "") for label in labels))


def _extract_detail(document: BeautifulSoup, url: Optional[str], base_url: str) -> list:
    samehadaku_url = _canonical_url(document, url)
    anime_id = slug_from_url(samehadaku_url)
    title = _first(
        _text(document.select_one(".entry-title, .infox h1")),
        _text(document.select_one("h1")),
    )
    if not title or not anime_id:
        return []

    info = _detail_info(document)

    score = Score(
        value=strip_non_numeric(_text(document.select_one(".rating strong, .score")), keep="."),
        users=strip_non_numeric(_text(document.select_one(".rating .votes")), keep=","),
    )

    synopsis = [t for t in (_text(p) for p in document.select(".entry-content p, .desc p")) if t]

    genre_list = []
    for a in document.select(".genre-info a, .genxed a"):
        genre_title = _text(a)
        link = _attr(a, "href")
        genre_id = slug_from_url(link)
        if genre_title and genre_id:
            genre_list.append(GenreTag(
                title=genre_title,
                genre_id=genre_id,
                href=genre_href(genre_id),
                samehadaku_url=link,
            ))

    episode_list = []
    for li in document.select(".lstepsiode ul li"):
        a = li.select_one(".eps a")
        link = _attr(a, "href")
        episode_id = slug_from_url(link)
        episode_title = _text(a)
        if episode_title and episode_id:
            episode_list.append(EpisodeLink(
                title=episode_title,
                episode_id=episode_id,
                href=episode_href(episode_id),
                samehadaku_url=link,
                number=parse_int(episode_title),
            ))

    batch_list = []
    for a in document.select(".listbatch a, .download-batch a"):
        link = _attr(a, "href")
        batch_id = slug_from_url(link)
        batch_title = _text(a)
        if batch_id and batch_title:
            batch_list.append(BatchItem(
                title=batch_title,
                batch_id=batch_id,
                samehadaku_url=link,
                href=batch_href(batch_id),
            ))

    episodes = strip_non_numeric(_lookup(info, "episodes", "episode", "total episode"))

    return [AnimeDetail(
        title=title,
        anime_id=anime_id,
        samehadaku_url=samehadaku_url,
        poster=_attr(document.select_one(".thumb img, .infox .thumb img"), "src"),
        score=score,
        japanese=_lookup(info, "japanese", "judul jepang"),
        synonyms=_lookup(info, "synonyms", "sinonim"),
        english=_lookup(info, "english", "judul inggris"),
        status=_lookup(info, "status") or "Unknown",
        type=_lookup(info, "type", "tipe"),
        source=_lookup(info, "source", "sumber"),
        duration=_lookup(info, "duration", "durasi"),
        episodes=episodes or None,
        season=_lookup(info, "season", "musim"),
        studios=_lookup(info, "studios", "studio"),
        producers=_lookup(info, "producers", "produser"),
        aired=_lookup(info, "aired", "released", "tayang"),
        synopsis=synopsis,
        genre_list=genre_list,
        episode_list=episode_list,
        batch_list=batch_list,
    )]


def _extract_episode(document: BeautifulSoup, url: Optional[str], base_url: str) -> list:
    samehadaku_url = _canonical_url(document, url)
    episode_id = slug_from_url(samehadaku_url)
    title = _first(_text(document.select_one(".entry-title")), _text(document.select_one("h1")))
    if not title or not episode_id:
        return []

    stream_links = []
    for el in document.select("iframe, embed"):
        src = _attr(el, "src")
        if src and not any(host in src for host in IGNORED_EMBED_HOSTS):
            stream_links.append(StreamLink(server="Embed Server", url=src))

    download_links = []
    for li in document.select(".download-eps ul li"):
        quality = _text(li.select_one("strong"))
        file_format = quality or "Unknown Format"
        for a in li.select("span a"):
            href = _attr(a, "href")
            if href:
                stream_links.append(StreamLink(
                    server=f"{file_format} - {_text(a) or 'Download'}",
                    url=href,
                ))
        if quality:
            links = [
                DownloadLink(host=_text(a), url=_attr(a, "href"))
                for a in li.select("a")
                if _attr(a, "href")
            ]
            download_links.append(DownloadGroup(quality=quality, links=links))

    return [EpisodeDetail(
        title=title,
        episode_id=episode_id,
        samehadaku_url=samehadaku_url,
        stream_links=stream_links,
        download_links=download_links,
    )]


EXTRACTORS: Dict[Archetype, Callable[[BeautifulSoup, Optional[str], str], list]] = {
    Archetype.RECENT: _extract_recent,
    Archetype.LISTING: _extract_listing,
    Archetype.BATCH: _extract_batch,
    Archetype.GENRES: _extract_genres,
    Archetype.DETAIL: _extract_detail,
    Archetype.EPISODE: _extract_episode,
}

PAGINATED_ARCHETYPES = (Archetype.RECENT, Archetype.LISTING, Archetype.BATCH)


def extract(
    document: BeautifulSoup,
    archetype: Archetype,
    url: Optional[str] = None,
    base_url: str = BASE_URL,
) -> Extraction:
    """
    Turn a rendered document into typed records plus pagination hints.

    Args:
        document: Parsed page
        archetype: Which page layout to apply
        url: URL the document was loaded from (fallback canonical link)
        base_url: Site root used to build genre links

    Returns:
        Extraction(records, signal); records never include a card without
        title or id
    """
    records = EXTRACTORS[archetype](document, url, base_url)
    signal = page_signal(document) if archetype in PAGINATED_ARCHETYPES else PageSignal()
    return Extraction(records=records, signal=signal)


def _movie_container(document: BeautifulSoup) -> Optional[Tag]:
    """Closest ancestor of the "Project Movie" heading that holds cards."""
    for heading in document.select("h3, h4"):
        if "Project Movie" not in _text(heading):
            continue
        container = heading.parent
        attempts = 0
        while container is not None and attempts < 4:
            if container.select_one("ul li, article"):
                return container
            container = container.parent
            attempts += 1
        return None
    return None


def extract_home(document: BeautifulSoup, base_url: str = BASE_URL) -> HomeFeed:
    """Extract the four home page sections."""
    recent = _safely(_recent_item, document.select(RECENT_ITEM_SELECTOR), base_url)

    batch = _safely(
        _home_batch_item,
        document.select(".listupd .bs, .bixbox.batchlist article, .widget-batch ul li"),
        base_url,
    )

    movie = []
    container = _movie_container(document)
    if container is not None:
        movie = _safely(_movie_item, container.select("ul li, article"), base_url)

    top10 = []
    for index, el in enumerate(document.select(".topten-animesu ul li")[:TOP_TEN_LIMIT]):
        top10.extend(_safely(_top_ten_item, [el], index + 1))

    return HomeFeed(recent=recent, batch=batch, movie=movie, top10=top10)
