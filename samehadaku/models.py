"""
Data models for the Samehadaku scraper.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional, Union

from samehadaku.utils import normalize_search_term


class CollectionKind(str, Enum):
    """Logical paginated listings on the site."""
    RECENT = "recent"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    POPULAR = "popular"
    MOVIES = "movies"
    GENRE = "genre"
    SEARCH = "search"

    @property
    def is_filtered(self) -> bool:
        return self in (CollectionKind.GENRE, CollectionKind.SEARCH)


@dataclass(frozen=True)
class CollectionQuery:
    """One page of one logical collection."""
    kind: CollectionKind
    page: int = 1
    filter: Optional[str] = None

    def __post_init__(self):
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.kind.is_filtered and not (self.filter or "").strip():
            raise ValueError(f"{self.kind.value} collection requires a filter")

    @property
    def normalized_filter(self) -> Optional[str]:
        """Filter as used in both the collection key and the page URL."""
        if self.kind is CollectionKind.GENRE:
            return self.filter.strip().lower()
        if self.kind is CollectionKind.SEARCH:
            return normalize_search_term(self.filter)
        return None

    @property
    def collection_key(self) -> str:
        """Stable key shared by every page of the same (kind, filter) pair."""
        if self.kind is CollectionKind.GENRE:
            return f"genre-{self.normalized_filter}"
        if self.kind is CollectionKind.SEARCH:
            return f"search:{self.normalized_filter}"
        return self.kind.value

    @property
    def cache_key(self) -> str:
        return f"page:{self.collection_key}:{self.page}"


@dataclass
class GenreTag:
    title: str
    genre_id: str
    href: str
    samehadaku_url: str


@dataclass
class ListingItem:
    """Anime card on a listing page (recent, ongoing, search, ...)."""
    title: str
    anime_id: str
    samehadaku_url: str
    href: str
    poster: str = ""
    episodes: str = ""
    released_on: str = ""
    type: str = ""
    score: str = ""
    status: str = ""
    genre_list: List[GenreTag] = field(default_factory=list)
    rank: Optional[int] = None


@dataclass
class BatchItem:
    title: str
    batch_id: str
    samehadaku_url: str
    href: str
    poster: str = ""


@dataclass
class Score:
    value: str = ""
    users: str = ""


@dataclass
class EpisodeLink:
    title: str
    episode_id: str
    href: str
    samehadaku_url: str
    number: Optional[int] = None


@dataclass
class AnimeDetail:
    """Anime detail page."""
    title: str
    anime_id: str
    samehadaku_url: str
    poster: str = ""
    score: Score = field(default_factory=Score)
    japanese: str = ""
    synonyms: str = ""
    english: str = ""
    status: str = "Unknown"
    type: str = ""
    source: str = ""
    duration: str = ""
    episodes: Optional[str] = None
    season: str = ""
    studios: str = ""
    producers: str = ""
    aired: str = ""
    synopsis: List[str] = field(default_factory=list)
    genre_list: List[GenreTag] = field(default_factory=list)
    episode_list: List[EpisodeLink] = field(default_factory=list)
    batch_list: List[BatchItem] = field(default_factory=list)


@dataclass
class StreamLink:
    server: str
    url: str


@dataclass
class DownloadLink:
    host: str
    url: str


@dataclass
class DownloadGroup:
    quality: str
    links: List[DownloadLink] = field(default_factory=list)


@dataclass
class EpisodeDetail:
    """Episode page with stream and download links."""
    title: str
    episode_id: str
    samehadaku_url: str
    stream_links: List[StreamLink] = field(default_factory=list)
    download_links: List[DownloadGroup] = field(default_factory=list)


@dataclass
class HomeFeed:
    """Home page aggregate."""
    recent: List[ListingItem] = field(default_factory=list)
    batch: List[BatchItem] = field(default_factory=list)
    movie: List[ListingItem] = field(default_factory=list)
    top10: List[ListingItem] = field(default_factory=list)


ExtractionRecord = Union[ListingItem, BatchItem, GenreTag, AnimeDetail, EpisodeDetail]


@dataclass(frozen=True)
class PageSignal:
    """Pagination hints observed on one rendered page."""
    has_next: bool = False
    has_prev: bool = False
    page_hints: FrozenSet[int] = frozenset()

    def estimate_total(self, page: int) -> int:
        """Best in-page guess at the total page count."""
        if self.page_hints:
            return max(self.page_hints)
        if self.has_next:
            return page + 10
        return page


@dataclass(frozen=True)
class PaginationBounds:
    """Resolved last page of a collection."""
    collection_key: str
    last_known_good_page: int
    resolved_at: float


@dataclass(frozen=True)
class Pagination:
    current_page: int
    has_prev_page: bool
    prev_page: Optional[int]
    has_next_page: bool
    next_page: Optional[int]
    total_pages: int

    @classmethod
    def build(cls, page: int, has_next: bool, has_prev: bool, total_pages: int) -> "Pagination":
        """
        Derive the caller-facing pagination block.

        A next page is never reported together with total_pages == page.
        """
        total = max(total_pages, page)
        if has_next and total == page:
            total = page + 1
        has_prev_page = has_prev or page > 1
        return cls(
            current_page=page,
            has_prev_page=has_prev_page,
            prev_page=page - 1 if has_prev_page else None,
            has_next_page=has_next,
            next_page=page + 1 if has_next else None,
            total_pages=total,
        )


@dataclass
class ScrapeResult:
    """Records plus pagination for one query."""
    records: Union[List[ExtractionRecord], HomeFeed]
    pagination: Optional[Pagination]
    message: str = "Successfully fetched data"
    ok: bool = True
