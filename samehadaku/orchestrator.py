"""
Main orchestrator for the Samehadaku scraper.
Builds page URLs per collection, runs fetch + extraction, memoizes results and
keeps total-page bounds fresh in the background.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set
from urllib.parse import quote

from samehadaku.config import ScraperConfig
from samehadaku.document_source import DocumentSource, NavigationError, WaitPolicy
from samehadaku.extractor import Archetype, Extraction, extract, extract_home
from samehadaku.models import (
    AnimeDetail,
    CollectionKind,
    CollectionQuery,
    EpisodeDetail,
    HomeFeed,
    PageSignal,
    Pagination,
    ScrapeResult,
)
from samehadaku.resilience.cache import TTLCache
from samehadaku.resilience.pagination import PaginationResolver, Strategy, bounds_cache_key

logger = logging.getLogger(__name__)

LIST_SELECTOR = "article.animpost, .animpost, .post-show ul li"
HOME_BATCH_FALLBACK_LIMIT = 5


@dataclass(frozen=True)
class CollectionPolicy:
    """How one collection kind is fetched, extracted and bounded."""
    first_page_path: str
    page_path: str
    archetype: Archetype
    strategy: Strategy


# {filter} is replaced by the URL-quoted genre id or search term, {page} by the page number
POLICIES: Dict[CollectionKind, CollectionPolicy] = {
    CollectionKind.RECENT: CollectionPolicy(
        "/", "/page/{page}/", Archetype.RECENT, Strategy.EXPONENTIAL,
    ),
    CollectionKind.ONGOING: CollectionPolicy(
        "/anime/?status=ongoing&order=update",
        "/anime/page/{page}/?status=ongoing&order=update",
        Archetype.LISTING, Strategy.EXPONENTIAL,
    ),
    CollectionKind.COMPLETED: CollectionPolicy(
        "/anime/?status=completed&order=latest",
        "/anime/page/{page}/?status=completed&order=latest",
        Archetype.LISTING, Strategy.EXPONENTIAL,
    ),
    CollectionKind.POPULAR: CollectionPolicy(
        "/anime/?order=popular", "/anime/page/{page}/?order=popular",
        Archetype.LISTING, Strategy.EXPONENTIAL,
    ),
    CollectionKind.MOVIES: CollectionPolicy(
        "/anime/?type=movie", "/anime/page/{page}/?type=movie",
        Archetype.LISTING, Strategy.EXPONENTIAL,
    ),
    CollectionKind.GENRE: CollectionPolicy(
        "/genre/{filter}/", "/genre/{filter}/page/{page}/",
        Archetype.LISTING, Strategy.SEQUENTIAL,
    ),
    CollectionKind.SEARCH: CollectionPolicy(
        "/page/1/?s={filter}", "/page/{page}/?s={filter}",
        Archetype.LISTING, Strategy.SEQUENTIAL,
    ),
}


class ScrapeOrchestrator:
    """Coordinates document source, extractor, cache and pagination resolver."""

    def __init__(
        self,
        source: DocumentSource,
        cache: TTLCache,
        resolver: Optional[PaginationResolver] = None,
        config: Optional[ScraperConfig] = None,
    ):
        """
        Initialize orchestrator with its shared collaborators.

        Args:
            source: DocumentSource for live page renders
            cache: Shared TTLCache (responses and pagination bounds)
            resolver: PaginationResolver, built on the same source/cache if None
            config: ScraperConfig instance, uses defaults if None
        """
        self.config = config or ScraperConfig()
        self.source = source
        self.cache = cache
        self.resolver = resolver or PaginationResolver(
            source,
            cache,
            config=self.config.resolver,
            cache_config=self.config.cache,
            browser_config=self.config.browser,
        )
        self._background: Set[asyncio.Task] = set()
        self._scheduled: Set[str] = set()

    # ------------------------------------------------------------------
    # URLs and policies
    # ------------------------------------------------------------------

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    def _wait(self, selector: Optional[str]) -> WaitPolicy:
        return WaitPolicy(
            load="domcontentloaded",
            selector=selector,
            selector_timeout=self.config.browser.selector_timeout,
        )

    def url_template(self, query: CollectionQuery) -> str:
        """Page URL of the query's collection with a "{page}" placeholder."""
        policy = POLICIES[query.kind]
        path = policy.page_path
        if query.normalized_filter is not None:
            path = path.replace("{filter}", quote(query.normalized_filter, safe=""))
        return f"{self.base_url}{path}"

    def page_url(self, query: CollectionQuery) -> str:
        policy = POLICIES[query.kind]
        if query.page == 1:
            path = policy.first_page_path
            if query.normalized_filter is not None:
                path = path.replace("{filter}", quote(query.normalized_filter, safe=""))
            return f"{self.base_url}{path}"
        return self.url_template(query).replace("{page}", str(query.page))

    def _ttl_for(self, kind: CollectionKind) -> float:
        if kind is CollectionKind.SEARCH:
            return self.config.cache.search_ttl
        return self.config.cache.list_ttl

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def _render_and_extract(self, url: str, archetype: Archetype, selector: str) -> Extraction:
        async with self.source.session() as session:
            document = await session.render(url, self._wait(selector))
        return extract(document, archetype, url=url, base_url=self.base_url)

    async def get_collection(self, query: CollectionQuery) -> ScrapeResult:
        """
        Fetch one page of a collection.

        Args:
            query: CollectionQuery (kind, page, filter)

        Returns:
            ScrapeResult with records and pagination; a neutral empty result
            when the page could not be loaded
        """
        cached = self.cache.get(query.cache_key)
        if cached is not None:
            return cached

        policy = POLICIES[query.kind]
        url = self.page_url(query)
        try:
            extraction = await self._render_and_extract(url, policy.archetype, LIST_SELECTOR)
        except NavigationError as e:
            logger.warning("Error scraping %s: %s", url, e)
            return self._fallback(query.page)
        except Exception:
            logger.exception("Unexpected error scraping %s", url)
            return self._fallback(query.page)

        records = extraction.records
        signal = extraction.signal
        total = self._enrich_total(query, signal, has_content=bool(records))
        result = ScrapeResult(
            records=records,
            pagination=Pagination.build(query.page, signal.has_next, signal.has_prev, total),
        )
        self.cache.set(query.cache_key, result, ttl=self._ttl_for(query.kind))
        return result

    def _fallback(self, page: int) -> ScrapeResult:
        return ScrapeResult(
            records=[],
            pagination=Pagination.build(page, has_next=False, has_prev=False, total_pages=page),
            message="Failed to fetch data",
            ok=False,
        )

    def _is_trustworthy(self, bound: int, page: int, signal: PageSignal, has_content: bool) -> bool:
        if has_content and bound < page:
            return False
        if signal.has_next and bound <= page:
            return False
        return True

    def _enrich_total(
        self,
        query: CollectionQuery,
        signal: PageSignal,
        has_content: bool,
        provisional: Optional[int] = None,
    ) -> int:
        """
        Pick the total page count to report for this page.

        A cached bound that agrees with what the page shows is used as is.
        Otherwise, when a next page exists, a provisional estimate is returned
        and the bound is resolved in the background.
        """
        page = query.page
        key = query.collection_key
        bounds = self.resolver.cached_bounds(key)
        if bounds is not None:
            if self._is_trustworthy(bounds.last_known_good_page, page, signal, has_content):
                return bounds.last_known_good_page
            logger.info(
                "Cached total pages for %s (%d) contradicts page %d, refreshing",
                key, bounds.last_known_good_page, page,
            )
            self.cache.delete(bounds_cache_key(key))

        estimate = signal.estimate_total(page)
        if not signal.has_next:
            return estimate

        if has_content:
            self._schedule_resolution(query, start_page=page, known_good=page)
        else:
            self._schedule_resolution(query)
        if provisional is not None:
            return provisional
        return max(estimate, page + self.config.resolver.provisional_page_span)

    def _schedule_resolution(self, query: CollectionQuery, start_page: int = 1, known_good: int = 0):
        """Start a fire-and-forget bound resolution unless one is already running."""
        key = query.collection_key
        if key in self._scheduled or self.resolver.is_resolving(key):
            return
        self._scheduled.add(key)
        policy = POLICIES[query.kind]
        task = asyncio.create_task(
            self._resolve_in_background(
                key, self.url_template(query), policy.strategy, start_page, known_good
            )
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _resolve_in_background(
        self, key: str, url_template: str, strategy: Strategy, start_page: int, known_good: int = 0
    ):
        try:
            bounds = await self.resolver.resolve(key, url_template, strategy, start_page, known_good)
            logger.info("Updated cache for %s: %d", key, bounds.last_known_good_page)
        except Exception:
            logger.exception("Background total-page resolution failed for %s", key)
        finally:
            self._scheduled.discard(key)

    async def drain(self):
        """Wait for every background resolution to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def get_recent(self, page: int = 1) -> ScrapeResult:
        return await self.get_collection(CollectionQuery(CollectionKind.RECENT, page))

    async def get_ongoing(self, page: int = 1) -> ScrapeResult:
        return await self.get_collection(CollectionQuery(CollectionKind.ONGOING, page))

    async def get_completed(self, page: int = 1) -> ScrapeResult:
        return await self.get_collection(CollectionQuery(CollectionKind.COMPLETED, page))

    async def get_popular(self, page: int = 1) -> ScrapeResult:
        return await self.get_collection(CollectionQuery(CollectionKind.POPULAR, page))

    async def get_movies(self, page: int = 1) -> ScrapeResult:
        return await self.get_collection(CollectionQuery(CollectionKind.MOVIES, page))

    async def get_by_genre(self, genre_id: str, page: int = 1) -> ScrapeResult:
        return await self.get_collection(CollectionQuery(CollectionKind.GENRE, page, genre_id))

    async def search(self, term: str, page: int = 1) -> ScrapeResult:
        return await self.get_collection(CollectionQuery(CollectionKind.SEARCH, page, term))

    # ------------------------------------------------------------------
    # Home and genres
    # ------------------------------------------------------------------

    async def _batch_fallback(self, session) -> list:
        """Batch section from the batch archive when the home page has none."""
        url = f"{self.base_url}/batch/"
        logger.info("Checking %s for fallback...", url)
        try:
            document = await session.render(url, self._wait("article.animpost"))
        except NavigationError as e:
            logger.warning("Failed to fetch batch list fallback: %s", e)
            return []
        batches = extract(document, Archetype.BATCH, url=url, base_url=self.base_url).records
        logger.info("Fallback batch found: %d", len(batches))
        return batches[:HOME_BATCH_FALLBACK_LIMIT]

    async def get_home(self) -> ScrapeResult:
        """
        Fetch the home page sections.

        Returns:
            ScrapeResult whose records is a HomeFeed; pagination follows the
            recent collection
        """
        cached = self.cache.get("home")
        if cached is not None:
            return cached

        url = f"{self.base_url}/"
        try:
            async with self.source.session() as session:
                document = await session.render(url, self._wait(".post-show ul li, .animpost"))
                feed = extract_home(document, base_url=self.base_url)
                if not feed.batch:
                    feed.batch = await self._batch_fallback(session)
        except NavigationError as e:
            logger.warning("Error scraping home: %s", e)
            return ScrapeResult(HomeFeed(), None, "Failed to fetch home", ok=False)
        except Exception:
            logger.exception("Unexpected error scraping home")
            return ScrapeResult(HomeFeed(), None, "Failed to fetch home", ok=False)

        recent = CollectionQuery(CollectionKind.RECENT, 1)
        total = self._enrich_total(
            recent,
            PageSignal(has_next=True),
            has_content=bool(feed.recent),
            provisional=self.config.resolver.home_total_pages,
        )
        result = ScrapeResult(
            records=feed,
            pagination=Pagination.build(1, has_next=True, has_prev=False, total_pages=total),
            message="Successfully fetched home",
        )
        self.cache.set("home", result, ttl=self.config.cache.home_ttl)
        return result

    async def get_genres(self) -> ScrapeResult:
        """Genre list from the anime index filter."""
        cached = self.cache.get("genres")
        if cached is not None:
            return cached

        url = f"{self.base_url}/daftar-anime/"
        try:
            extraction = await self._render_and_extract(url, Archetype.GENRES, ".filter_act.genres label")
        except NavigationError as e:
            logger.warning("Error scraping genres: %s", e)
            return ScrapeResult([], None, "Failed to fetch genres", ok=False)
        except Exception:
            logger.exception("Unexpected error scraping genres")
            return ScrapeResult([], None, "Failed to fetch genres", ok=False)

        result = ScrapeResult(extraction.records, None, "Successfully fetched genres")
        self.cache.set("genres", result, ttl=self.config.cache.detail_ttl)
        return result

    # ------------------------------------------------------------------
    # Single records
    # ------------------------------------------------------------------

    async def _lookup(self, cache_key: str, url: str, archetype: Archetype, selector: str):
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached
        try:
            extraction = await self._render_and_extract(url, archetype, selector)
        except NavigationError as e:
            logger.warning("Error scraping %s: %s", url, e)
            return None
        except Exception:
            logger.exception("Unexpected error scraping %s", url)
            return None

        if not extraction.records:
            logger.info("No %s record found at %s", archetype.value, url)
            return None
        record = extraction.records[0]
        self.cache.set(cache_key, record, ttl=self.config.cache.detail_ttl)
        return record

    async def get_detail(self, anime_id: str) -> Optional[AnimeDetail]:
        """
        Fetch an anime detail page.

        Args:
            anime_id: Slug (one-piece) or full URL

        Returns:
            AnimeDetail, or None when the page has no title or id
        """
        url = anime_id if anime_id.startswith("http") else f"{self.base_url}/anime/{anime_id}/"
        return await self._lookup(f"detail:{anime_id}", url, Archetype.DETAIL, ".entry-title, .infox, .spe")

    async def get_episode(self, episode_id: str) -> Optional[EpisodeDetail]:
        """
        Fetch an episode page.

        Args:
            episode_id: Slug (one-piece-episode-1100) or full URL

        Returns:
            EpisodeDetail, or None when the page has no title or id
        """
        url = episode_id if episode_id.startswith("http") else f"{self.base_url}/{episode_id}/"
        return await self._lookup(
            f"episode:{episode_id}", url, Archetype.EPISODE, ".entry-title, iframe, .download-eps"
        )

    # ------------------------------------------------------------------
    # Total pages
    # ------------------------------------------------------------------

    async def get_total_pages(self, kind: CollectionKind, filter: Optional[str] = None) -> int:
        """
        Resolve (or read from cache) the last page of a collection.

        Args:
            kind: Collection kind
            filter: Genre id or search term for filtered kinds

        Returns:
            Last page with content
        """
        query = CollectionQuery(kind, 1, filter)
        policy = POLICIES[kind]
        bounds = await self.resolver.resolve(
            query.collection_key, self.url_template(query), policy.strategy
        )
        return bounds.last_known_good_page

    def cached_total_pages(self, collection_key: str) -> int:
        """Cached bound for a collection key, 0 if none."""
        bounds = self.resolver.cached_bounds(collection_key)
        return bounds.last_known_good_page if bounds is not None else 0

    def get_stats(self) -> dict:
        return {
            'cache': self.cache.stats(),
            'background_resolutions': len(self._background),
            'scheduled_keys': sorted(self._scheduled),
        }

    @staticmethod
    def unfiltered_kinds() -> List[CollectionKind]:
        return [k for k in CollectionKind if not k.is_filtered]
