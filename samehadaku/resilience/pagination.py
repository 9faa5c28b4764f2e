"""
Total-page discovery for paginated collections.

The site never states how many pages a collection has, so the last page is
found by probing live pages. Two strategies exist:

- ExponentialProbeStrategy: doubles until an empty page, then binary searches
  the gap. Few fetches, but assumes every page past the boundary is empty.
- SequentialProbeStrategy: walks page by page and only stops after a run of
  empty pages, so isolated empty pages ("holes") do not end the walk.

Results are cached per collection key; a cached bound short-circuits probing.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from samehadaku.config import BrowserConfig, CacheConfig, ResolverConfig
from samehadaku.document_source import DocumentSource, NavigationError, WaitPolicy
from samehadaku.extractor import has_listing_content
from samehadaku.models import PaginationBounds
from samehadaku.resilience.cache import TTLCache

logger = logging.getLogger(__name__)

Probe = Callable[[int], Awaitable[bool]]


class Strategy(str, Enum):
    EXPONENTIAL = "exponential"
    SEQUENTIAL = "sequential"


def bounds_cache_key(collection_key: str) -> str:
    return f"bounds:{collection_key}"


class ExponentialProbeStrategy:
    """Exponential probe followed by binary search. Always starts at page 1."""

    name = Strategy.EXPONENTIAL

    def __init__(self, max_page: int = 2000):
        self.max_page = max_page

    async def find_last_page(self, probe: Probe, start_page: int = 1) -> int:
        """
        Find the last page with content.

        Args:
            probe: Coroutine returning True when a page has content
            start_page: Ignored; the doubling phase needs page 1 as its base

        Returns:
            Last page with content, 0 if page 1 is empty
        """
        last_valid = 0
        high = 1
        hit_ceiling = True
        while high <= self.max_page:
            if not await probe(high):
                hit_ceiling = False
                break
            last_valid = high
            high *= 2

        # Pages up to last_valid have content; high is empty or past the ceiling
        low = last_valid + 1
        high = self.max_page if hit_ceiling else high - 1
        while low <= high:
            mid = (low + high) // 2
            if await probe(mid):
                last_valid = mid
                low = mid + 1
            else:
                high = mid - 1
        return last_valid


class SequentialProbeStrategy:
    """Page-by-page walk that tolerates up to max_consecutive_empty - 1 holes in a row."""

    name = Strategy.SEQUENTIAL

    def __init__(self, max_page: int = 2000, max_consecutive_empty: int = 10):
        self.max_page = max_page
        self.max_consecutive_empty = max_consecutive_empty

    async def find_last_page(self, probe: Probe, start_page: int = 1) -> int:
        """
        Walk forward from start_page.

        Args:
            probe: Coroutine returning True when a page has content
            start_page: First page to fetch

        Returns:
            Last page with content, start_page - 1 if none was found
        """
        last_valid_page = start_page - 1
        consecutive_empty_pages = 0
        page = start_page
        while page <= self.max_page:
            if await probe(page):
                last_valid_page = page
                consecutive_empty_pages = 0
            else:
                consecutive_empty_pages += 1
                if consecutive_empty_pages >= self.max_consecutive_empty:
                    break
            page += 1
        return last_valid_page


class PaginationResolver:
    """Resolves and caches the last page of each collection."""

    def __init__(
        self,
        source: DocumentSource,
        cache: TTLCache,
        config: Optional[ResolverConfig] = None,
        cache_config: Optional[CacheConfig] = None,
        browser_config: Optional[BrowserConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize with a document source and the shared cache.

        Args:
            source: DocumentSource used for probe fetches
            cache: Shared TTLCache; bounds live under "bounds:<collection key>"
            config: ResolverConfig (ceiling, empty-run threshold)
            cache_config: CacheConfig (bounds TTL)
            browser_config: BrowserConfig (probe timeout)
            clock: Timestamp source for resolved_at
        """
        self.source = source
        self.cache = cache
        self.config = config or ResolverConfig()
        self.cache_config = cache_config or CacheConfig()
        self.browser_config = browser_config or BrowserConfig()
        self._clock = clock
        self.strategies = {
            Strategy.EXPONENTIAL: ExponentialProbeStrategy(self.config.max_page),
            Strategy.SEQUENTIAL: SequentialProbeStrategy(
                self.config.max_page, self.config.max_consecutive_empty
            ),
        }
        self.wait_policy = WaitPolicy(load="networkidle")
        self._in_flight: Dict[str, asyncio.Future] = {}

    def cached_bounds(self, collection_key: str) -> Optional[PaginationBounds]:
        """Bounds resolved within the TTL, or None."""
        return self.cache.get(bounds_cache_key(collection_key))

    def is_resolving(self, collection_key: str) -> bool:
        return collection_key in self._in_flight

    async def resolve(
        self,
        collection_key: str,
        url_template: str,
        strategy: Strategy = Strategy.EXPONENTIAL,
        start_page: int = 1,
        known_good: int = 0,
    ) -> PaginationBounds:
        """
        Return the last page of a collection, probing the site if needed.

        Args:
            collection_key: Stable key of the (kind, filter) pair
            url_template: Page URL with a "{page}" placeholder
            strategy: Which probe strategy to run
            start_page: First page for the sequential strategy
            known_good: Page already seen with content; the stored bound
                never drops below it

        Returns:
            PaginationBounds, freshly resolved or from cache
        """
        cached = self.cached_bounds(collection_key)
        if cached is not None:
            return cached

        # No await between the lookup and the registration below, so two
        # callers on the loop cannot both start a run for the same key.
        existing = self._in_flight.get(collection_key)
        if existing is not None:
            return await asyncio.shield(existing)

        future = asyncio.get_running_loop().create_future()
        self._in_flight[collection_key] = future
        try:
            last_page = await self._run(collection_key, url_template, strategy, start_page)
            if last_page < known_good:
                logger.warning(
                    "Probe of %s ended at %d below known page %d", collection_key, last_page, known_good
                )
                last_page = known_good
            bounds = PaginationBounds(
                collection_key=collection_key,
                last_known_good_page=last_page,
                resolved_at=self._clock(),
            )
            self.cache.set(bounds_cache_key(collection_key), bounds, ttl=self.cache_config.bounds_ttl)
            logger.info("Updated total pages for %s: %d (%s)", collection_key, last_page, strategy.value)
            future.set_result(bounds)
            return bounds
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved: waiters (if any) re-raise it, the caller logs it
            future.exception()
            raise
        finally:
            self._in_flight.pop(collection_key, None)

    async def _run(
        self, collection_key: str, url_template: str, strategy: Strategy, start_page: int
    ) -> int:
        async with self.source.session() as session:

            async def probe(page: int) -> bool:
                url = url_template.replace("{page}", str(page))
                try:
                    document = await session.render(
                        url, self.wait_policy, timeout=self.browser_config.probe_timeout
                    )
                except NavigationError as e:
                    logger.warning("Probe %s page %d failed, counting as empty: %s", collection_key, page, e)
                    return False
                except Exception as e:
                    logger.warning(
                        "Probe %s page %d raised %s, counting as empty: %s",
                        collection_key, page, type(e).__name__, e,
                    )
                    return False
                found = has_listing_content(document)
                logger.debug("Probe %s page %d: %s", collection_key, page, "content" if found else "empty")
                return found

            return await self.strategies[strategy].find_last_page(probe, start_page)
