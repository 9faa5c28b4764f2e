import asyncio

import pytest

from samehadaku.config import ResolverConfig
from samehadaku.resilience.cache import TTLCache
from samehadaku.resilience.pagination import (
    ExponentialProbeStrategy,
    PaginationResolver,
    SequentialProbeStrategy,
    Strategy,
    bounds_cache_key,
)
from tests.conftest import FakeDocumentSource, collection_pages

TEMPLATE = "https://v1.samehadaku.how/genre/action/page/{page}/"


def probe_for(pages_with_content, calls=None):
    async def probe(page):
        if calls is not None:
            calls.append(page)
        return page in pages_with_content
    return probe


@pytest.mark.asyncio
@pytest.mark.parametrize("last_page", [1, 2, 3, 8, 37, 64, 100, 513])
async def test_strategies_agree_without_holes(last_page):
    pages = set(range(1, last_page + 1))
    exponential = ExponentialProbeStrategy(max_page=2000)
    sequential = SequentialProbeStrategy(max_page=2000, max_consecutive_empty=10)

    assert await exponential.find_last_page(probe_for(pages)) == last_page
    assert await sequential.find_last_page(probe_for(pages)) == last_page


@pytest.mark.asyncio
async def test_empty_collection():
    assert await ExponentialProbeStrategy().find_last_page(probe_for(set())) == 0
    assert await SequentialProbeStrategy().find_last_page(probe_for(set())) == 0


@pytest.mark.asyncio
async def test_exponential_stops_at_ceiling():
    calls = []
    strategy = ExponentialProbeStrategy(max_page=100)
    assert await strategy.find_last_page(probe_for(set(range(1, 500)), calls)) == 100
    assert max(calls) == 100


@pytest.mark.asyncio
async def test_exponential_uses_few_probes():
    calls = []
    await ExponentialProbeStrategy().find_last_page(probe_for(set(range(1, 301)), calls))
    assert len(calls) < 25


@pytest.mark.asyncio
async def test_sequential_survives_a_hole():
    pages = {1, 2, 3, 4, 5, 7, 8, 9}
    strategy = SequentialProbeStrategy(max_page=2000, max_consecutive_empty=10)
    assert await strategy.find_last_page(probe_for(pages)) == 9


@pytest.mark.asyncio
async def test_sequential_stops_after_empty_run():
    calls = []
    strategy = SequentialProbeStrategy(max_page=2000, max_consecutive_empty=10)
    assert await strategy.find_last_page(probe_for({1, 2, 3, 4, 5}, calls)) == 5
    assert calls == list(range(1, 16))


@pytest.mark.asyncio
async def test_sequential_starts_at_start_page():
    calls = []
    strategy = SequentialProbeStrategy(max_page=2000, max_consecutive_empty=3)
    assert await strategy.find_last_page(probe_for(set(range(1, 11)), calls), start_page=6) == 10
    assert calls[0] == 6
    assert await strategy.find_last_page(probe_for(set()), start_page=6) == 5


def make_resolver(source, clock, cache=None):
    return PaginationResolver(
        source,
        cache if cache is not None else TTLCache(clock=clock),
        config=ResolverConfig(max_page=200, max_consecutive_empty=4),
        clock=clock,
    )


@pytest.mark.asyncio
async def test_resolve_caches_bounds(clock):
    source = FakeDocumentSource(collection_pages(TEMPLATE, 6))
    resolver = make_resolver(source, clock)

    bounds = await resolver.resolve("genre-action", TEMPLATE, Strategy.SEQUENTIAL)
    assert bounds.collection_key == "genre-action"
    assert bounds.last_known_good_page == 6
    assert bounds.resolved_at == clock.now
    assert resolver.cached_bounds("genre-action") == bounds
    assert source.sessions_opened == source.sessions_closed == 1

    fetched = len(source.fetches)
    again = await resolver.resolve("genre-action", TEMPLATE, Strategy.SEQUENTIAL)
    assert again == bounds
    assert len(source.fetches) == fetched


@pytest.mark.asyncio
async def test_resolve_after_bounds_expire(clock):
    cache = TTLCache(clock=clock)
    source = FakeDocumentSource(collection_pages(TEMPLATE, 2))
    resolver = make_resolver(source, clock, cache)

    await resolver.resolve("genre-action", TEMPLATE, Strategy.EXPONENTIAL)
    source.pages.update(collection_pages(TEMPLATE, 3))
    clock.advance(resolver.cache_config.bounds_ttl + 1)

    bounds = await resolver.resolve("genre-action", TEMPLATE, Strategy.EXPONENTIAL)
    assert bounds.last_known_good_page == 3
    assert cache.has(bounds_cache_key("genre-action"))


@pytest.mark.asyncio
async def test_probe_errors_count_as_empty(clock):
    pages = collection_pages(TEMPLATE, 6)
    failing = TEMPLATE.replace("{page}", "4")
    source = FakeDocumentSource(pages, failures=[failing])
    resolver = make_resolver(source, clock)

    bounds = await resolver.resolve("genre-action", TEMPLATE, Strategy.SEQUENTIAL)
    assert bounds.last_known_good_page == 6
    assert source.count(failing) == 1


@pytest.mark.asyncio
async def test_concurrent_resolves_share_one_run(clock):
    source = FakeDocumentSource(collection_pages(TEMPLATE, 5))
    resolver = make_resolver(source, clock)

    first = asyncio.ensure_future(resolver.resolve("genre-action", TEMPLATE, Strategy.SEQUENTIAL))
    await asyncio.sleep(0)
    assert resolver.is_resolving("genre-action")
    second = asyncio.ensure_future(resolver.resolve("genre-action", TEMPLATE, Strategy.SEQUENTIAL))

    a, b = await asyncio.gather(first, second)
    assert a == b
    assert a.last_known_good_page == 5
    assert source.sessions_opened == 1
    assert source.count(TEMPLATE.replace("{page}", "1")) == 1
    assert not resolver.is_resolving("genre-action")


@pytest.mark.asyncio
async def test_bound_never_drops_below_known_good_page(clock):
    failures = [TEMPLATE.replace("{page}", str(n)) for n in range(1, 40)]
    source = FakeDocumentSource(collection_pages(TEMPLATE, 8), failures=failures)
    resolver = make_resolver(source, clock)

    bounds = await resolver.resolve("genre-action", TEMPLATE, Strategy.SEQUENTIAL, start_page=5, known_good=5)
    assert bounds.last_known_good_page == 5
    assert resolver.cached_bounds("genre-action").last_known_good_page == 5
