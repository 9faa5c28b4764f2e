from samehadaku.config import RateLimitConfig
from samehadaku.resilience.rate_limiter import RateLimiter


def make_limiter(clock, max_requests=30, window=60.0):
    return RateLimiter(RateLimitConfig(max_requests=max_requests, window_seconds=window), clock=clock)


def test_thirty_first_request_is_denied(clock):
    limiter = make_limiter(clock)

    results = [limiter.check("1.2.3.4") for _ in range(30)]
    assert all(r.allowed for r in results)
    assert [r.remaining for r in results[:3]] == [29, 28, 27]
    assert results[-1].remaining == 0

    denied = limiter.check("1.2.3.4")
    assert not denied.allowed
    assert denied.remaining == 0
    assert denied.limit == 30
    assert denied.reset_time == results[0].reset_time


def test_window_resets_after_expiry(clock):
    limiter = make_limiter(clock)
    for _ in range(31):
        limiter.check("1.2.3.4")

    clock.advance(61)
    result = limiter.check("1.2.3.4")
    assert result.allowed
    assert result.remaining == 29
    assert result.reset_time == clock.now + 60


def test_denied_requests_do_not_extend_the_window(clock):
    limiter = make_limiter(clock, max_requests=2, window=10)
    first = limiter.check("a")
    limiter.check("a")
    for _ in range(5):
        clock.advance(1)
        assert not limiter.check("a").allowed

    clock.advance(6)
    assert clock.now > first.reset_time
    assert limiter.check("a").allowed


def test_identifiers_are_independent(clock):
    limiter = make_limiter(clock, max_requests=1)
    assert limiter.check("a").allowed
    assert not limiter.check("a").allowed
    assert limiter.check("b").allowed


def test_cleanup_and_reset(clock):
    limiter = make_limiter(clock, max_requests=5, window=10)
    limiter.check("a")
    clock.advance(5)
    limiter.check("b")

    clock.advance(6)
    assert limiter.cleanup() == 1
    assert limiter.get_stats()["tracked_identifiers"] == 1

    limiter.reset()
    assert limiter.get_stats()["tracked_identifiers"] == 0
