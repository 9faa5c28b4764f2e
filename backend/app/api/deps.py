"""API dependencies."""
from fastapi import HTTPException, Request, Response

from backend.app.core.config import settings
from samehadaku.orchestrator import ScrapeOrchestrator
from samehadaku.resilience import RateLimiter, RateLimitResult

__all__ = ["get_orchestrator", "general_rate_limit", "scrape_rate_limit", "settings"]


def get_orchestrator(request: Request) -> ScrapeOrchestrator:
    """Orchestrator built once by the application lifespan."""
    return request.app.state.orchestrator


def _client_id(request: Request) -> str:
    # X-Forwarded-For is client-controlled unless a trusted proxy sets it
    if getattr(request.app.state, "trust_forwarded_for", False):
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _apply(limiter: RateLimiter, request: Request, response: Response) -> RateLimitResult:
    result = limiter.check(_client_id(request))
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(int(result.reset_time)),
    }
    if not result.allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Too many requests, limit is {result.limit} per window",
            headers=headers,
        )
    # Several limiters may run on one route; the headers report the tightest
    current = response.headers.get("X-RateLimit-Remaining")
    if current is None or result.remaining < int(current):
        response.headers.update(headers)
    return result


def general_rate_limit(request: Request, response: Response) -> RateLimitResult:
    """Limiter applied to every route."""
    return _apply(request.app.state.general_limiter, request, response)


def scrape_rate_limit(request: Request, response: Response) -> RateLimitResult:
    """Stricter limiter for routes that may trigger a live fetch."""
    return _apply(request.app.state.scrape_limiter, request, response)
