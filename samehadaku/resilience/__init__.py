"""
Shared state components: caching, admission control and total-page resolution.
"""

from .cache import TTLCache
from .rate_limiter import RateLimiter, RateLimitResult
from .pagination import (
    ExponentialProbeStrategy,
    PaginationResolver,
    SequentialProbeStrategy,
    Strategy,
)
from .sweeper import PeriodicSweeper

__all__ = [
    'TTLCache',
    'RateLimiter',
    'RateLimitResult',
    'PaginationResolver',
    'ExponentialProbeStrategy',
    'SequentialProbeStrategy',
    'Strategy',
    'PeriodicSweeper',
]
