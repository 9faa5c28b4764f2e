"""
Configuration dataclasses for the Samehadaku scraper.
"""

from dataclasses import dataclass, field
from typing import Optional


BASE_URL = "https://v1.samehadaku.how"


@dataclass
class BrowserConfig:
    """Configuration for the rendering browser."""
    headless: bool = True
    navigation_timeout: float = 60.0
    selector_timeout: float = 15.0
    probe_timeout: float = 30.0
    block_images: bool = True
    user_agent: Optional[str] = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )


@dataclass
class RateLimitConfig:
    """Fixed-window admission limits."""
    max_requests: int = 100
    window_seconds: float = 60.0


@dataclass
class CacheConfig:
    """TTLs (seconds) per cached collection kind."""
    default_ttl: float = 300.0
    home_ttl: float = 180.0
    list_ttl: float = 300.0
    search_ttl: float = 600.0
    detail_ttl: float = 300.0
    bounds_ttl: float = 3600.0
    cleanup_interval: float = 600.0


@dataclass
class ResolverConfig:
    """Configuration for total-page resolution."""
    max_page: int = 2000
    max_consecutive_empty: int = 10
    provisional_page_span: int = 50
    home_total_pages: int = 600


@dataclass
class ScraperConfig:
    """Main configuration for the scraper system."""
    base_url: str = BASE_URL

    browser: BrowserConfig = field(default_factory=BrowserConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)

    # General limiter guards every request; scrape limiter guards routes that
    # trigger a live fetch.
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    scrape_rate_limit: RateLimitConfig = field(
        default_factory=lambda: RateLimitConfig(max_requests=30, window_seconds=60.0)
    )
    limiter_cleanup_interval: float = 300.0
