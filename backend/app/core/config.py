"""Application configuration."""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

from samehadaku.config import (
    BASE_URL,
    BrowserConfig,
    CacheConfig,
    RateLimitConfig,
    ResolverConfig,
    ScraperConfig,
)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=Path(__file__).parent.parent.parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API
    app_name: str = "Samehadaku API"
    api_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    creator: str = "Samehadaku API"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS - accepts comma-separated string from env
    cors_origins: str = "*"

    # Scraper
    base_url: str = BASE_URL
    headless: bool = True
    navigation_timeout: float = 60.0
    selector_timeout: float = 15.0
    probe_timeout: float = 30.0

    # Rate limits (requests per window)
    rate_limit: int = 100
    scrape_rate_limit: int = 30
    rate_limit_window: float = 60.0
    limiter_cleanup_interval: float = 300.0
    # Only enable behind a proxy that overwrites X-Forwarded-For
    trust_forwarded_for: bool = False

    # Cache TTLs (seconds)
    home_cache_ttl: float = 180.0
    list_cache_ttl: float = 300.0
    search_cache_ttl: float = 600.0
    detail_cache_ttl: float = 300.0
    bounds_cache_ttl: float = 3600.0
    cache_cleanup_interval: float = 600.0

    # Total-page resolution
    max_page: int = 2000
    max_consecutive_empty: int = 10

    @property
    def cors_origins_list(self) -> list[str]:
        """Return CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def to_scraper_config(self) -> ScraperConfig:
        """Build the scraper dataclass config from these settings."""
        return ScraperConfig(
            base_url=self.base_url,
            browser=BrowserConfig(
                headless=self.headless,
                navigation_timeout=self.navigation_timeout,
                selector_timeout=self.selector_timeout,
                probe_timeout=self.probe_timeout,
            ),
            cache=CacheConfig(
                home_ttl=self.home_cache_ttl,
                list_ttl=self.list_cache_ttl,
                search_ttl=self.search_cache_ttl,
                detail_ttl=self.detail_cache_ttl,
                bounds_ttl=self.bounds_cache_ttl,
                cleanup_interval=self.cache_cleanup_interval,
            ),
            resolver=ResolverConfig(
                max_page=self.max_page,
                max_consecutive_empty=self.max_consecutive_empty,
            ),
            rate_limit=RateLimitConfig(self.rate_limit, self.rate_limit_window),
            scrape_rate_limit=RateLimitConfig(self.scrape_rate_limit, self.rate_limit_window),
            limiter_cleanup_interval=self.limiter_cleanup_interval,
        )


settings = Settings()
