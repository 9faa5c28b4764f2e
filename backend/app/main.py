"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.api.router import api_router
from backend.app.core.config import Settings, settings
from samehadaku.document_source import DocumentSource, SeleniumDocumentSource
from samehadaku.orchestrator import ScrapeOrchestrator
from samehadaku.resilience import PeriodicSweeper, RateLimiter, TTLCache

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Optional[Settings] = None,
    source: Optional[DocumentSource] = None,
) -> FastAPI:
    """
    Build the API application.

    Args:
        app_settings: Settings instance, module settings if None
        source: DocumentSource, a Selenium-backed source if None

    Returns:
        FastAPI app; shared cache, limiters and orchestrator are created in
        its lifespan and stored on app.state
    """
    app_settings = app_settings or settings
    config = app_settings.to_scraper_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.basicConfig(
            level=app_settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        cache = TTLCache(name="samehadaku", default_ttl=config.cache.default_ttl)
        general_limiter = RateLimiter(config.rate_limit, name="general")
        scrape_limiter = RateLimiter(config.scrape_rate_limit, name="scrape")
        orchestrator = ScrapeOrchestrator(
            source if source is not None else SeleniumDocumentSource(config.browser), cache, config=config
        )
        sweepers = [
            PeriodicSweeper([cache], config.cache.cleanup_interval, name="cache-sweeper"),
            PeriodicSweeper(
                [general_limiter, scrape_limiter], config.limiter_cleanup_interval, name="limiter-sweeper"
            ),
        ]

        app.state.cache = cache
        app.state.general_limiter = general_limiter
        app.state.scrape_limiter = scrape_limiter
        app.state.orchestrator = orchestrator
        for sweeper in sweepers:
            sweeper.start()

        logger.info("%s v%s ready (source: %s)", app_settings.app_name, app_settings.api_version, config.base_url)
        try:
            yield
        finally:
            logger.info("Shutting down...")
            for sweeper in sweepers:
                await sweeper.stop()
            logger.info("Stopped")

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.api_version,
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    app.state.trust_forwarded_for = app_settings.trust_forwarded_for

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def index():
        """Welcome message with the route list."""
        return {
            "status": "success",
            "creator": app_settings.creator,
            "message": f"Welcome to {app_settings.app_name}",
            "data": {
                "docs": "/docs",
                "health": "/api/health",
                "baseRoute": "/anime/samehadaku",
            },
        }

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": app_settings.api_version}

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler to log all errors."""
        logger.exception("ERROR: %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "status": "failed",
                "creator": app_settings.creator,
                "message": str(exc),
                "data": None,
                "pagination": None,
            },
        )

    app.include_router(api_router)
    return app


app = create_app()
