"""
Samehadaku scraper: collection listings, detail pages and total-page resolution.
"""

from samehadaku.config import ScraperConfig
from samehadaku.models import CollectionKind, CollectionQuery, Pagination, ScrapeResult
from samehadaku.orchestrator import ScrapeOrchestrator

__all__ = [
    'ScraperConfig',
    'CollectionKind',
    'CollectionQuery',
    'Pagination',
    'ScrapeResult',
    'ScrapeOrchestrator',
]
