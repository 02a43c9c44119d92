"""
app/services/scan_service.py

Wiring of the scan orchestrator against the database-backed stores.
"""

from __future__ import annotations

from functools import lru_cache

from app.config import get_scan_settings
from app.scanning.batch_processor import BatchProcessor
from app.scanning.orchestrator import ScanOrchestrator
from app.scanning.storage import SQLAlchemyCellResultStore, SQLAlchemyScanStore
from app.scraping.config import get_scrape_settings, load_scan_sources
from app.scraping.registry import SourceScraperFactory
from app.scraping.storage import SQLAlchemyScrapeEventLog


@lru_cache(maxsize=1)
def get_scraper_factory() -> SourceScraperFactory:
    """
    Build and cache the per-source scraper factory.
    """

    scrape_settings = get_scrape_settings()
    return SourceScraperFactory(
        sources=load_scan_sources(config_path=scrape_settings.sources_path),
        settings=scrape_settings,
        event_log=SQLAlchemyScrapeEventLog(),
    )


@lru_cache(maxsize=1)
def get_scan_orchestrator() -> ScanOrchestrator:
    """
    Build and cache the scan orchestrator.
    """

    settings = get_scan_settings()
    scraper_factory = get_scraper_factory()
    scan_store = SQLAlchemyScanStore()
    result_store = SQLAlchemyCellResultStore()
    processor = BatchProcessor(
        scan_store=scan_store,
        result_store=result_store,
        scraper_factory=scraper_factory,
        settings=settings,
    )
    return ScanOrchestrator(
        scan_store=scan_store,
        result_store=result_store,
        batch_processor=processor,
        default_source_name=get_scrape_settings().active_source,
        known_sources=scraper_factory.source_names(),
        settings=settings,
    )
