"""
Config helpers for scan sources and scrape clients.
"""

from app.scraping.config.loader import find_scan_source, get_scrape_settings, load_scan_sources
from app.scraping.config.models import ScanSourceConfig, ScrapeSettings

__all__ = [
    "ScanSourceConfig",
    "ScrapeSettings",
    "find_scan_source",
    "get_scrape_settings",
    "load_scan_sources",
]
