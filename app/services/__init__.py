"""
app/services package marker.
"""

from app.services.scan_service import get_scan_orchestrator
from app.services.scrape_monitoring_service import ScrapeMonitoringService, get_scrape_monitoring_service

__all__ = [
    "ScrapeMonitoringService",
    "get_scan_orchestrator",
    "get_scrape_monitoring_service",
]
