"""
app/api/routers package marker.
"""

from app.api.routers.scans import router as scans_router
from app.api.routers.scrape_monitoring import router as scrape_monitoring_router

__all__ = [
    "scans_router",
    "scrape_monitoring_router",
]
