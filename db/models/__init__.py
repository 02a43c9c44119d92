"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.hotel import Hotel
from db.models.scan import Scan, ScanStatus
from db.models.scan_result import CellStatus, ScanResult
from db.models.scrape_log import ScrapeLog

__all__ = [
    "CellStatus",
    "Hotel",
    "Scan",
    "ScanResult",
    "ScanStatus",
    "ScrapeLog",
]
