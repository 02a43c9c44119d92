"""
Repository layer exports.
"""

from db.repositories.hotel_repository import HotelRepository
from db.repositories.scan_repository import ScanRepository
from db.repositories.scan_result_repository import ScanResultRepository
from db.repositories.scrape_log_repository import ScrapeLogRepository

__all__ = [
    "HotelRepository",
    "ScanRepository",
    "ScanResultRepository",
    "ScrapeLogRepository",
]
