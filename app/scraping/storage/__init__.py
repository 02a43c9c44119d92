"""
Scrape event log exports.
"""

from app.scraping.storage.base import ScrapeEventLog
from app.scraping.storage.memory import InMemoryScrapeEventLog
from app.scraping.storage.sqlalchemy_storage import SQLAlchemyScrapeEventLog

__all__ = ["InMemoryScrapeEventLog", "SQLAlchemyScrapeEventLog", "ScrapeEventLog"]
