"""
Scan storage exports.
"""

from app.scanning.storage.base import CellResultStore, ScanStore
from app.scanning.storage.memory import InMemoryCellResultStore, InMemoryScanStore
from app.scanning.storage.sqlalchemy_storage import SQLAlchemyCellResultStore, SQLAlchemyScanStore

__all__ = [
    "CellResultStore",
    "InMemoryCellResultStore",
    "InMemoryScanStore",
    "SQLAlchemyCellResultStore",
    "SQLAlchemyScanStore",
    "ScanStore",
]
