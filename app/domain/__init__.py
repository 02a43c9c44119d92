"""
app/domain package marker.
"""

from app.domain.scanning import (
    BatchResult,
    CellOutcome,
    CreatedScan,
    HotelRecord,
    NewScan,
    ResumeCycleSummary,
    ResumeResult,
    ScanRecord,
    WorkItem,
)
from app.domain.scrape_monitoring import DailyScrapeMetrics, FailureReason, ScrapeAlert, ScrapeMetrics

__all__ = [
    "BatchResult",
    "CellOutcome",
    "CreatedScan",
    "DailyScrapeMetrics",
    "FailureReason",
    "HotelRecord",
    "NewScan",
    "ResumeCycleSummary",
    "ResumeResult",
    "ScanRecord",
    "ScrapeAlert",
    "ScrapeMetrics",
    "WorkItem",
]
