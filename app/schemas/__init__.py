"""
app/schemas package marker.
"""

from app.schemas.scans import (
    BatchProcessRequest,
    BatchProcessResponse,
    ProcessNextResponse,
    ScanCellResponse,
    ScanCreatedResponse,
    ScanCreateRequest,
    ScanDetailResponse,
    ScanListResponse,
    ScanSummaryResponse,
)
from app.schemas.scrape_monitoring import (
    DailyScrapeMetricsResponse,
    FailureReasonResponse,
    ScrapeAlertResponse,
    ScrapeEventResponse,
    ScrapeHealthResponse,
    ScrapeLogListResponse,
    ScrapeMetricsResponse,
)

__all__ = [
    "BatchProcessRequest",
    "BatchProcessResponse",
    "DailyScrapeMetricsResponse",
    "FailureReasonResponse",
    "ProcessNextResponse",
    "ScanCellResponse",
    "ScanCreateRequest",
    "ScanCreatedResponse",
    "ScanDetailResponse",
    "ScanListResponse",
    "ScanSummaryResponse",
    "ScrapeAlertResponse",
    "ScrapeEventResponse",
    "ScrapeHealthResponse",
    "ScrapeLogListResponse",
    "ScrapeMetricsResponse",
]
