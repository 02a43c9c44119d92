"""
app/schemas/scans.py

Request and response schemas for scan lifecycle operations.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ScanCreateRequest(BaseModel):
    """
    Omitted fields fall back to configured defaults.
    """

    base_check_in: date | None = None
    days: int | None = None
    stay_nights: int | None = None
    adults: int | None = None
    source_name: str | None = None


class ScanCreatedResponse(BaseModel):
    scan_id: UUID
    total_cells: int = Field(..., ge=0)
    base_check_in: date
    days: int = Field(..., ge=1)
    stay_nights: int = Field(..., ge=1)
    status: str
    first_batch: BatchProcessResponse | None = None


class ScanSummaryResponse(BaseModel):
    scan_id: UUID
    created_at: datetime
    status: str
    base_check_in: date
    days: int
    stay_nights: int
    adults: int
    source_name: str
    total_cells: int = Field(..., ge=0)
    completed_cells: int = Field(..., ge=0)
    progress_percent: float
    error_message: str | None = None
    finished_at: datetime | None = None


class ScanCellResponse(BaseModel):
    hotel_id: int
    check_in_date: date
    check_out_date: date | None = None
    status: str
    price: Decimal | None = None
    currency: str | None = None
    error_message: str | None = None
    response_json: dict[str, Any] = Field(default_factory=dict)


class ScanDetailResponse(ScanSummaryResponse):
    hotel_ids: list[int] = Field(default_factory=list)
    results: list[ScanCellResponse] = Field(default_factory=list)


class ScanListResponse(BaseModel):
    items: list[ScanSummaryResponse]
    total: int


class BatchProcessRequest(BaseModel):
    scan_id: UUID
    start_index: int = Field(default=0)
    size: int | None = Field(default=None)


class BatchProcessResponse(BaseModel):
    scan_id: UUID
    processed: int = Field(..., ge=0)
    failures: int = Field(..., ge=0)
    next_index: int = Field(..., ge=0)
    done: bool = Field(
        ...,
        description="The slice reached the end of the grid. The scan may still be running if cells were skipped.",
    )
    total: int = Field(..., ge=0)
    batch_size: int = Field(..., ge=0)
    stopped_early: bool = False


class ProcessNextResponse(BaseModel):
    """
    Either `message` (nothing to resume) or the processed batch fields.
    """

    message: str | None = None
    scan_id: UUID | None = None
    processed: int = 0
    failures: int = 0
    next_index: int | None = None
    done: bool | None = None
    total: int | None = None
    stopped_early: bool = False


ScanCreatedResponse.model_rebuild()
