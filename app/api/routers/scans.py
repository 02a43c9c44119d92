"""
app/api/routers/scans.py

Scan lifecycle and batch processing endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.dependencies import http_error_for
from app.domain.scanning import BatchResult, CellOutcome, ScanRecord
from app.scanning.errors import ScanError
from app.scanning.orchestrator import ScanOrchestrator
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
from app.services.scan_service import get_scan_orchestrator

router = APIRouter(tags=["scans"])


def _summary(scan: ScanRecord) -> ScanSummaryResponse:
    return ScanSummaryResponse(
        scan_id=scan.id,
        created_at=scan.created_at,
        status=scan.status,
        base_check_in=scan.base_check_in,
        days=scan.days,
        stay_nights=scan.stay_nights,
        adults=scan.adults,
        source_name=scan.source_name,
        total_cells=scan.total_cells,
        completed_cells=scan.completed_cells,
        progress_percent=scan.progress_percent,
        error_message=scan.error_message,
        finished_at=scan.finished_at,
    )


def _batch(result: BatchResult) -> BatchProcessResponse:
    return BatchProcessResponse(
        scan_id=result.scan_id,
        processed=result.processed,
        failures=result.failures,
        next_index=result.next_index,
        done=result.done,
        total=result.total,
        batch_size=result.batch_size,
        stopped_early=result.stopped_early,
    )


def _cell(cell: CellOutcome) -> ScanCellResponse:
    return ScanCellResponse(
        hotel_id=cell.hotel_id,
        check_in_date=cell.check_in,
        check_out_date=cell.check_out,
        status=cell.status,
        price=cell.price,
        currency=cell.currency,
        error_message=cell.error_message,
        response_json=cell.payload,
    )


@router.post("/scans", status_code=status.HTTP_201_CREATED, response_model=ScanCreatedResponse)
def create_scan(
    payload: ScanCreateRequest | None = None,
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator),
) -> ScanCreatedResponse:
    """
    Snapshot the hotel list and start a scan; optionally runs the first batch.
    """

    request = payload or ScanCreateRequest()
    try:
        created = orchestrator.create_scan(
            base_check_in=request.base_check_in,
            days=request.days,
            stay_nights=request.stay_nights,
            adults=request.adults,
            source_name=request.source_name,
        )
    except ScanError as exc:
        raise http_error_for(exc) from exc

    return ScanCreatedResponse(
        scan_id=created.scan.id,
        total_cells=created.scan.total_cells,
        base_check_in=created.scan.base_check_in,
        days=created.scan.days,
        stay_nights=created.scan.stay_nights,
        status=created.scan.status,
        first_batch=_batch(created.first_batch) if created.first_batch else None,
    )


@router.get("/scans", response_model=ScanListResponse)
def list_scans(
    limit: int = Query(default=50, ge=1, le=500),
    scan_status: str | None = Query(default=None, alias="status"),
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator),
) -> ScanListResponse:
    scans = orchestrator.list_scans(limit=limit, status=scan_status)
    return ScanListResponse(items=[_summary(scan) for scan in scans], total=len(scans))


@router.post("/scans/process", response_model=BatchProcessResponse)
def process_batch(
    payload: BatchProcessRequest,
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator),
) -> BatchProcessResponse:
    """
    Process one slice `[start_index, start_index + size)` of a scan.
    """

    try:
        result = orchestrator.process_batch(
            payload.scan_id,
            start_index=payload.start_index,
            size=payload.size,
        )
    except ScanError as exc:
        raise http_error_for(exc) from exc
    return _batch(result)


@router.post("/scans/process-next", response_model=ProcessNextResponse)
def process_next(
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator),
) -> ProcessNextResponse:
    """
    Resume the oldest running scan from its completed count.
    """

    result = orchestrator.resume()
    if result.batch is None:
        return ProcessNextResponse(message=result.message)
    return ProcessNextResponse(
        scan_id=result.batch.scan_id,
        processed=result.batch.processed,
        failures=result.batch.failures,
        next_index=result.batch.next_index,
        done=result.batch.done,
        total=result.batch.total,
        stopped_early=result.batch.stopped_early,
    )


@router.get("/scans/{scan_id}", response_model=ScanDetailResponse)
def get_scan(
    scan_id: UUID,
    include_results: bool = Query(default=True),
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator),
) -> ScanDetailResponse:
    try:
        scan = orchestrator.get_scan(scan_id)
        cells = orchestrator.scan_results(scan_id) if include_results else []
    except ScanError as exc:
        raise http_error_for(exc) from exc

    return ScanDetailResponse(
        **_summary(scan).model_dump(),
        hotel_ids=list(scan.hotel_ids),
        results=[_cell(cell) for cell in cells],
    )


@router.post("/scans/{scan_id}/cancel", response_model=ScanSummaryResponse)
def cancel_scan(
    scan_id: UUID,
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator),
) -> ScanSummaryResponse:
    try:
        scan = orchestrator.cancel(scan_id)
    except ScanError as exc:
        raise http_error_for(exc) from exc
    return _summary(scan)
