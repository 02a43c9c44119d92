"""
app/api/dependencies.py

Shared FastAPI helpers for mapping domain errors onto HTTP responses.
"""

from __future__ import annotations

from fastapi import HTTPException, status

from app.scanning.errors import ScanError, ScanNotFoundError, ScanStateError, ScanValidationError


def http_error_for(exc: ScanError) -> HTTPException:
    """
    404 for unknown scans, 409 for disallowed state changes, 400 for invalid
    parameters.
    """

    if isinstance(exc, ScanNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ScanStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ScanValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
