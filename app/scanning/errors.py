"""
Scan lifecycle exceptions.
"""

from __future__ import annotations


class ScanError(Exception):
    """Base exception for scan orchestration failures."""


class ScanNotFoundError(ScanError):
    """Raised when a referenced scan does not exist."""


class ScanStateError(ScanError):
    """Raised when an operation is not allowed in the scan's current status."""

    def __init__(self, message: str, *, status: str) -> None:
        super().__init__(message)
        self.status = status


class ScanValidationError(ScanError):
    """Raised when scan parameters are invalid."""
