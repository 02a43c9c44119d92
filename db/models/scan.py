"""
db/models/scan.py

Scan lifecycle row: one run over the full hotel x check-in date grid.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from sqlalchemy import CheckConstraint, Date, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class ScanStatus:
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"
    CANCELLED = "cancelled"

    ACTIVE = frozenset({QUEUED, RUNNING})
    TERMINAL = frozenset({DONE, ERROR, CANCELLED})


class Scan(Base, TimestampMixin):
    __tablename__ = "scans"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    base_check_in: Mapped[date] = mapped_column(Date, nullable=False)
    days: Mapped[int] = mapped_column(Integer, nullable=False)
    stay_nights: Mapped[int] = mapped_column(Integer, nullable=False)
    adults: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    source_name: Mapped[str] = mapped_column(String(100), nullable=False)
    hotel_ids: Mapped[list[Any]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Ordered hotel id snapshot taken at creation; defines enumeration order",
    )
    total_cells: Mapped[int] = mapped_column(Integer, nullable=False)
    completed_cells: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ScanStatus.RUNNING,
        comment="queued, running, done, error, cancelled",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "completed_cells >= 0 AND completed_cells <= total_cells",
            name="ck_scans_completed_within_total",
        ),
        Index("ix_scans_status_created_at", "status", "created_at"),
    )
