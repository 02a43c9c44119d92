"""
db/models/scrape_log.py

Append-only record of every scrape attempt, including retries.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, CreatedAtMixin


class ScrapeLog(Base, CreatedAtMixin):
    __tablename__ = "scrape_logs"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    scan_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=True,
    )
    hotel_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("hotels.id", ondelete="CASCADE"),
        nullable=True,
    )
    hotel_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    check_in_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    scrape_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="success, error, timeout, block, manual_review",
    )
    http_status: Mapped[int | None] = mapped_column(Integer, nullable=True)
    delay_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("ix_scrape_logs_scan_timestamp", "scan_id", "timestamp"),
        Index("ix_scrape_logs_status", "scrape_status"),
        Index("ix_scrape_logs_hotel_status", "hotel_id", "scrape_status"),
        Index("ix_scrape_logs_timestamp", "timestamp"),
    )
