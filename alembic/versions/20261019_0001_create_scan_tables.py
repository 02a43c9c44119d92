"""create hotels, scans, scan_results and scrape_logs tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "hotels",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("booking_url", sa.String(length=1024), nullable=True,
                  comment="Booking.com listing URL used as the hotel identifier for that source"),
        sa.Column("brand", sa.String(length=100), nullable=True),
        sa.Column("region", sa.String(length=100), nullable=True),
        sa.Column("country", sa.String(length=100), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_hotels"),
        sa.UniqueConstraint("code", name="uq_hotels_code"),
    )

    op.create_table(
        "scans",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("base_check_in", sa.Date(), nullable=False),
        sa.Column("days", sa.Integer(), nullable=False),
        sa.Column("stay_nights", sa.Integer(), nullable=False),
        sa.Column("adults", sa.Integer(), nullable=False),
        sa.Column("source_name", sa.String(length=100), nullable=False),
        sa.Column(
            "hotel_ids",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            comment="Ordered hotel id snapshot taken at creation; defines enumeration order",
        ),
        sa.Column("total_cells", sa.Integer(), nullable=False),
        sa.Column("completed_cells", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False,
                  comment="queued, running, done, error, cancelled"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_scans"),
        sa.CheckConstraint(
            "completed_cells >= 0 AND completed_cells <= total_cells",
            name="ck_scans_completed_within_total",
        ),
    )
    op.create_index("ix_scans_status_created_at", "scans", ["status", "created_at"], unique=False)

    op.create_table(
        "scan_results",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("scan_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("hotel_id", sa.Integer(), nullable=False),
        sa.Column("check_in_date", sa.Date(), nullable=False),
        sa.Column("check_out_date", sa.Date(), nullable=True),
        sa.Column("source_name", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=10), nullable=False, comment="green, red"),
        sa.Column("response_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("scraped_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["scan_id"], ["scans.id"],
            name="fk_scan_results_scan_id_scans",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["hotel_id"], ["hotels.id"],
            name="fk_scan_results_hotel_id_hotels",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_scan_results"),
        sa.UniqueConstraint(
            "scan_id",
            "hotel_id",
            "check_in_date",
            name="uq_scan_results_scan_hotel_check_in",
        ),
    )
    op.create_index("ix_scan_results_scan_id", "scan_results", ["scan_id"], unique=False)
    op.create_index("ix_scan_results_status", "scan_results", ["status"], unique=False)

    op.create_table(
        "scrape_logs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("scan_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("hotel_id", sa.Integer(), nullable=True),
        sa.Column("hotel_name", sa.String(length=255), nullable=True),
        sa.Column("check_in_date", sa.Date(), nullable=True),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("scrape_status", sa.String(length=50), nullable=False,
                  comment="success, error, timeout, block, manual_review"),
        sa.Column("http_status", sa.Integer(), nullable=True),
        sa.Column("delay_ms", sa.Integer(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("user_agent", sa.String(length=50), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("response_time_ms", sa.Integer(), nullable=True),
        sa.Column("session_id", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["scan_id"], ["scans.id"],
            name="fk_scrape_logs_scan_id_scans",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["hotel_id"], ["hotels.id"],
            name="fk_scrape_logs_hotel_id_hotels",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_scrape_logs"),
    )
    op.create_index("ix_scrape_logs_scan_timestamp", "scrape_logs", ["scan_id", "timestamp"], unique=False)
    op.create_index("ix_scrape_logs_status", "scrape_logs", ["scrape_status"], unique=False)
    op.create_index("ix_scrape_logs_hotel_status", "scrape_logs", ["hotel_id", "scrape_status"], unique=False)
    op.create_index("ix_scrape_logs_timestamp", "scrape_logs", ["timestamp"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_scrape_logs_timestamp", table_name="scrape_logs")
    op.drop_index("ix_scrape_logs_hotel_status", table_name="scrape_logs")
    op.drop_index("ix_scrape_logs_status", table_name="scrape_logs")
    op.drop_index("ix_scrape_logs_scan_timestamp", table_name="scrape_logs")
    op.drop_table("scrape_logs")
    op.drop_index("ix_scan_results_status", table_name="scan_results")
    op.drop_index("ix_scan_results_scan_id", table_name="scan_results")
    op.drop_table("scan_results")
    op.drop_index("ix_scans_status_created_at", table_name="scans")
    op.drop_table("scans")
    op.drop_table("hotels")
