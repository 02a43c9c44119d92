from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from app.logging_utils import configure_logging


def _project_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return Path(__file__).resolve().parents[1] / candidate


def _validate_env() -> None:
    """
    Validate all required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - No empty-string values are accepted.
    - A PostgreSQL database URL is required.
    - SCAN_SOURCES_PATH, when set, must point at an existing file.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not (database_url or cloud_database_url or local_database_url):
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL "
            "or LOCAL_DATABASE_URL. SQLite fallbacks are not permitted."
        )

    sources_path = os.getenv("SCAN_SOURCES_PATH")
    if sources_path is not None and not _project_path(sources_path.strip()).is_file():
        errors.append(f"SCAN_SOURCES_PATH='{sources_path}' does not point at a file.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start the scheduler on boot; shut it down on exit."""
    log = logging.getLogger(__name__)
    _check_db()
    log.info("Database connectivity confirmed")
    _check_schema()
    log.info("Database schema validated")

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    log.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        log.info("Scheduler shut down")

        from db.session import dispose_engine

        dispose_engine()


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    configure_logging()

    application = FastAPI(
        title="Hotel Availability Scan API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import scans_router, scrape_monitoring_router

    application.include_router(scans_router)
    application.include_router(scrape_monitoring_router)

    @application.get("/health")
    def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
