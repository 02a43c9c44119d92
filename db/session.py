"""
db/session.py

Lazily created SQLAlchemy engine and session factory for the scan database.

Batch workers persist results and scrape events from their own threads, one
short session at a time, so the pool is sized from the scan worker count
rather than a fixed default.
"""

from __future__ import annotations

import os
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url

# Connections kept for API requests and scheduler jobs besides the workers.
RESERVED_CONNECTIONS = 2
DEFAULT_WORKER_CONCURRENCY = 4


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return max(minimum, int(value))
    except ValueError:
        return default


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def pool_options() -> dict[str, Any]:
    """
    Engine keyword arguments derived from the environment.

    `DB_POOL_SIZE` and `DB_MAX_OVERFLOW` override the sizes computed from
    `SCAN_WORKER_CONCURRENCY`. `DB_STATEMENT_TIMEOUT_MS` caps each statement
    server-side; 0 disables it.
    """

    workers = _env_int("SCAN_WORKER_CONCURRENCY", DEFAULT_WORKER_CONCURRENCY, minimum=1)
    options: dict[str, Any] = {
        "echo": _env_flag("SQL_ECHO"),
        "pool_pre_ping": True,
        "pool_recycle": _env_int("DB_POOL_RECYCLE", 1800, minimum=-1),
        "pool_size": _env_int("DB_POOL_SIZE", workers + RESERVED_CONNECTIONS, minimum=1),
        "max_overflow": _env_int("DB_MAX_OVERFLOW", workers),
        "pool_timeout": _env_int("DB_POOL_TIMEOUT", 30, minimum=1),
    }
    statement_timeout_ms = _env_int("DB_STATEMENT_TIMEOUT_MS", 30_000)
    if statement_timeout_ms:
        options["connect_args"] = {"options": f"-c statement_timeout={statement_timeout_ms}"}
    return options


def create_db_engine() -> Engine:
    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")
    return create_engine(database_url, **pool_options())


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    """Return the shared engine, creating it on first call."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def dispose_engine() -> None:
    """
    Close pooled connections and forget the engine. The next session
    builds a fresh one.
    """

    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            class_=Session,
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def SessionLocal() -> Session:
    """Open a session on the shared engine."""
    return get_session_factory()()
