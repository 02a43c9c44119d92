from __future__ import annotations

import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import load_env_files, normalize_postgres_url, resolve_database_url
from db.models import (  # noqa: F401  imports trigger Base.metadata registration
    Hotel,
    Scan,
    ScanResult,
    ScrapeLog,
)

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _migration_url() -> str:
    """
    Resolve the scan database URL for migrations.

    `-x db_url=...` wins, then ALEMBIC_DATABASE_URL, then sqlalchemy.url
    from alembic.ini, then the application resolution in db.config.
    """

    load_env_files()

    x_args = context.get_x_argument(as_dictionary=True)
    candidates = (
        x_args.get("db_url"),
        os.getenv("ALEMBIC_DATABASE_URL"),
        (config.get_main_option("sqlalchemy.url") or "").strip(),
    )
    url = next((normalize_postgres_url(value) for value in candidates if value), None)
    if url is None:
        url = resolve_database_url()

    if not url.startswith("postgresql"):
        raise RuntimeError("Alembic is configured for PostgreSQL URLs only.")
    return url


def _common_options() -> dict[str, Any]:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
    }


def run_migrations_offline() -> None:
    context.configure(
        url=_migration_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_common_options(),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _migration_url()

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        future=True,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, **_common_options())

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
