"""Alembic environment for the Flowspace schema."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from logging.config import fileConfig
from pathlib import Path
import re
import sys

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config
from sqlmodel import SQLModel

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from flowspace.core.config import settings  # noqa: E402
from flowspace.db import base  # noqa: F401,E402  # register every table on the metadata

VERSIONS_DIR = Path(__file__).parent / "versions"
REVISION_PATTERN = re.compile(r"^\d{8}_(\d{4})")

config = context.config

if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)

# run_migrations() passes its own URL; the CLI falls back to settings
if not config.attributes.get("url_configured"):
    config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

target_metadata = SQLModel.metadata


def _next_revision_id() -> str:
    sequences = [
        int(match.group(1))
        for match in (REVISION_PATTERN.match(path.stem) for path in VERSIONS_DIR.glob("*.py"))
        if match
    ]
    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"{today}_{max(sequences, default=0) + 1:04d}"


def _process_revision_directives(context, revision, directives) -> None:
    """Name new revisions YYYYMMDD_NNNN."""
    if directives:
        directives[0].rev_id = _next_revision_id()


def _configure(**options) -> None:
    url = config.get_main_option("sqlalchemy.url") or ""
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=url.startswith("sqlite"),
        process_revision_directives=_process_revision_directives,
        **options,
    )


def run_migrations_offline() -> None:
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync_migrations(connection: Connection) -> None:
    _configure(connection=connection, transaction_per_migration=True)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section) or {},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_run_sync_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
