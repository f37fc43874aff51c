"""Alembic environment for the auth nonce and session tables.

The target URL comes from ``ALEMBIC_URL`` when set, then from an explicit
``sqlalchemy.url`` in the config, then from ``DATABASE_URL`` via settings.
``src/`` is put on ``sys.path`` by ``prepend_sys_path`` in ``alembic.ini``.
"""
from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from watson_auth.core.settings import get_settings
from watson_auth.db.session import Base, sqlite_connect_args

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _database_url() -> str:
    override = os.getenv("ALEMBIC_URL")
    if override:
        return override
    return config.get_main_option("sqlalchemy.url") or get_settings().database_url


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL for the configured URL without connecting."""
    url = _database_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations over a live connection."""
    url = _database_url()
    # SQLite cannot ALTER most constraints in place; batch mode rebuilds the table
    sqlite = _is_sqlite(url)
    connectable = create_engine(
        url,
        poolclass=pool.NullPool,
        connect_args=sqlite_connect_args() if sqlite else {},
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=sqlite,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()
    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
