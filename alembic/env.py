import os
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import engine_from_config, pool

from alembic import context

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from server.src.modules.realm_db import Base, DATABASE_URL

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _sync_url() -> str:
    """Alembic runs on a blocking driver; map the async URL to its sync twin."""
    explicit = os.environ.get("DATABASE_SYNC_URL")
    if explicit:
        return explicit
    if DATABASE_URL.startswith("postgresql+asyncpg"):
        return DATABASE_URL.replace("+asyncpg", "+psycopg2", 1)
    if DATABASE_URL.startswith("sqlite+aiosqlite"):
        return DATABASE_URL.replace("sqlite+aiosqlite", "sqlite+pysqlite", 1)
    return DATABASE_URL


config.set_main_option("sqlalchemy.url", _sync_url())
target_metadata = Base.metadata


def run_migrations_offline():
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    # sqlite cannot ALTER most constraints in place
    render_as_batch = connectable.dialect.name == "sqlite"

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=render_as_batch,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
