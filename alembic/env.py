"""
Alembic migration environment.

Reads the database URL from the CasaLink settings file named by ``CONFIG``
and runs migrations over the async driver.
"""

import asyncio
import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

# Settings are loaded at import time, so CONFIG must be set first.
os.environ.setdefault("CONFIG", "resources/config/local.yaml")

from casalink_backend.config import settings  # noqa: E402
from casalink_backend.database import Base, connect_args  # noqa: E402

# Registers every table on Base.metadata.
from casalink_backend.modules.auth import models as _auth  # noqa: E402, F401
from casalink_backend.modules.staff import models as _staff  # noqa: E402, F401
from casalink_backend.modules.tenancy import models as _tenancy  # noqa: E402, F401
from casalink_backend.modules.topology import models as _topology  # noqa: E402, F401
from casalink_backend.modules.visitor_access import models as _visitors  # noqa: E402, F401

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit SQL to stdout without a database connection."""
    context.configure(
        url=settings.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def apply_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    migration_engine = create_async_engine(
        settings.database_url,
        poolclass=pool.NullPool,
        connect_args=connect_args(settings),
    )
    try:
        async with migration_engine.connect() as connection:
            await connection.run_sync(apply_migrations)
    finally:
        await migration_engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
