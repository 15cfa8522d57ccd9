"""
Async SQLAlchemy wiring: engine, session factory, declarative base and the
column mixins shared by tenant-owned tables.

Stores never rely on an implicit tenant filter; every query names
``tenant_id`` itself.
"""

import uuid
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Annotated, Any

from fastapi import Depends
from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Mapped, declarative_base, declared_attr, mapped_column
from sqlalchemy.sql import func

from .config import Settings, settings
from .core.database_types import UUID as UUID_DB


def connect_args(config: Settings) -> dict[str, Any]:
    if not config.is_mysql:
        return {}
    return {
        "ssl": {
            "ssl_check_hostname": config.database_ssl_check_hostname,
            "ssl_verify_cert": config.database_ssl_verify_cert,
            "ssl_verify_identity": config.database_ssl_verify_identity,
        }
    }


def build_engine(config: Settings) -> AsyncEngine:
    """Engine for the configured URL; MySQL connections use TLS."""
    return create_async_engine(
        config.database_url,
        echo=config.app_debug,
        connect_args=connect_args(config),
        pool_pre_ping=True,
    )


engine = build_engine(settings)

AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


class TimestampMixin:
    """Server-maintained creation and modification times."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class TenantScoped:
    """Client-generated UUID key plus the owning tenant.

    Deleting a tenant cascades to its rows.
    """

    id: Mapped[uuid.UUID] = mapped_column(UUID_DB(), primary_key=True, default=uuid.uuid4)

    @declared_attr
    def tenant_id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            UUID_DB(),
            ForeignKey("tenants.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )


async def get_db() -> AsyncIterator[AsyncSession]:
    """One session per request; uncommitted work is rolled back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


DBSession = Annotated[AsyncSession, Depends(get_db)]
