"""Tenant (property) records.

A tenant is one managed property. Its plan fixes ``licensed_units``, and
``topology_version`` is bumped by every committed topology write.
"""

import uuid

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ...core.database_types import UUID as UUID_DB
from ...database import Base, TimestampMixin


class Tenant(TimestampMixin, Base):
    """A managed property and its commercial plan capacity."""

    __tablename__ = "tenants"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID_DB(), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    licensed_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    topology_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, name={self.name}, licensed={self.licensed_units})>"
