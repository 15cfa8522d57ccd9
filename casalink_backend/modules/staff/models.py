"""Staff assignment models."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ...core.database_types import UUID as UUID_DB
from ...core.utils import utc_now
from ...database import Base, TenantScoped, TimestampMixin
from .capabilities import Capability, StaffRole


class StaffAssignment(TenantScoped, TimestampMixin, Base):
    """Links a staff account to a tenant with a role and capability set.

    Revoked assignments are kept with ``is_active`` cleared.
    """

    __tablename__ = "staff_assignments"

    user_id: Mapped[uuid.UUID] = mapped_column(UUID_DB(), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[StaffRole] = mapped_column(Enum(StaffRole), nullable=False)
    capabilities: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_staff_assignments_user", "tenant_id", "user_id", "is_active"),
    )

    @property
    def capability_flags(self) -> Capability:
        return Capability(self.capabilities)

    def __repr__(self) -> str:
        return (
            f"<StaffAssignment(id={self.id}, user_id={self.user_id}, "
            f"role={self.role}, active={self.is_active})>"
        )
