"""Directory models.

Identity is owned by the external provider; these rows mirror the accounts
known to a tenant so emails can be resolved to users.
"""

import enum

from sqlalchemy import Boolean, Enum, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ...database import Base, TenantScoped, TimestampMixin


class RoleSlug(str, enum.Enum):
    """Caller roles supplied by the identity provider."""

    ADMIN = "admin"
    MANAGER = "manager"
    SECURITY = "security"
    RESIDENT = "resident"


class User(TenantScoped, TimestampMixin, Base):
    """Account known to a tenant's directory."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[RoleSlug] = mapped_column(
        Enum(RoleSlug), nullable=False, default=RoleSlug.RESIDENT
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (Index("ix_users_email", "tenant_id", "email", unique=True),)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
