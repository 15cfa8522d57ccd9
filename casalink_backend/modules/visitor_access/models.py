"""Visitor access models.

Requests are audit records: they are transitioned, never deleted.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ...core.database_types import UUID as UUID_DB
from ...database import Base, TenantScoped, TimestampMixin


class VisitorState(str, enum.Enum):
    """Visitor request states.

    ``expired`` is normally derived at read time; the sweep may persist it.
    """

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    COMPLETED = "completed"
    EXPIRED = "expired"


class VisitorRequest(TenantScoped, TimestampMixin, Base):
    """A resident's request to admit one visitor within a time window."""

    __tablename__ = "visitor_requests"

    host_user_id: Mapped[uuid.UUID] = mapped_column(UUID_DB(), nullable=False)
    host_unit_id: Mapped[uuid.UUID | None] = mapped_column(UUID_DB(), nullable=True)
    visitor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    purpose: Mapped[str] = mapped_column(Text, nullable=False)
    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    valid_until: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    qr_token: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[VisitorState] = mapped_column(
        Enum(VisitorState), nullable=False, default=VisitorState.PENDING
    )
    decided_by: Mapped[uuid.UUID | None] = mapped_column(UUID_DB(), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_visitor_requests_state", "state", "valid_until"),
        Index("ix_visitor_requests_host", "tenant_id", "host_user_id"),
    )

    def __repr__(self) -> str:
        return f"<VisitorRequest(id={self.id}, visitor={self.visitor_name}, state={self.state})>"
