"""Visitor access schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from ...core.utils import ensure_utc
from .models import VisitorState


class VisitorRequestCreate(BaseModel):
    """Resident submission of a visitor request."""

    visitor_name: str = Field(..., min_length=1, max_length=255)
    purpose: str = Field(..., min_length=1)
    valid_from: datetime
    valid_until: datetime
    host_unit_id: UUID | None = None


class VisitorRequestRecord(BaseModel):
    """Visitor request as stored, or as projected with its effective state."""

    id: UUID
    tenant_id: UUID
    host_user_id: UUID
    host_unit_id: UUID | None = None
    visitor_name: str
    purpose: str
    valid_from: datetime
    valid_until: datetime
    qr_token: str
    state: VisitorState
    decided_by: UUID | None = None
    decided_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True

    @field_validator(
        "valid_from", "valid_until", "decided_at", "completed_at", "created_at"
    )
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None


class TokenValidationRequest(BaseModel):
    qr_token: str = Field(..., min_length=1)


class TokenValidation(BaseModel):
    """Outcome of a successful token validation."""

    request_id: UUID
    state: VisitorState
    visitor_name: str
    valid_from: datetime
    valid_until: datetime


class GateDecision(BaseModel):
    """Whether the security console should admit the bearer of a token."""

    admit: bool
    reason: str
    request_id: UUID | None = None
    state: VisitorState | None = None
    visitor_name: str | None = None


class SweepResult(BaseModel):
    expired_count: int
    skipped_count: int = 0
