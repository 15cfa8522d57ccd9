"""Tenant schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from ..auth.models import RoleSlug


class TenantResponse(BaseModel):
    """Schema for tenant response."""

    id: UUID
    name: str
    licensed_units: int = Field(..., ge=0)
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TenantCreate(BaseModel):
    """Provision the caller's tenant."""

    name: str = Field(..., min_length=1, max_length=255)
    licensed_units: int = Field(..., ge=0)


class DirectoryUserCreate(BaseModel):
    """Register an account in the tenant's resident directory."""

    email: EmailStr
    full_name: str | None = Field(default=None, max_length=255)
    role: RoleSlug = RoleSlug.RESIDENT


class DirectoryUserResponse(BaseModel):
    id: UUID
    email: str
    full_name: str | None = None
    role: RoleSlug
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
