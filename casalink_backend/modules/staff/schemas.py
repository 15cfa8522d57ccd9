"""Staff assignment schemas."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..auth.schemas import AuthenticatedUser
from .capabilities import Capability, StaffRole, capability_names, parse_capabilities


def _check_names(names: list[str] | None) -> list[str] | None:
    if names is not None:
        parse_capabilities(names)
    return names


class StaffAssignmentCreate(BaseModel):
    """Assign a staff account to the caller's tenant.

    Capabilities default to the role's set when omitted.
    """

    user_id: UUID
    email: EmailStr
    role: StaffRole
    capabilities: list[str] | None = None

    validate_capabilities = field_validator("capabilities")(_check_names)


class StaffAssignmentUpdate(BaseModel):
    role: StaffRole | None = None
    capabilities: list[str] | None = None

    validate_capabilities = field_validator("capabilities")(_check_names)


class StaffAssignmentResponse(BaseModel):
    id: UUID
    user_id: UUID
    email: str
    role: StaffRole
    capabilities: list[str] = Field(default_factory=list)
    is_active: bool
    assigned_at: datetime
    revoked_at: datetime | None = None

    class Config:
        from_attributes = True

    @field_validator("capabilities", mode="before")
    @classmethod
    def expand_flags(cls, v):
        if isinstance(v, int):
            return capability_names(Capability(v))
        return v


@dataclass(frozen=True)
class StaffCaller:
    """An authenticated caller with its resolved capabilities."""

    user: AuthenticatedUser
    capabilities: Capability

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities
