"""Authentication schemas."""

from uuid import UUID

from pydantic import BaseModel

from .models import RoleSlug


class AuthenticatedUser(BaseModel):
    """Caller identity resolved from the access token."""

    user_id: UUID
    tenant_id: UUID
    email: str
    role_slug: RoleSlug

    def has_role(self, *roles: RoleSlug) -> bool:
        return self.role_slug in roles


class ResidentLookup(BaseModel):
    """Outcome of resolving an email in the resident directory."""

    email: str
    user_id: UUID | None = None
    invite_needed: bool
