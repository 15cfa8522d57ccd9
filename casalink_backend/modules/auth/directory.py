"""Resident directory.

Resolves an email to an existing account or reports that an invite is
needed. Both outcomes are valid link targets.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...core.utils import normalize_email
from . import crud
from .schemas import ResidentLookup


class ResidentDirectory(ABC):
    """Collaborator contract for resident email resolution."""

    @abstractmethod
    async def resolve(self, tenant_id: UUID, email: str) -> ResidentLookup:
        """Resolve one email within a tenant."""


class SqlResidentDirectory(ResidentDirectory):
    """Looks emails up in the users table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, tenant_id: UUID, email: str) -> ResidentLookup:
        email = normalize_email(email)
        user = await crud.get_user_by_email(self.db, tenant_id, email)
        if user is None or not user.is_active:
            return ResidentLookup(email=email, invite_needed=True)
        return ResidentLookup(email=email, user_id=user.id, invite_needed=False)
