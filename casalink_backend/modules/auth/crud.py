"""CRUD operations for directory users."""

from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RoleSlug, User


async def get_user_by_email(
    db: AsyncSession, tenant_id: UUID, email: str
) -> User | None:
    """Get a user by (normalized) email within tenant scope."""
    result = await db.execute(
        select(User).where(and_(User.tenant_id == tenant_id, User.email == email))
    )
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    tenant_id: UUID,
    email: str,
    role: RoleSlug = RoleSlug.RESIDENT,
    full_name: str | None = None,
    is_active: bool = True,
) -> User:
    """Create a directory user."""
    user = User(
        tenant_id=tenant_id,
        email=email,
        role=role,
        full_name=full_name,
        is_active=is_active,
    )
    db.add(user)
    await db.flush()
    return user
