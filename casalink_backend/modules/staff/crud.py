"""CRUD operations for staff assignments."""

from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .capabilities import Capability, StaffRole
from .models import StaffAssignment


async def get_assignment_by_id(
    db: AsyncSession, tenant_id: UUID, assignment_id: UUID
) -> StaffAssignment | None:
    """Get an assignment by ID within tenant scope."""
    result = await db.execute(
        select(StaffAssignment).where(
            and_(
                StaffAssignment.id == assignment_id,
                StaffAssignment.tenant_id == tenant_id,
            )
        )
    )
    return result.scalar_one_or_none()


async def get_active_assignment(
    db: AsyncSession, tenant_id: UUID, user_id: UUID
) -> StaffAssignment | None:
    """Get a user's active assignment in a tenant."""
    result = await db.execute(
        select(StaffAssignment).where(
            and_(
                StaffAssignment.tenant_id == tenant_id,
                StaffAssignment.user_id == user_id,
                StaffAssignment.is_active.is_(True),
            )
        )
    )
    return result.scalars().first()


async def list_assignments(
    db: AsyncSession, tenant_id: UUID, include_inactive: bool = False
) -> list[StaffAssignment]:
    """List a tenant's assignments, newest first."""
    query = select(StaffAssignment).where(StaffAssignment.tenant_id == tenant_id)
    if not include_inactive:
        query = query.where(StaffAssignment.is_active.is_(True))
    query = query.order_by(StaffAssignment.assigned_at.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


async def create_assignment(
    db: AsyncSession,
    tenant_id: UUID,
    user_id: UUID,
    email: str,
    role: StaffRole,
    capabilities: Capability,
) -> StaffAssignment:
    """Create an active assignment."""
    assignment = StaffAssignment(
        tenant_id=tenant_id,
        user_id=user_id,
        email=email,
        role=role,
        capabilities=int(capabilities),
        is_active=True,
    )
    db.add(assignment)
    await db.flush()
    return assignment
