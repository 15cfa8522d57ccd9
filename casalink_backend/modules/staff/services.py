"""Staff assignment business logic services."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import ResourceAlreadyExistsError, ResourceNotFoundError
from ...core.logging import get_logger
from ...core.utils import normalize_email, utc_now
from ..auth.models import RoleSlug
from ..auth.schemas import AuthenticatedUser
from . import crud
from .capabilities import (
    ALL_CAPABILITIES,
    ROLE_DEFAULT_CAPABILITIES,
    Capability,
    parse_capabilities,
)
from .models import StaffAssignment
from .schemas import StaffAssignmentCreate, StaffAssignmentUpdate

logger = get_logger(__name__)


async def assign_staff(
    db: AsyncSession, tenant_id: UUID, data: StaffAssignmentCreate
) -> StaffAssignment:
    """Assign a staff account to a tenant.

    Args:
        db: Database session
        tenant_id: Tenant to assign to
        data: User, role and optional explicit capabilities

    Returns:
        Created assignment

    Raises:
        ResourceAlreadyExistsError: If the user already has an active assignment
    """
    existing = await crud.get_active_assignment(db, tenant_id, data.user_id)
    if existing is not None:
        raise ResourceAlreadyExistsError("StaffAssignment", data.user_id)

    if data.capabilities is None:
        capabilities = ROLE_DEFAULT_CAPABILITIES[data.role]
    else:
        capabilities = parse_capabilities(data.capabilities)

    assignment = await crud.create_assignment(
        db,
        tenant_id=tenant_id,
        user_id=data.user_id,
        email=normalize_email(data.email),
        role=data.role,
        capabilities=capabilities,
    )
    await db.commit()
    await db.refresh(assignment)

    logger.info(
        "Staff assigned",
        extra={"user_id": str(data.user_id), "role": data.role.value},
    )
    return assignment


async def update_staff(
    db: AsyncSession,
    tenant_id: UUID,
    assignment_id: UUID,
    data: StaffAssignmentUpdate,
) -> StaffAssignment:
    """Change an active assignment's role or capabilities.

    A role change without explicit capabilities resets them to the new
    role's defaults.

    Raises:
        ResourceNotFoundError: If no active assignment has this id
    """
    assignment = await crud.get_assignment_by_id(db, tenant_id, assignment_id)
    if assignment is None or not assignment.is_active:
        raise ResourceNotFoundError("StaffAssignment", assignment_id)

    if data.role is not None:
        assignment.role = data.role
        if data.capabilities is None:
            assignment.capabilities = int(ROLE_DEFAULT_CAPABILITIES[data.role])
    if data.capabilities is not None:
        assignment.capabilities = int(parse_capabilities(data.capabilities))

    await db.commit()
    await db.refresh(assignment)
    return assignment


async def revoke_staff(
    db: AsyncSession, tenant_id: UUID, assignment_id: UUID
) -> StaffAssignment:
    """Deactivate an assignment. Revoking twice is a no-op.

    Raises:
        ResourceNotFoundError: If the assignment does not exist
    """
    assignment = await crud.get_assignment_by_id(db, tenant_id, assignment_id)
    if assignment is None:
        raise ResourceNotFoundError("StaffAssignment", assignment_id)

    if assignment.is_active:
        assignment.is_active = False
        assignment.revoked_at = utc_now()
        await db.commit()
        await db.refresh(assignment)
        logger.info("Staff revoked", extra={"user_id": str(assignment.user_id)})

    return assignment


async def list_staff(
    db: AsyncSession, tenant_id: UUID, include_inactive: bool = False
) -> list[StaffAssignment]:
    return await crud.list_assignments(db, tenant_id, include_inactive)


async def resolve_capabilities(
    db: AsyncSession, caller: AuthenticatedUser
) -> Capability:
    """Capabilities the caller holds in its tenant.

    Admins hold every capability. Other staff hold their active
    assignment's flags; residents and unassigned callers hold none.
    """
    if caller.role_slug == RoleSlug.ADMIN:
        return ALL_CAPABILITIES
    if caller.role_slug == RoleSlug.RESIDENT:
        return Capability.NONE

    assignment = await crud.get_active_assignment(db, caller.tenant_id, caller.user_id)
    if assignment is None:
        return Capability.NONE
    return assignment.capability_flags
