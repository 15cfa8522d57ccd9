"""Tenant provisioning business logic services."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import (
    PermissionError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
)
from ...core.logging import get_logger
from ...core.utils import normalize_email
from ..auth import crud as auth_crud
from ..auth.models import RoleSlug, User
from ..auth.schemas import AuthenticatedUser
from . import crud
from .models import Tenant
from .schemas import DirectoryUserCreate, TenantCreate

logger = get_logger(__name__)


async def provision_tenant(
    db: AsyncSession, caller: AuthenticatedUser, data: TenantCreate
) -> Tenant:
    """Create the tenant named by the caller's token.

    The identity provider assigns tenant ids; this records the property and
    its plan capacity so topology and directory writes have a tenant to
    belong to.

    Args:
        db: Database session
        caller: Admin whose token carries the tenant id
        data: Property name and licensed unit count

    Returns:
        Created tenant

    Raises:
        PermissionError: If the caller is not an admin
        ResourceAlreadyExistsError: If the tenant is already provisioned
    """
    if not caller.has_role(RoleSlug.ADMIN):
        raise PermissionError("provision", "tenants")

    existing = await crud.get_tenant_by_id(db, caller.tenant_id)
    if existing is not None:
        raise ResourceAlreadyExistsError("Tenant", caller.tenant_id)

    tenant = await crud.create_tenant(
        db, data.name.strip(), data.licensed_units, tenant_id=caller.tenant_id
    )
    await db.commit()
    await db.refresh(tenant)

    logger.info(
        "Tenant provisioned",
        extra={"tenant_id": str(tenant.id), "licensed_units": tenant.licensed_units},
    )
    return tenant


async def register_directory_user(
    db: AsyncSession,
    caller: AuthenticatedUser,
    tenant_id: UUID,
    data: DirectoryUserCreate,
) -> User:
    """Add an account to the tenant's resident directory.

    Only admins may register accounts with a role other than resident.

    Raises:
        PermissionError: If a non-admin registers a non-resident account
        ResourceNotFoundError: If the tenant is not provisioned
        ResourceAlreadyExistsError: If the email is already registered
    """
    if data.role != RoleSlug.RESIDENT and not caller.has_role(RoleSlug.ADMIN):
        raise PermissionError(f"register {data.role.value}", "directory users")

    if await crud.get_tenant_by_id(db, tenant_id) is None:
        raise ResourceNotFoundError("Tenant", tenant_id)

    email = normalize_email(str(data.email))
    if await auth_crud.get_user_by_email(db, tenant_id, email) is not None:
        raise ResourceAlreadyExistsError("User", email)

    user = await auth_crud.create_user(
        db, tenant_id, email, role=data.role, full_name=data.full_name
    )
    await db.commit()
    await db.refresh(user)

    logger.info(
        "Directory user registered",
        extra={"user_id": str(user.id), "role": data.role.value},
    )
    return user
