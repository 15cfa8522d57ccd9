"""CRUD operations for tenants."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import ResourceNotFoundError
from .models import Tenant
from .repository import TenantCapacitySource


async def get_tenant_by_id(db: AsyncSession, tenant_id: UUID) -> Tenant | None:
    """Get a tenant by ID."""
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalar_one_or_none()


async def create_tenant(
    db: AsyncSession,
    name: str,
    licensed_units: int,
    tenant_id: UUID | None = None,
) -> Tenant:
    """Create a new tenant."""
    tenant = Tenant(name=name, licensed_units=licensed_units, topology_version=0)
    if tenant_id is not None:
        tenant.id = tenant_id
    db.add(tenant)
    await db.flush()
    return tenant


class SqlTenantCapacitySource(TenantCapacitySource):
    """Reads licensed capacity from the tenants table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_licensed_units(self, tenant_id: UUID) -> int:
        result = await self.db.execute(
            select(Tenant.licensed_units).where(Tenant.id == tenant_id)
        )
        licensed = result.scalar_one_or_none()
        if licensed is None:
            raise ResourceNotFoundError("Tenant", tenant_id)
        return licensed
