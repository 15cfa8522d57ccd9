"""Tenant capacity source contract."""

from abc import ABC, abstractmethod
from uuid import UUID


class TenantCapacitySource(ABC):
    """Supplies the licensed unit count from a tenant's commercial plan."""

    @abstractmethod
    async def get_licensed_units(self, tenant_id: UUID) -> int:
        """Return the plan's licensed unit capacity.

        Raises:
            ResourceNotFoundError: If the tenant does not exist
        """
