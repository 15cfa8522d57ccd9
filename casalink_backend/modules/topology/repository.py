"""Unit topology store contract.

The store owns a tenant's units. Writes are compare-and-write against the
topology version read by ``load_units``: a write based on a stale snapshot
is refused with ``ConflictError`` and nothing is applied.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from pydantic import BaseModel, Field

from .schemas import TopologyConfig, UnitChange, UnitDraft, UnitRecord


class TopologySnapshot(BaseModel):
    """A tenant's units and configuration as of one topology version."""

    tenant_id: UUID
    version: int
    config: TopologyConfig | None = None
    units: list[UnitRecord] = Field(default_factory=list)

    @property
    def active_count(self) -> int:
        return sum(1 for u in self.units if not u.excluded)

    @property
    def excluded_count(self) -> int:
        return len(self.units) - self.active_count

    def units_by_id(self) -> dict[UUID, UnitRecord]:
        return {u.id: u for u in self.units}


class UnitTopologyStore(ABC):
    """Durable set of units per tenant."""

    @abstractmethod
    async def load_units(self, tenant_id: UUID) -> TopologySnapshot:
        """Read the current topology.

        Raises:
            ResourceNotFoundError: If the tenant does not exist
        """

    @abstractmethod
    async def save_units(
        self,
        tenant_id: UUID,
        expected_version: int,
        new_units: list[UnitDraft],
        changes: list[UnitChange],
        config: TopologyConfig | None = None,
    ) -> list[UnitRecord]:
        """Atomically insert drafts, apply changes and optionally store config.

        Returns:
            The created units, with their assigned ids

        Raises:
            ConflictError: If the topology changed since ``expected_version``
        """
