"""SQL implementation of the unit topology store."""

import uuid
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import ConflictError, ResourceNotFoundError
from ...core.logging import get_logger
from ..tenancy.models import Tenant
from .models import PropertyTopologyConfig, Unit, UnitStatus
from .repository import TopologySnapshot, UnitTopologyStore
from .schemas import TopologyConfig, UnitChange, UnitDraft, UnitRecord

logger = get_logger(__name__)


async def get_topology_config(
    db: AsyncSession, tenant_id: UUID
) -> PropertyTopologyConfig | None:
    """Get a tenant's topology configuration."""
    result = await db.execute(
        select(PropertyTopologyConfig)
        .where(PropertyTopologyConfig.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_units(db: AsyncSession, tenant_id: UUID) -> list[Unit]:
    """Get every unit of a tenant in generation order."""
    result = await db.execute(
        select(Unit)
        .where(Unit.tenant_id == tenant_id)
        .order_by(Unit.block_index, Unit.floor_index, Unit.slot_index)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def upsert_topology_config(
    db: AsyncSession, tenant_id: UUID, config: TopologyConfig
) -> PropertyTopologyConfig:
    """Create or replace the tenant's configuration row."""
    values = {
        "blocks": config.blocks,
        "floors_per_block": config.floors_per_block,
        "units_per_floor": config.units_per_floor,
        "naming_scheme": config.naming_scheme.model_dump(),
        "enabled_unit_types": [t.value for t in config.enabled_unit_types],
        "special_floors": config.special_floors.model_dump(),
        "excluded_unit_numbers": list(config.excluded_unit_numbers),
    }

    row = await get_topology_config(db, tenant_id)
    if row is None:
        row = PropertyTopologyConfig(tenant_id=tenant_id, **values)
        db.add(row)
    else:
        for field, value in values.items():
            setattr(row, field, value)
    await db.flush()
    return row


class SqlUnitTopologyStore(UnitTopologyStore):
    """Topology store backed by the ``units`` and ``tenants`` tables.

    The tenant row's ``topology_version`` is the compare-and-write guard for
    the whole topology.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_units(self, tenant_id: UUID) -> TopologySnapshot:
        result = await self.db.execute(
            select(Tenant.topology_version).where(Tenant.id == tenant_id)
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise ResourceNotFoundError("Tenant", tenant_id)

        config_row = await get_topology_config(self.db, tenant_id)
        units = await get_units(self.db, tenant_id)

        return TopologySnapshot(
            tenant_id=tenant_id,
            version=version,
            config=TopologyConfig.model_validate(config_row) if config_row else None,
            units=[UnitRecord.model_validate(u) for u in units],
        )

    async def save_units(
        self,
        tenant_id: UUID,
        expected_version: int,
        new_units: list[UnitDraft],
        changes: list[UnitChange],
        config: TopologyConfig | None = None,
    ) -> list[UnitRecord]:
        try:
            result = await self.db.execute(
                update(Tenant)
                .where(
                    and_(
                        Tenant.id == tenant_id,
                        Tenant.topology_version == expected_version,
                    )
                )
                .values(topology_version=expected_version + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConflictError(
                    f"Topology for tenant {tenant_id} changed since version "
                    f"{expected_version}"
                )

            if config is not None:
                await upsert_topology_config(self.db, tenant_id, config)

            created = [
                Unit(
                    id=uuid.uuid4(),
                    tenant_id=tenant_id,
                    status=UnitStatus.VACANT,
                    resident_emails=[],
                    primary_email=None,
                    notes=None,
                    **draft.model_dump(),
                )
                for draft in new_units
            ]
            self.db.add_all(created)

            for change in changes:
                await self.db.execute(
                    update(Unit)
                    .where(and_(Unit.id == change.unit_id, Unit.tenant_id == tenant_id))
                    .values(**change.values)
                    .execution_options(synchronize_session=False)
                )

            await self.db.commit()
        except ConflictError:
            await self.db.rollback()
            raise
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(
                "Unit write collided with a concurrent insert",
                extra={"tenant_id": str(tenant_id), "error": str(e.orig)},
            )
            raise ConflictError(
                f"Topology for tenant {tenant_id} was modified concurrently"
            ) from e

        return [UnitRecord.model_validate(u) for u in created]
