"""Property topology API routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ...config import settings
from ...core.pagination import PaginatedResults
from ...database import DBSession
from ..auth.directory import ResidentDirectory, SqlResidentDirectory
from ..commons import BaseResponse
from ..staff import Capability, StaffCaller, require_capability
from ..tenancy.crud import SqlTenantCapacitySource
from ..tenancy.repository import TenantCapacitySource
from . import services
from .crud import SqlUnitTopologyStore
from .models import UnitStatus, UnitType
from .repository import UnitTopologyStore
from .schemas import (
    BulkUpdateResult,
    CapacitySummary,
    GenerateUnitsRequest,
    GenerationResult,
    ResidentLinkRequest,
    ResidentLinkResult,
    TopologyConfig,
    UnitExclusionRequest,
    UnitGrid,
    UnitQuery,
    UnitRecord,
    UnitStatusRequest,
    UnitTypeRequest,
    UnitUpdate,
)

router = APIRouter(prefix="/topology", tags=["Property Topology"])


def get_topology_store(db: DBSession) -> UnitTopologyStore:
    return SqlUnitTopologyStore(db)


def get_capacity_source(db: DBSession) -> TenantCapacitySource:
    return SqlTenantCapacitySource(db)


def get_resident_directory(db: DBSession) -> ResidentDirectory:
    return SqlResidentDirectory(db)


TopologyStore = Annotated[UnitTopologyStore, Depends(get_topology_store)]
CapacitySource = Annotated[TenantCapacitySource, Depends(get_capacity_source)]
Directory = Annotated[ResidentDirectory, Depends(get_resident_directory)]

UnitManager = Annotated[StaffCaller, Depends(require_capability(Capability.MANAGE_UNITS))]
ResidentManager = Annotated[
    StaffCaller, Depends(require_capability(Capability.MANAGE_RESIDENTS))
]
SettingsManager = Annotated[
    StaffCaller, Depends(require_capability(Capability.MANAGE_SETTINGS))
]
AnalyticsViewer = Annotated[
    StaffCaller, Depends(require_capability(Capability.VIEW_ANALYTICS))
]


# ----- Configuration Endpoints -----


@router.get("/config", response_model=BaseResponse[TopologyConfig])
async def get_topology_config(store: TopologyStore, caller: UnitManager):
    """Get the stored topology configuration."""
    config = await services.get_topology_config(store, caller.user.tenant_id)
    return BaseResponse(success=True, message="Topology configuration", data=config)


@router.put("/config", response_model=BaseResponse[TopologyConfig])
async def save_topology_config(
    config: TopologyConfig, store: TopologyStore, caller: SettingsManager
):
    """Store a topology configuration without generating units."""
    saved = await services.save_topology_config(store, caller.user.tenant_id, config)
    return BaseResponse(
        success=True, message="Topology configuration saved", data=saved
    )


@router.post(
    "/generate",
    response_model=BaseResponse[GenerationResult],
    status_code=status.HTTP_201_CREATED,
)
async def generate_units(
    data: GenerateUnitsRequest,
    store: TopologyStore,
    capacity_source: CapacitySource,
    caller: UnitManager,
):
    """Generate units for every slot that has none yet."""
    result = await services.generate_units(
        store, capacity_source, caller.user.tenant_id, data.config
    )
    return BaseResponse(
        success=True,
        message=f"Generated {result.created_count} units",
        data=result,
    )


# ----- Unit Endpoints -----


@router.get("/units", response_model=BaseResponse[PaginatedResults[UnitRecord]])
async def search_units(
    store: TopologyStore,
    caller: UnitManager,
    search: str | None = Query(None, description="Unit number substring"),
    unit_status: UnitStatus | None = Query(None, alias="status"),
    unit_type: UnitType | None = Query(None),
    excluded: bool | None = Query(None),
    block_index: int | None = Query(None, ge=1),
    floor_index: int | None = Query(None, ge=0),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=settings.unit_search_max_page_size),
):
    """Search units; every supplied filter must match."""
    query = UnitQuery(
        search=search,
        status=unit_status,
        unit_type=unit_type,
        excluded=excluded,
        block_index=block_index,
        floor_index=floor_index,
        page=page,
        page_size=page_size,
    )
    results = await services.search_units(store, caller.user.tenant_id, query)
    return BaseResponse(
        success=True,
        message=f"Found {results.total} units",
        data=results,
    )


@router.get("/units/{unit_id}", response_model=BaseResponse[UnitRecord])
async def get_unit(unit_id: UUID, store: TopologyStore, caller: UnitManager):
    """Get one unit."""
    unit = await services.get_unit(store, caller.user.tenant_id, unit_id)
    return BaseResponse(success=True, message="Unit", data=unit)


@router.patch("/units/{unit_id}", response_model=BaseResponse[UnitRecord])
async def update_unit(
    unit_id: UUID, data: UnitUpdate, store: TopologyStore, caller: UnitManager
):
    """Edit a unit's notes or status."""
    unit = await services.update_unit(store, caller.user.tenant_id, unit_id, data)
    return BaseResponse(success=True, message="Unit updated", data=unit)


@router.post("/units/exclusion", response_model=BaseResponse[BulkUpdateResult])
async def toggle_exclusion(
    data: UnitExclusionRequest,
    store: TopologyStore,
    capacity_source: CapacitySource,
    caller: UnitManager,
):
    """Exclude or re-include units."""
    result = await services.toggle_exclusion(
        store, capacity_source, caller.user.tenant_id, data.unit_ids, data.excluded
    )
    action = "excluded" if data.excluded else "included"
    return BaseResponse(
        success=True,
        message=f"{result.updated_count} units {action}",
        data=result,
    )


@router.post("/units/type", response_model=BaseResponse[BulkUpdateResult])
async def bulk_set_unit_type(
    data: UnitTypeRequest, store: TopologyStore, caller: UnitManager
):
    """Reassign the type of several units."""
    result = await services.bulk_set_unit_type(
        store, caller.user.tenant_id, data.unit_ids, data.unit_type
    )
    return BaseResponse(
        success=True,
        message=f"{result.updated_count} units updated",
        data=result,
    )


@router.post("/units/status", response_model=BaseResponse[BulkUpdateResult])
async def bulk_set_status(
    data: UnitStatusRequest, store: TopologyStore, caller: UnitManager
):
    """Set the occupancy status of several units."""
    result = await services.bulk_set_status(
        store, caller.user.tenant_id, data.unit_ids, data.status
    )
    return BaseResponse(
        success=True,
        message=f"{result.updated_count} units updated",
        data=result,
    )


# ----- Resident Endpoints -----


@router.post(
    "/units/{unit_id}/residents", response_model=BaseResponse[ResidentLinkResult]
)
async def link_residents(
    unit_id: UUID,
    data: ResidentLinkRequest,
    store: TopologyStore,
    directory: Directory,
    caller: ResidentManager,
):
    """Link resident emails to a unit."""
    result = await services.link_residents(
        store,
        directory,
        caller.user.tenant_id,
        unit_id,
        [str(e) for e in data.emails],
        str(data.primary_email) if data.primary_email else None,
    )
    invites = sum(1 for lookup in result.lookups if lookup.invite_needed)
    return BaseResponse(
        success=True,
        message=f"Residents linked; {invites} need an invite",
        data=result,
    )


@router.delete(
    "/units/{unit_id}/residents/{email}", response_model=BaseResponse[UnitRecord]
)
async def unlink_resident(
    unit_id: UUID,
    email: str,
    store: TopologyStore,
    caller: ResidentManager,
    new_primary_email: str | None = Query(
        None, description="Required when removing the primary resident"
    ),
):
    """Remove one resident email from a unit."""
    unit = await services.unlink_resident(
        store, caller.user.tenant_id, unit_id, email, new_primary_email
    )
    return BaseResponse(success=True, message="Resident unlinked", data=unit)


# ----- Overview Endpoints -----


@router.get("/grid", response_model=BaseResponse[UnitGrid])
async def get_unit_grid(store: TopologyStore, caller: UnitManager):
    """Units grouped by block and floor."""
    grid = await services.get_unit_grid(store, caller.user.tenant_id)
    return BaseResponse(success=True, message="Unit grid", data=grid)


@router.get("/capacity", response_model=BaseResponse[CapacitySummary])
async def get_capacity(
    store: TopologyStore,
    capacity_source: CapacitySource,
    caller: AnalyticsViewer,
):
    """Licensed and active unit counts."""
    summary = await services.capacity_summary(
        store, capacity_source, caller.user.tenant_id
    )
    return BaseResponse(success=True, message="Capacity summary", data=summary)
