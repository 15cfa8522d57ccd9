"""Staff assignment API routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ...database import DBSession
from ..commons import BaseResponse
from . import services
from .capabilities import Capability
from .dependencies import require_capability
from .schemas import (
    StaffAssignmentCreate,
    StaffAssignmentResponse,
    StaffAssignmentUpdate,
    StaffCaller,
)

router = APIRouter(prefix="/staff", tags=["Staff"])

SettingsManager = Annotated[
    StaffCaller, Depends(require_capability(Capability.MANAGE_SETTINGS))
]


@router.post(
    "",
    response_model=BaseResponse[StaffAssignmentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def assign_staff(
    data: StaffAssignmentCreate,
    db: DBSession,
    caller: SettingsManager,
):
    """Assign a staff account to the caller's tenant."""
    assignment = await services.assign_staff(db, caller.user.tenant_id, data)

    return BaseResponse(
        success=True,
        message="Staff assigned successfully",
        data=StaffAssignmentResponse.model_validate(assignment),
    )


@router.get("", response_model=BaseResponse[list[StaffAssignmentResponse]])
async def list_staff(
    db: DBSession,
    caller: SettingsManager,
    include_inactive: bool = Query(False, description="Include revoked assignments"),
):
    """List staff assignments of the caller's tenant."""
    assignments = await services.list_staff(db, caller.user.tenant_id, include_inactive)

    return BaseResponse(
        success=True,
        message=f"Found {len(assignments)} staff assignments",
        data=[StaffAssignmentResponse.model_validate(a) for a in assignments],
    )


@router.put("/{assignment_id}", response_model=BaseResponse[StaffAssignmentResponse])
async def update_staff(
    assignment_id: UUID,
    data: StaffAssignmentUpdate,
    db: DBSession,
    caller: SettingsManager,
):
    """Change a staff member's role or capabilities."""
    assignment = await services.update_staff(
        db, caller.user.tenant_id, assignment_id, data
    )

    return BaseResponse(
        success=True,
        message="Staff assignment updated successfully",
        data=StaffAssignmentResponse.model_validate(assignment),
    )


@router.delete("/{assignment_id}", response_model=BaseResponse[StaffAssignmentResponse])
async def revoke_staff(
    assignment_id: UUID,
    db: DBSession,
    caller: SettingsManager,
):
    """Revoke a staff assignment."""
    assignment = await services.revoke_staff(db, caller.user.tenant_id, assignment_id)

    return BaseResponse(
        success=True,
        message="Staff assignment revoked",
        data=StaffAssignmentResponse.model_validate(assignment),
    )
