"""Tenant API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from ...core.exceptions import ResourceNotFoundError
from ...database import DBSession
from ..auth.dependencies import CurrentUser
from ..commons import BaseResponse
from ..staff import Capability, StaffCaller, require_capability
from . import crud, services
from .schemas import (
    DirectoryUserCreate,
    DirectoryUserResponse,
    TenantCreate,
    TenantResponse,
)

router = APIRouter(prefix="/tenants", tags=["Tenants"])

ResidentManager = Annotated[
    StaffCaller, Depends(require_capability(Capability.MANAGE_RESIDENTS))
]


@router.get("/current", response_model=BaseResponse[TenantResponse])
async def get_current_tenant(db: DBSession, current_user: CurrentUser):
    """Get the caller's tenant and its licensed capacity."""
    tenant = await crud.get_tenant_by_id(db, current_user.tenant_id)
    if tenant is None:
        raise ResourceNotFoundError("Tenant", current_user.tenant_id)

    return BaseResponse(
        success=True,
        message="Tenant retrieved successfully",
        data=TenantResponse.model_validate(tenant),
    )


@router.post(
    "/current",
    response_model=BaseResponse[TenantResponse],
    status_code=status.HTTP_201_CREATED,
)
async def provision_tenant(
    data: TenantCreate, db: DBSession, current_user: CurrentUser
):
    """Provision the caller's tenant (admins only)."""
    tenant = await services.provision_tenant(db, current_user, data)

    return BaseResponse(
        success=True,
        message="Tenant provisioned successfully",
        data=TenantResponse.model_validate(tenant),
    )


@router.post(
    "/current/users",
    response_model=BaseResponse[DirectoryUserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register_directory_user(
    data: DirectoryUserCreate, db: DBSession, caller: ResidentManager
):
    """Register an account in the caller's resident directory."""
    user = await services.register_directory_user(
        db, caller.user, caller.user.tenant_id, data
    )

    return BaseResponse(
        success=True,
        message="User registered successfully",
        data=DirectoryUserResponse.model_validate(user),
    )
