"""Capability-gating dependencies for FastAPI."""

from typing import Annotated

from fastapi import Depends

from ...core.exceptions import PermissionError
from ...database import DBSession
from ..auth.dependencies import CurrentUser
from . import services
from .capabilities import Capability, capability_names
from .schemas import StaffCaller


async def get_staff_caller(db: DBSession, current_user: CurrentUser) -> StaffCaller:
    """Resolve the caller's capabilities in its tenant."""
    capabilities = await services.resolve_capabilities(db, current_user)
    return StaffCaller(user=current_user, capabilities=capabilities)


def require_capability(capability: Capability):
    """Dependency factory rejecting callers without ``capability``.

    Usage:
        @router.post("/topology/generate")
        async def generate(
            caller: StaffCaller = Depends(require_capability(Capability.MANAGE_UNITS))
        ):
            ...
    """
    action = "use " + " / ".join(capability_names(capability)) + " on"

    async def capability_checker(
        caller: Annotated[StaffCaller, Depends(get_staff_caller)],
    ) -> StaffCaller:
        if not caller.can(capability):
            raise PermissionError(action, "tenant resources")
        return caller

    return capability_checker


CallerContext = Annotated[StaffCaller, Depends(get_staff_caller)]
