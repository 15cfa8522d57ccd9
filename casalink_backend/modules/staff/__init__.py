from .capabilities import ROLE_DEFAULT_CAPABILITIES, Capability, StaffRole
from .dependencies import CallerContext, get_staff_caller, require_capability
from .routers import router
from .schemas import StaffCaller

__all__ = [
    "Capability",
    "StaffRole",
    "ROLE_DEFAULT_CAPABILITIES",
    "StaffCaller",
    "CallerContext",
    "get_staff_caller",
    "require_capability",
    "router",
]
