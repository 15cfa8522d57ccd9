from .repository import TenantCapacitySource
from .routers import router

__all__ = ["TenantCapacitySource", "router"]
