"""Identity and resident directory module."""

from .dependencies import CurrentUser, get_current_user
from .directory import ResidentDirectory, SqlResidentDirectory
from .jwt_service import create_access_token, read_access_token
from .models import RoleSlug, User
from .schemas import AuthenticatedUser, ResidentLookup

__all__ = [
    "User",
    "RoleSlug",
    "AuthenticatedUser",
    "ResidentLookup",
    "CurrentUser",
    "get_current_user",
    "create_access_token",
    "read_access_token",
    "ResidentDirectory",
    "SqlResidentDirectory",
]
