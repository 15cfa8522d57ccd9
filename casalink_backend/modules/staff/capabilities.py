"""Staff capabilities.

A closed set of flags replaces per-manager permission blobs. Role defaults
are defined here and nowhere else.
"""

import enum


class Capability(enum.IntFlag):
    """What a staff member may do within a tenant."""

    NONE = 0
    MANAGE_UNITS = enum.auto()
    MANAGE_RESIDENTS = enum.auto()
    MANAGE_VISITORS = enum.auto()
    VIEW_ANALYTICS = enum.auto()
    MANAGE_SETTINGS = enum.auto()


ALL_CAPABILITIES = (
    Capability.MANAGE_UNITS
    | Capability.MANAGE_RESIDENTS
    | Capability.MANAGE_VISITORS
    | Capability.VIEW_ANALYTICS
    | Capability.MANAGE_SETTINGS
)


class StaffRole(str, enum.Enum):
    """Roles a staff assignment can carry."""

    ADMIN = "admin"
    MANAGER = "manager"
    SECURITY = "security"


ROLE_DEFAULT_CAPABILITIES: dict[StaffRole, Capability] = {
    StaffRole.ADMIN: ALL_CAPABILITIES,
    StaffRole.MANAGER: (
        Capability.MANAGE_UNITS
        | Capability.MANAGE_RESIDENTS
        | Capability.MANAGE_VISITORS
        | Capability.VIEW_ANALYTICS
    ),
    StaffRole.SECURITY: Capability.MANAGE_VISITORS,
}


def capability_names(capabilities: Capability) -> list[str]:
    """Flag names set in ``capabilities``, in declaration order."""
    return [
        c.name.lower()
        for c in Capability
        if c is not Capability.NONE and c in capabilities
    ]


def parse_capabilities(names: list[str]) -> Capability:
    """Combine flag names into one value.

    Raises:
        ValueError: If a name is not a known capability
    """
    result = Capability.NONE
    for name in names:
        try:
            flag = Capability[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown capability '{name}'") from None
        result |= flag
    return result
