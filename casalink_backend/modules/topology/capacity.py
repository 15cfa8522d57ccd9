"""Capacity guard.

The only place the licensed-capacity invariant is evaluated:
non-excluded units must never exceed the plan's licensed units.
"""

from pydantic import BaseModel

from ...core.exceptions import CapacityExceededError


class CapacityCheck(BaseModel):
    ok: bool
    excess_by: int = 0


def check(current_active: int, delta: int, licensed_units: int) -> CapacityCheck:
    """Evaluate adding ``delta`` active units to ``current_active``."""
    excess = current_active + delta - licensed_units
    if excess > 0:
        return CapacityCheck(ok=False, excess_by=excess)
    return CapacityCheck(ok=True)


def ensure_capacity(current_active: int, delta: int, licensed_units: int) -> None:
    """Raise when the change would overshoot the licensed capacity.

    Raises:
        CapacityExceededError: Carrying the overshoot amount
    """
    result = check(current_active, delta, licensed_units)
    if not result.ok:
        raise CapacityExceededError(result.excess_by, licensed_units)
