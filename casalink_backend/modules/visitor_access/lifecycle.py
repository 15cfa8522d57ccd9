"""Visitor request state machine.

    pending  --approve--> approved --complete--> completed
    pending  --deny-----> denied
    pending/approved --(now >= valid_until)--> expired

Expiry is derived on every read from ``valid_until``; no write is needed
for a lapsed request to be reported as expired. All functions here are pure.
"""

import enum
from datetime import datetime

from ...core.exceptions import InvalidTransitionError, ValidationError
from .models import VisitorState
from .schemas import VisitorRequestRecord


class VisitorAction(str, enum.Enum):
    APPROVE = "approve"
    DENY = "deny"
    COMPLETE = "complete"


# action -> (states it may start from, resulting state)
TRANSITIONS: dict[VisitorAction, tuple[frozenset[VisitorState], VisitorState]] = {
    VisitorAction.APPROVE: (frozenset({VisitorState.PENDING}), VisitorState.APPROVED),
    VisitorAction.DENY: (frozenset({VisitorState.PENDING}), VisitorState.DENIED),
    VisitorAction.COMPLETE: (frozenset({VisitorState.APPROVED}), VisitorState.COMPLETED),
}

LAPSABLE_STATES = frozenset({VisitorState.PENDING, VisitorState.APPROVED})


def truncate_to_seconds(value: datetime) -> datetime:
    return value.replace(microsecond=0)


def effective_state(
    state: VisitorState, valid_until: datetime, now: datetime
) -> VisitorState:
    """State reported to callers at ``now``."""
    if state in LAPSABLE_STATES and now >= valid_until:
        return VisitorState.EXPIRED
    return state


def project(record: VisitorRequestRecord, now: datetime) -> VisitorRequestRecord:
    """Copy of ``record`` carrying its effective state."""
    state = effective_state(record.state, record.valid_until, now)
    if state == record.state:
        return record
    return record.model_copy(update={"state": state})


def validate_window(valid_from: datetime, valid_until: datetime, now: datetime) -> None:
    """Check a new request's validity window.

    Raises:
        ValidationError: If the window is empty or starts in the past
    """
    if valid_from >= valid_until:
        raise ValidationError(
            "valid_from must be earlier than valid_until",
            field="valid_until",
            value=valid_until.isoformat(),
        )
    if valid_from < now:
        raise ValidationError(
            "valid_from must not be in the past",
            field="valid_from",
            value=valid_from.isoformat(),
        )


def plan_transition(
    record: VisitorRequestRecord, action: VisitorAction, now: datetime
) -> VisitorState | None:
    """Resolve the state an action moves a request to.

    Returns:
        The target state, or None when the request is already in it and the
        action is a no-op

    Raises:
        InvalidTransitionError: If the action is not allowed from the
            request's effective state
    """
    sources, target = TRANSITIONS[action]
    if record.state == target:
        return None

    current = effective_state(record.state, record.valid_until, now)
    if current not in sources:
        raise InvalidTransitionError(current.value, action.value)
    return target
