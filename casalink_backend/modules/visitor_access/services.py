"""Visitor access business logic services.

Every read reports the effective state, so a lapsed request shows as
expired whether or not the sweep has persisted it. Transitions are
compare-and-write on (request id, expected state).
"""

import asyncio
import hmac
import uuid
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import settings
from ...core.concurrency import retry_on_conflict
from ...core.exceptions import (
    ConflictError,
    PermissionError,
    ResourceNotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
)
from ...core.logging import get_logger
from ...core.utils import ensure_utc, utc_now
from ..auth.models import RoleSlug
from ..auth.schemas import AuthenticatedUser
from ..staff.capabilities import Capability
from ..staff.schemas import StaffCaller
from . import lifecycle
from .lifecycle import VisitorAction
from .models import VisitorState
from .repository import VisitorRequestStore
from .schemas import (
    GateDecision,
    SweepResult,
    TokenValidation,
    VisitorRequestCreate,
    VisitorRequestRecord,
)
from .tokens import QrTokenCodec

logger = get_logger(__name__)

CREATOR_ROLES = (RoleSlug.RESIDENT, RoleSlug.ADMIN)
DECIDER_ROLES = (RoleSlug.SECURITY, RoleSlug.ADMIN)


def _ensure_decider(caller: StaffCaller, action: str) -> None:
    if not caller.user.has_role(*DECIDER_ROLES) or not caller.can(
        Capability.MANAGE_VISITORS
    ):
        raise PermissionError(action, "visitor requests")


async def _load(
    store: VisitorRequestStore, tenant_id: UUID, request_id: UUID
) -> VisitorRequestRecord:
    record = await store.get(tenant_id, request_id)
    if record is None:
        raise ResourceNotFoundError("VisitorRequest", request_id)
    return record


# ----- Creation & Reads -----


async def create_request(
    store: VisitorRequestStore,
    codec: QrTokenCodec,
    caller: AuthenticatedUser,
    data: VisitorRequestCreate,
    now: datetime | None = None,
) -> VisitorRequestRecord:
    """Create a pending visitor request and issue its QR token.

    Validity instants are truncated to whole seconds, the resolution of
    the token's embedded expiry.

    Args:
        store: Visitor request store
        codec: QR token codec
        caller: Resident or admin creating the request
        data: Visitor, purpose and validity window
        now: Evaluation instant, defaults to the current time

    Returns:
        The stored request

    Raises:
        PermissionError: If the caller is neither resident nor admin
        ValidationError: If the window is empty, starts in the past or the
            purpose is blank
    """
    if not caller.has_role(*CREATOR_ROLES):
        raise PermissionError("create", "visitor requests")

    now = lifecycle.truncate_to_seconds(now or utc_now())
    valid_from = lifecycle.truncate_to_seconds(ensure_utc(data.valid_from))
    valid_until = lifecycle.truncate_to_seconds(ensure_utc(data.valid_until))

    purpose = data.purpose.strip()
    visitor_name = data.visitor_name.strip()
    if not purpose:
        raise ValidationError("Purpose must not be empty", field="purpose")
    if not visitor_name:
        raise ValidationError("Visitor name must not be empty", field="visitor_name")
    lifecycle.validate_window(valid_from, valid_until, now)

    request_id = uuid.uuid4()
    record = VisitorRequestRecord(
        id=request_id,
        tenant_id=caller.tenant_id,
        host_user_id=caller.user_id,
        host_unit_id=data.host_unit_id,
        visitor_name=visitor_name,
        purpose=purpose,
        valid_from=valid_from,
        valid_until=valid_until,
        qr_token=codec.issue(request_id, caller.tenant_id, valid_until),
        state=VisitorState.PENDING,
    )
    saved = await store.insert(record)

    logger.info(
        "Visitor request created",
        extra={"request_id": str(request_id), "valid_until": valid_until.isoformat()},
    )
    return saved


async def get_request(
    store: VisitorRequestStore,
    caller: AuthenticatedUser,
    request_id: UUID,
    now: datetime | None = None,
) -> VisitorRequestRecord:
    """Get one request with its effective state.

    Residents only see their own requests.

    Raises:
        ResourceNotFoundError: If the request does not exist or is not
            visible to the caller
    """
    record = await _load(store, caller.tenant_id, request_id)
    if caller.role_slug == RoleSlug.RESIDENT and record.host_user_id != caller.user_id:
        raise ResourceNotFoundError("VisitorRequest", request_id)
    return lifecycle.project(record, now or utc_now())


async def list_requests(
    store: VisitorRequestStore,
    caller: AuthenticatedUser,
    state: VisitorState | None = None,
    now: datetime | None = None,
) -> list[VisitorRequestRecord]:
    """List requests by effective state; residents see their own."""
    now = now or utc_now()
    host_user_id = caller.user_id if caller.role_slug == RoleSlug.RESIDENT else None

    records = await store.list_requests(caller.tenant_id, host_user_id)
    projected = [lifecycle.project(r, now) for r in records]
    if state is not None:
        projected = [r for r in projected if r.state == state]
    return projected


# ----- Transitions -----


async def _transition(
    store: VisitorRequestStore,
    caller: StaffCaller,
    request_id: UUID,
    action: VisitorAction,
    now: datetime | None,
) -> VisitorRequestRecord:
    tenant_id = caller.user.tenant_id

    async def attempt() -> VisitorRequestRecord:
        current = now or utc_now()
        record = await _load(store, tenant_id, request_id)
        target = lifecycle.plan_transition(record, action, current)
        if target is None:
            return record

        values: dict = {"state": target}
        if action == VisitorAction.COMPLETE:
            values["completed_at"] = current
        else:
            values["decided_by"] = caller.user.user_id
            values["decided_at"] = current

        updated = await store.compare_and_set(tenant_id, request_id, record.state, values)
        logger.info(
            "Visitor request transitioned",
            extra={
                "request_id": str(request_id),
                "from_state": record.state.value,
                "to_state": target.value,
            },
        )
        return updated

    result = await retry_on_conflict(
        attempt, settings.conflict_retry_limit, f"visitor request {action.value}"
    )
    return lifecycle.project(result, now or utc_now())


async def approve_request(
    store: VisitorRequestStore,
    caller: StaffCaller,
    request_id: UUID,
    now: datetime | None = None,
) -> VisitorRequestRecord:
    """Approve a pending request before its window ends.

    Approving an approved request returns it unchanged.

    Raises:
        PermissionError: If the caller is not security/admin with MANAGE_VISITORS
        InvalidTransitionError: If the request is not effectively pending
    """
    _ensure_decider(caller, "approve")
    return await _transition(store, caller, request_id, VisitorAction.APPROVE, now)


async def deny_request(
    store: VisitorRequestStore,
    caller: StaffCaller,
    request_id: UUID,
    now: datetime | None = None,
) -> VisitorRequestRecord:
    """Deny a pending request before its window ends. Denial is terminal.

    Raises:
        PermissionError: If the caller is not security/admin with MANAGE_VISITORS
        InvalidTransitionError: If the request is not effectively pending
    """
    _ensure_decider(caller, "deny")
    return await _transition(store, caller, request_id, VisitorAction.DENY, now)


async def complete_request(
    store: VisitorRequestStore,
    caller: StaffCaller,
    request_id: UUID,
    now: datetime | None = None,
) -> VisitorRequestRecord:
    """Mark an approved visit as finished.

    Raises:
        PermissionError: If the caller is not security/admin with MANAGE_VISITORS
        InvalidTransitionError: If the request is not effectively approved
    """
    _ensure_decider(caller, "complete")
    return await _transition(store, caller, request_id, VisitorAction.COMPLETE, now)


# ----- Token Validation -----


async def validate_token(
    store: VisitorRequestStore,
    codec: QrTokenCodec,
    caller: AuthenticatedUser,
    token: str,
    now: datetime | None = None,
) -> TokenValidation:
    """Validate a scanned QR token and report the request's live state.

    Raises:
        TokenInvalidError: If the signature does not verify, the token
            belongs to another tenant or is not the request's current token
        TokenExpiredError: If the embedded expiry has passed, whatever the
            stored state
    """
    now = now or utc_now()
    claims = codec.verify(token, now)
    if claims.tenant_id != caller.tenant_id:
        raise TokenInvalidError()

    record = await store.get(caller.tenant_id, claims.request_id)
    if record is None or not hmac.compare_digest(
        record.qr_token.encode(), token.encode()
    ):
        raise TokenInvalidError()

    projected = lifecycle.project(record, now)
    return TokenValidation(
        request_id=projected.id,
        state=projected.state,
        visitor_name=projected.visitor_name,
        valid_from=projected.valid_from,
        valid_until=projected.valid_until,
    )


async def evaluate_gate_access(
    store: VisitorRequestStore,
    codec: QrTokenCodec,
    caller: AuthenticatedUser,
    token: str,
    now: datetime | None = None,
) -> GateDecision:
    """Decide whether to admit a visitor.

    Only approved requests inside their validity window are admitted. An
    expired token, an invalid token, a denied request and an early arrival
    all mean the visitor is not admitted.
    """
    now = now or utc_now()
    try:
        validation = await validate_token(store, codec, caller, token, now)
    except TokenExpiredError:
        return GateDecision(admit=False, reason="token_expired")
    except TokenInvalidError:
        return GateDecision(admit=False, reason="token_invalid")

    if validation.state != VisitorState.APPROVED:
        reason = f"request_{validation.state.value}"
    elif now < validation.valid_from:
        reason = "not_yet_valid"
    else:
        reason = "approved"
    admit = reason == "approved"
    decision = GateDecision(
        admit=admit,
        reason=reason,
        request_id=validation.request_id,
        state=validation.state,
        visitor_name=validation.visitor_name,
    )
    logger.info(
        "Gate decision",
        extra={
            "request_id": str(validation.request_id),
            "admit": admit,
            "reason": decision.reason,
        },
    )
    return decision


# ----- Expiry Sweep -----


async def sweep_expired(
    store: VisitorRequestStore,
    now: datetime | None = None,
    batch_size: int | None = None,
) -> SweepResult:
    """Persist the expiry of lapsed pending/approved requests.

    Advisory only: reads already derive expiry. A request transitioned
    concurrently is skipped.
    """
    now = now or utc_now()
    lapsed = await store.list_lapsed(now, batch_size or settings.visitor_sweep_batch_size)

    expired = skipped = 0
    for record in lapsed:
        try:
            await store.compare_and_set(
                record.tenant_id, record.id, record.state, {"state": VisitorState.EXPIRED}
            )
            expired += 1
        except ConflictError:
            skipped += 1

    if lapsed:
        logger.info(
            "Expired visitor requests swept",
            extra={"expired_count": expired, "skipped_count": skipped},
        )
    return SweepResult(expired_count=expired, skipped_count=skipped)


async def run_expiry_sweeper(
    session_factory: Callable[[], AsyncSession],
    store_factory: Callable[[AsyncSession], VisitorRequestStore],
    interval_seconds: float,
) -> None:
    """Sweep lapsed requests every ``interval_seconds`` until cancelled."""
    logger.info("Visitor expiry sweeper started", extra={"interval": interval_seconds})

    while True:
        try:
            async with session_factory() as session:
                await sweep_expired(store_factory(session))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in visitor expiry sweep: {e}", exc_info=True)

        await asyncio.sleep(interval_seconds)
