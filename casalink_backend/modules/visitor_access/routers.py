"""Visitor access API routes."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ...config import settings
from ...core.exceptions import PermissionError
from ...database import DBSession
from ..auth.models import RoleSlug
from ..commons import BaseResponse
from ..staff import CallerContext, Capability, StaffCaller, require_capability
from . import services
from .crud import SqlVisitorRequestStore
from .models import VisitorState
from .repository import VisitorRequestStore
from .schemas import (
    GateDecision,
    TokenValidation,
    TokenValidationRequest,
    VisitorRequestCreate,
    VisitorRequestRecord,
)
from .tokens import QrTokenCodec

router = APIRouter(prefix="/visitors", tags=["Visitor Access"])


def get_visitor_store(db: DBSession) -> VisitorRequestStore:
    return SqlVisitorRequestStore(db)


def get_qr_codec() -> QrTokenCodec:
    return QrTokenCodec(settings.qr_signing_secret)


async def get_visitor_viewer(caller: CallerContext) -> StaffCaller:
    """Residents see their own requests; staff need MANAGE_VISITORS."""
    if caller.user.role_slug != RoleSlug.RESIDENT and not caller.can(
        Capability.MANAGE_VISITORS
    ):
        raise PermissionError("view", "visitor requests")
    return caller


VisitorStore = Annotated[VisitorRequestStore, Depends(get_visitor_store)]
QrCodec = Annotated[QrTokenCodec, Depends(get_qr_codec)]
VisitorViewer = Annotated[StaffCaller, Depends(get_visitor_viewer)]
GateOperator = Annotated[
    StaffCaller, Depends(require_capability(Capability.MANAGE_VISITORS))
]


@router.post(
    "",
    response_model=BaseResponse[VisitorRequestRecord],
    status_code=status.HTTP_201_CREATED,
)
async def create_visitor_request(
    data: VisitorRequestCreate,
    store: VisitorStore,
    codec: QrCodec,
    caller: CallerContext,
):
    """Create a visitor request and issue its QR token."""
    record = await services.create_request(store, codec, caller.user, data)
    return BaseResponse(
        success=True, message="Visitor request created", data=record
    )


@router.get("", response_model=BaseResponse[list[VisitorRequestRecord]])
async def list_visitor_requests(
    store: VisitorStore,
    caller: VisitorViewer,
    state: VisitorState | None = Query(None, description="Filter by effective state"),
):
    """List visitor requests."""
    records = await services.list_requests(store, caller.user, state)
    return BaseResponse(
        success=True,
        message=f"Found {len(records)} visitor requests",
        data=records,
    )


@router.get("/{request_id}", response_model=BaseResponse[VisitorRequestRecord])
async def get_visitor_request(
    request_id: UUID, store: VisitorStore, caller: VisitorViewer
):
    """Get a visitor request."""
    record = await services.get_request(store, caller.user, request_id)
    return BaseResponse(success=True, message="Visitor request", data=record)


@router.post(
    "/{request_id}/approve", response_model=BaseResponse[VisitorRequestRecord]
)
async def approve_visitor_request(
    request_id: UUID, store: VisitorStore, caller: CallerContext
):
    """Approve a pending visitor request."""
    record = await services.approve_request(store, caller, request_id)
    return BaseResponse(success=True, message="Visitor request approved", data=record)


@router.post("/{request_id}/deny", response_model=BaseResponse[VisitorRequestRecord])
async def deny_visitor_request(
    request_id: UUID, store: VisitorStore, caller: CallerContext
):
    """Deny a pending visitor request."""
    record = await services.deny_request(store, caller, request_id)
    return BaseResponse(success=True, message="Visitor request denied", data=record)


@router.post(
    "/{request_id}/complete", response_model=BaseResponse[VisitorRequestRecord]
)
async def complete_visitor_request(
    request_id: UUID, store: VisitorStore, caller: CallerContext
):
    """Mark an approved visit as completed."""
    record = await services.complete_request(store, caller, request_id)
    return BaseResponse(success=True, message="Visitor request completed", data=record)


@router.post("/validate", response_model=BaseResponse[TokenValidation])
async def validate_qr_token(
    data: TokenValidationRequest,
    store: VisitorStore,
    codec: QrCodec,
    caller: GateOperator,
):
    """Validate a scanned QR token."""
    validation = await services.validate_token(store, codec, caller.user, data.qr_token)
    return BaseResponse(success=True, message="QR token is valid", data=validation)


@router.post("/gate", response_model=BaseResponse[GateDecision])
async def evaluate_gate_access(
    data: TokenValidationRequest,
    store: VisitorStore,
    codec: QrCodec,
    caller: GateOperator,
):
    """Decide whether to admit the bearer of a QR token."""
    decision = await services.evaluate_gate_access(
        store, codec, caller.user, data.qr_token
    )
    return BaseResponse(
        success=True,
        message="Admit visitor" if decision.admit else "Do not admit visitor",
        data=decision,
    )
