"""SQL implementation of the visitor request store."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import ConflictError
from .lifecycle import LAPSABLE_STATES
from .models import VisitorRequest, VisitorState
from .repository import VisitorRequestStore
from .schemas import VisitorRequestRecord


async def get_visitor_request(
    db: AsyncSession, tenant_id: UUID, request_id: UUID
) -> VisitorRequest | None:
    """Get a visitor request by ID within tenant scope."""
    result = await db.execute(
        select(VisitorRequest)
        .where(
            and_(VisitorRequest.id == request_id, VisitorRequest.tenant_id == tenant_id)
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


class SqlVisitorRequestStore(VisitorRequestStore):
    """Visitor request store backed by the ``visitor_requests`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert(self, record: VisitorRequestRecord) -> VisitorRequestRecord:
        row = VisitorRequest(**record.model_dump(exclude={"created_at"}))
        self.db.add(row)
        await self.db.commit()
        await self.db.refresh(row)
        return VisitorRequestRecord.model_validate(row)

    async def get(self, tenant_id: UUID, request_id: UUID) -> VisitorRequestRecord | None:
        row = await get_visitor_request(self.db, tenant_id, request_id)
        return VisitorRequestRecord.model_validate(row) if row else None

    async def compare_and_set(
        self,
        tenant_id: UUID,
        request_id: UUID,
        expected_state: VisitorState,
        values: dict[str, Any],
    ) -> VisitorRequestRecord:
        result = await self.db.execute(
            update(VisitorRequest)
            .where(
                and_(
                    VisitorRequest.id == request_id,
                    VisitorRequest.tenant_id == tenant_id,
                    VisitorRequest.state == expected_state,
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise ConflictError(
                f"Visitor request {request_id} is no longer {expected_state.value}"
            )
        await self.db.commit()

        row = await get_visitor_request(self.db, tenant_id, request_id)
        return VisitorRequestRecord.model_validate(row)

    async def list_requests(
        self, tenant_id: UUID, host_user_id: UUID | None = None
    ) -> list[VisitorRequestRecord]:
        query = select(VisitorRequest).where(VisitorRequest.tenant_id == tenant_id)
        if host_user_id is not None:
            query = query.where(VisitorRequest.host_user_id == host_user_id)
        query = query.order_by(VisitorRequest.valid_from.desc()).execution_options(
            populate_existing=True
        )

        result = await self.db.execute(query)
        return [VisitorRequestRecord.model_validate(r) for r in result.scalars().all()]

    async def list_lapsed(self, now: datetime, limit: int) -> list[VisitorRequestRecord]:
        result = await self.db.execute(
            select(VisitorRequest)
            .where(
                and_(
                    VisitorRequest.state.in_(list(LAPSABLE_STATES)),
                    VisitorRequest.valid_until <= now,
                )
            )
            .order_by(VisitorRequest.valid_until)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [VisitorRequestRecord.model_validate(r) for r in result.scalars().all()]
