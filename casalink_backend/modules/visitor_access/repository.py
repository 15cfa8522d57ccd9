"""Visitor request store contract."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from uuid import UUID

from .models import VisitorState
from .schemas import VisitorRequestRecord


class VisitorRequestStore(ABC):
    """Durable visitor requests. Transitions are compare-and-write."""

    @abstractmethod
    async def insert(self, record: VisitorRequestRecord) -> VisitorRequestRecord:
        """Persist a new request."""

    @abstractmethod
    async def get(self, tenant_id: UUID, request_id: UUID) -> VisitorRequestRecord | None:
        """Get a request by id within tenant scope."""

    @abstractmethod
    async def compare_and_set(
        self,
        tenant_id: UUID,
        request_id: UUID,
        expected_state: VisitorState,
        values: dict[str, Any],
    ) -> VisitorRequestRecord:
        """Apply ``values`` only if the stored state is still ``expected_state``.

        Raises:
            ConflictError: If the stored state changed
        """

    @abstractmethod
    async def list_requests(
        self, tenant_id: UUID, host_user_id: UUID | None = None
    ) -> list[VisitorRequestRecord]:
        """List a tenant's requests, newest window first."""

    @abstractmethod
    async def list_lapsed(self, now: datetime, limit: int) -> list[VisitorRequestRecord]:
        """Pending or approved requests whose window ended, across tenants."""
